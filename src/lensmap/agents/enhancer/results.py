"""Result types passed between the enhancement engine's internal steps."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel

from lensmap.models.fields import EnhancementOutcome, FieldCategory, FieldSource


class EnhancementItem(BaseModel):
    """One flagged field instance, tagged with where it came from."""

    row_index: int
    field_key: str
    category: FieldCategory
    value: Any = None


class ItemResult(BaseModel):
    """Resolution of one item. Always constructible without I/O."""

    value: Any = None
    confidence: int = 0
    source: FieldSource
    outcome: EnhancementOutcome | None = None
    tokens_used: int = 0


class ServiceReply(BaseModel):
    content: str
    total_tokens: int | None = None


class ServiceFailure(BaseModel):
    reason: str
    status_code: int | None = None


CallOutcome = Union[ServiceReply, ServiceFailure]
