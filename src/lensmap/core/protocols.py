"""Protocol interfaces for LensMap collaborators.

All inter-layer communication uses these Protocols: structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from lensmap.models.outputs import ExportFile


class ChatResult(BaseModel):
    """Text returned by the enhancement service plus its reported usage."""

    content: str
    total_tokens: int | None = None


# ---------------------------------------------------------------------------
# Model Provider
# ---------------------------------------------------------------------------

@runtime_checkable
class IModelProvider(Protocol):
    """Abstraction over the text-enhancement service (mock, OpenAI-compatible)."""

    @property
    def is_configured(self) -> bool: ...

    async def chat(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> ChatResult: ...

    async def aclose(self) -> None: ...


# ---------------------------------------------------------------------------
# Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Key-value cache with per-entry TTL."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


# ---------------------------------------------------------------------------
# Output Sink
# ---------------------------------------------------------------------------

@runtime_checkable
class IOutputSink(Protocol):
    """Writes canonical rows in schema order."""

    def write(
        self,
        rows: Sequence[Mapping[str, Any]],
        schema: Mapping[str, str],
        *,
        brand: str,
        record_type: str,
    ) -> ExportFile: ...
