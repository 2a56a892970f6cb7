"""Record types, ingested tables and classification results."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from lensmap.core.types import RawRecord


class RecordType(StrEnum):
    LENS = "LENS"
    FRAME = "FRAME"
    EYE_GLASSES = "EYE_GLASSES"
    CONTACT_LENS = "CONTACT_LENS"
    UNKNOWN = "UNKNOWN"


class IngestionStats(BaseModel):
    """Row filtering counters produced while reading a file."""

    original_rows: int = 0
    cleaned_rows: int = 0
    removed_rows: int = 0
    reference_column: str | None = None


class IngestedTable(BaseModel):
    """A tabular file read into normalized headers and raw string rows.

    Rows are keyed by normalized header and never mutated downstream.
    """

    headers: list[str]
    rows: list[RawRecord] = Field(default_factory=list)
    file_name: str = ""
    cleaning_stats: IngestionStats = IngestionStats()

    @property
    def total_rows(self) -> int:
        return len(self.rows)


class ClassificationResult(BaseModel):
    """Detected record type for one ingestion batch."""

    record_type: RecordType = RecordType.UNKNOWN
    confidence: int = 0
    matched_keywords: list[str] = Field(default_factory=list)
    scores: dict[RecordType, int] = Field(default_factory=dict)
    reasoning: str = ""

    def is_acceptable(self, min_confidence: int = 60) -> bool:
        """Advisory gate; callers decide whether to abort."""
        return self.confidence >= min_confidence
