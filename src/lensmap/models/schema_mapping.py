"""Column mapping models for the ingestion stage."""

from __future__ import annotations

from pydantic import BaseModel, Field

from lensmap.models.record import RecordType


class ColumnMapping(BaseModel):
    """1:1 mapping from canonical field key to the input header that fills it.

    Computed once per record type and reused for every row of the batch.
    """

    record_type: RecordType
    mapping: dict[str, str] = Field(default_factory=dict)  # field key -> header
    confidence: dict[str, int] = Field(default_factory=dict)  # field key -> 0..100
    unmapped_inputs: list[str] = Field(default_factory=list)
    unmatched_targets: list[str] = Field(default_factory=list)
    total_inputs: int = 0
    total_targets: int = 0

    @property
    def mapped_count(self) -> int:
        return len(self.mapping)

    @property
    def average_confidence(self) -> int:
        if not self.confidence:
            return 0
        return round(sum(self.confidence.values()) / len(self.confidence))

    @property
    def mapped_percentage(self) -> float:
        if self.total_targets == 0:
            return 0.0
        return self.mapped_count / self.total_targets * 100

    @property
    def reverse(self) -> dict[str, str]:
        """Header -> field key."""
        return {header: key for key, header in self.mapping.items()}

    def is_acceptable(self, min_mapped_percentage: int = 60, min_avg_confidence: int = 70) -> bool:
        return (
            self.mapped_percentage >= min_mapped_percentage
            and self.average_confidence >= min_avg_confidence
        )
