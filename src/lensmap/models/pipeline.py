"""Stage statistics and pipeline run state models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from lensmap.core.types import CanonicalRow


class StepStatus(StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    WARNING = "WARNING"
    FAILED = "FAILED"


class CleaningStats(BaseModel):
    """Counters reported by the field cleaner for one batch."""

    total_fields: int = 0
    cleaned_fields: int = 0
    needs_ai: int = 0
    extracted: int = 0
    ruled: int = 0  # resolved by domain rules instead of the service
    transformed: int = 0  # re-keyed from source header to canonical key

    @property
    def ai_percentage(self) -> int:
        if self.total_fields == 0:
            return 0
        return round(self.needs_ai / self.total_fields * 100)


class EnhancementStats(BaseModel):
    """Counters reported by the batch enhancement engine for one batch."""

    total_fields: int = 0
    rule_resolved: int = 0
    cache_hits: int = 0
    batch_resolved: int = 0
    individual_resolved: int = 0
    fallback_resolved: int = 0
    simulated: int = 0
    side_fields_added: int = 0
    size_rows_analyzed: int = 0
    calls: int = 0
    tokens_used: int = 0
    batch_savings: int = 0


class UsageStats(BaseModel):
    """Engine-lifetime usage snapshot."""

    total_calls: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0
    cache_size: int = 0
    has_api_key: bool = False


class AssemblyStats(BaseModel):
    """Counters reported by the record assembler."""

    total_rows: int = 0
    succeeded: int = 0
    failed: int = 0
    fields_filled: int = 0


class MappingCoverage(BaseModel):
    """How many enhanced source fields can land in the canonical schema."""

    coverage: int = 0
    mapped_fields: int = 0
    total_fields: int = 0
    mapped_source_fields: list[str] = Field(default_factory=list)
    unmapped_source_fields: list[str] = Field(default_factory=list)


class StepState(BaseModel):
    """Execution summary for a single pipeline stage."""

    name: str
    status: StepStatus = StepStatus.PENDING
    duration_ms: Optional[int] = None
    details: dict[str, Any] = Field(default_factory=dict)


class PipelineResult(BaseModel):
    """Aggregate outcome of one file run."""

    success: bool = False
    file_name: str = ""
    record_type: str = ""
    brand: str = ""
    steps: list[StepState] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    rows: list[CanonicalRow] = Field(default_factory=list)
    stats: dict[str, Any] = Field(default_factory=dict)

    def step(self, name: str) -> StepState | None:
        return next((s for s in self.steps if s.name == name), None)


class AssemblyResult(BaseModel):
    """Canonical rows for one batch plus the schema they follow."""

    rows: list[CanonicalRow] = Field(default_factory=list)
    stats: AssemblyStats = Field(default_factory=AssemblyStats)
    columns: dict[str, str] = Field(default_factory=dict)  # field key -> label, in order
    coverage: MappingCoverage = Field(default_factory=MappingCoverage)
