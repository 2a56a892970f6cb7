"""Per-field models flowing from the cleaner through the enhancement engine.

A field is always addressed by its canonical key once it leaves the cleaner.
Enhancement results are modelled as one outcome type per category, each with
a fixed set of side fields it may write onto the row.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldCategory(StrEnum):
    COLOR = "color"
    DESCRIPTION = "description"
    CHARACTERISTICS = "characteristics"
    NAME = "name"
    SIZE = "size_analysis"
    OTHER = "other"


class FieldSource(StrEnum):
    CLEANER = "cleaner"
    RULE = "rule"
    DOMAIN_RULE = "domain-rule"
    CACHE = "cache"
    BATCH_AI = "batch-ai"
    BATCH_AI_TRUNCATED = "batch-ai-truncated"
    BATCH_AI_PARTIAL = "batch-ai-partial"
    BATCH_AI_FALLBACK = "batch-ai-fallback"
    BATCH_FALLBACK = "batch-fallback"
    INDIVIDUAL_AI = "individual-ai"
    INDIVIDUAL_FALLBACK = "individual-fallback"
    SIMULATION = "simulation"
    DESCRIPTION_ANALYSIS = "description-analysis"
    SIZE_ANALYSIS_AI = "size-analysis-ai"
    SIZE_ANALYSIS_FALLBACK = "size-analysis-fallback"


_TRUE_WORDS = {"true", "yes", "y", "1"}
_FALSE_WORDS = {"false", "no", "n", "0", "none"}


def _lenient_bool(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return None


class _Outcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    def primary_value(self, field_key: str, fallback: Any) -> Any:
        return fallback

    def side_fields(self) -> dict[str, Any]:
        """Sibling canonical fields this outcome may populate when the row lacks them."""
        return {}


class ColorOutcome(_Outcome):
    kind: Literal["color"] = "color"
    base_color: str | None = Field(default=None, alias="baseColor")
    color_description: str | None = Field(default=None, alias="colorDescription")
    has_lens: bool | None = Field(default=None, alias="hasLens")

    @field_validator("has_lens", mode="before")
    @classmethod
    def _coerce_has_lens(cls, value: Any) -> bool | None:
        return _lenient_bool(value)

    def primary_value(self, field_key: str, fallback: Any) -> Any:
        return self.base_color or self.color_description or fallback


class DescriptionOutcome(_Outcome):
    kind: Literal["description"] = "description"
    summary: str | None = None
    gender: str | None = None
    model: str | None = None
    collection: str | None = None
    frame_type: str | None = Field(default=None, alias="frameType")
    frame_shape: str | None = Field(default=None, alias="frameShape")

    def primary_value(self, field_key: str, fallback: Any) -> Any:
        return self.summary or fallback

    def side_fields(self) -> dict[str, Any]:
        return {"frameType": self.frame_type, "frameShape": self.frame_shape}


class CharacteristicsOutcome(_Outcome):
    kind: Literal["characteristics"] = "characteristics"
    polarized: bool | None = None
    uv: bool | None = None
    protection: str | None = None
    category: str | None = None

    @field_validator("polarized", "uv", mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any) -> bool | None:
        return _lenient_bool(value)

    def primary_value(self, field_key: str, fallback: Any) -> Any:
        key = field_key.lower()
        if "polar" in key and self.polarized is not None:
            return self.polarized
        if "uv" in key and self.uv is not None:
            return self.uv
        if "protection" in key and self.protection:
            return self.protection
        if "category" in key and self.category:
            return self.category
        return fallback


class NameOutcome(_Outcome):
    kind: Literal["name"] = "name"
    product_name: str | None = Field(default=None, alias="productName")
    model_number: str | None = Field(default=None, alias="modelNumber")
    brand: str | None = None

    def primary_value(self, field_key: str, fallback: Any) -> Any:
        if "model" in field_key.lower() and self.model_number:
            return self.model_number
        return self.product_name or fallback


class SizeOutcome(_Outcome):
    kind: Literal["size_analysis"] = "size_analysis"
    frame_type: str | None = Field(default=None, alias="frameType")
    frame_shape: str | None = Field(default=None, alias="frameShape")
    rim_type: str | None = Field(default=None, alias="rimType")
    hinge_type: str | None = Field(default=None, alias="hingeType")

    def side_fields(self) -> dict[str, Any]:
        return {
            "frameType": self.frame_type,
            "frameShape": self.frame_shape,
            "rimType": self.rim_type,
            "hingeType": self.hinge_type,
        }


class OtherOutcome(_Outcome):
    kind: Literal["other"] = "other"
    cleaned_value: str | None = Field(default=None, alias="cleanedValue")
    confidence: int | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> int | None:
        try:
            return int(float(value)) if value is not None else None
        except (TypeError, ValueError):
            return None

    def primary_value(self, field_key: str, fallback: Any) -> Any:
        return self.cleaned_value or fallback


EnhancementOutcome = Annotated[
    Union[
        ColorOutcome,
        DescriptionOutcome,
        CharacteristicsOutcome,
        NameOutcome,
        SizeOutcome,
        OtherOutcome,
    ],
    Field(discriminator="kind"),
]

OUTCOME_TYPES: dict[FieldCategory, type[_Outcome]] = {
    FieldCategory.COLOR: ColorOutcome,
    FieldCategory.DESCRIPTION: DescriptionOutcome,
    FieldCategory.CHARACTERISTICS: CharacteristicsOutcome,
    FieldCategory.NAME: NameOutcome,
    FieldCategory.SIZE: SizeOutcome,
    FieldCategory.OTHER: OtherOutcome,
}


class CleanedField(BaseModel):
    """Result of cleaning one raw value for one field.

    When ``needs_ai`` is false the value is final. When true the value is the
    best pre-enhancement guess and stays usable as a fallback.
    """

    value: Any = None
    confidence: int = 0
    needs_ai: bool = False
    notes: list[str] = Field(default_factory=list)
    source: FieldSource = FieldSource.CLEANER
    source_header: str | None = None
    outcome: EnhancementOutcome | None = None


class EnhancedField(CleanedField):
    """A cleaned field after the enhancement stage, with provenance."""

    enhanced: bool = False
    tokens_used: int = 0

    @classmethod
    def from_cleaned(cls, cleaned: CleanedField) -> EnhancedField:
        return cls(**cleaned.model_dump())


CleanedRow = dict[str, CleanedField]
EnhancedRow = dict[str, EnhancedField]
