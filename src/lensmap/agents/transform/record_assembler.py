"""RecordAssembler: fills canonical output rows from enhanced fields.

Every schema key starts as an empty string. Same-key fields are copied
across, then record-type rules derive the remaining columns. A row that
cannot be assembled is counted as failed and left out; the rest of the batch
proceeds.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from lensmap.core.exceptions import RowTransformError
from lensmap.models.fields import ColorOutcome, DescriptionOutcome, EnhancedField
from lensmap.models.pipeline import AssemblyResult, AssemblyStats, MappingCoverage
from lensmap.models.record import RecordType
from lensmap.registry.patterns import SIZE_FIELD_KEY
from lensmap.registry.schemas import require_schema

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 200
MATERIAL_MAX_LENGTH = 100
DEFAULT_GENDER = "Unisex"
DEFAULT_SEASON = "All Year"

KNOWN_COLLECTIONS = re.compile(
    r"\b(LAS VEGAS|VICTORIA|NICOSIA|DE NIRO|BOWIE|BURTON|BONDI BEACH)\b", re.IGNORECASE
)
_CLEAR_MARKERS = ("clear", "transparent", "transp")
_DIMENSION_KEYS = ("lensWidth", "lensHeight", "bridgeWidth", "templeLength")
# Source fields that feed a schema column under a different key.
_INDIRECT_SOURCES = {SIZE_FIELD_KEY, "composition", "polarized"}

Row = Mapping[str, EnhancedField]


def to_scalar(value: Any, max_length: int = DESCRIPTION_MAX_LENGTH) -> Any:
    """Flatten any field value to a string, number or boolean."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value[:max_length]
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, BaseModel):
        return to_scalar(value.model_dump(exclude_none=True), max_length)
    if isinstance(value, Mapping):
        if "value" in value:
            return to_scalar(value["value"], max_length)
        for key in ("summary", "model", "collection", "gender"):
            if value.get(key):
                return to_scalar(value[key], max_length)
        pairs = " ".join(
            f"{k}:{to_scalar(v, 30)}" for k, v in value.items() if v not in (None, "")
        )
        return pairs[:max_length]
    if isinstance(value, (list, tuple)):
        parts = [str(to_scalar(v, 50)) for v in value]
        return ", ".join(p for p in parts if p)[:max_length]
    return str(value)[:max_length]


def _value(row: Row, key: str) -> Any:
    field = row.get(key)
    if field is None or field.value in (None, ""):
        return None
    return field.value


def _outcome(row: Row, key: str, kind: type[BaseModel]) -> Any:
    field = row.get(key)
    if field is not None and isinstance(field.outcome, kind):
        return field.outcome
    return None


class RecordAssembler:
    """Builds canonical rows for one record type."""

    def assemble(
        self,
        enhanced_rows: Sequence[Row],
        record_type: RecordType | str,
        brand: str,
    ) -> AssemblyResult:
        record_type = RecordType(record_type)
        schema = require_schema(record_type)
        stats = AssemblyStats(total_rows=len(enhanced_rows))
        rows: list[dict[str, Any]] = []

        for index, row in enumerate(enhanced_rows):
            try:
                assembled = self.assemble_row(index, row, schema, record_type, brand)
            except (RowTransformError, TypeError, ValueError, AttributeError) as exc:
                logger.error("Row %d failed to assemble: %s", index, exc)
                stats.failed += 1
                continue
            rows.append(assembled)
            stats.succeeded += 1
            stats.fields_filled += sum(1 for v in assembled.values() if v not in ("", None))

        coverage = self.coverage(enhanced_rows, schema)
        logger.info(
            "Assembled %d/%d %s rows (%d fields filled, %d%% source coverage)",
            stats.succeeded, stats.total_rows, record_type, stats.fields_filled, coverage.coverage,
        )
        return AssemblyResult(rows=rows, stats=stats, columns=schema, coverage=coverage)

    def assemble_row(
        self,
        index: int,
        row: Row,
        schema: Mapping[str, str],
        record_type: RecordType,
        brand: str,
    ) -> dict[str, Any]:
        if not isinstance(row, Mapping):
            raise RowTransformError(index, f"expected a mapping of fields, got {type(row).__name__}")

        out: dict[str, Any] = {key: "" for key in schema}
        for key in schema:
            value = _value(row, key)
            if value is not None and not isinstance(value, Mapping):
                out[key] = to_scalar(value)

        if "brand" in out:
            out["brand"] = brand
        if record_type == RecordType.FRAME:
            self._apply_frame_rules(out, row)

        return {key: to_scalar(out[key]) for key in schema}

    @staticmethod
    def _apply_frame_rules(out: dict[str, Any], row: Row) -> None:
        color = _value(row, "color")
        if color is not None:
            lowered = str(to_scalar(color)).lower()
            out["frameCategory"] = (
                "Eyeglasses" if any(m in lowered for m in _CLEAR_MARKERS) else "Sunglasses"
            )
        else:
            out["frameCategory"] = "Sunglasses" if _value(row, "polarized") is True else "Eyeglasses"

        description = _value(row, "description")
        if description is not None:
            out["description"] = to_scalar(description, DESCRIPTION_MAX_LENGTH)

        analysis: DescriptionOutcome | None = _outcome(row, "description", DescriptionOutcome)
        collection = analysis and (analysis.collection or analysis.model)
        if not collection and description is not None:
            match = KNOWN_COLLECTIONS.search(str(to_scalar(description)))
            if match:
                collection = match.group(1).upper()
        if collection:
            out["collection"] = collection

        if not out.get("gender"):
            out["gender"] = (analysis and analysis.gender) or DEFAULT_GENDER

        for key, derived in (
            ("frameType", analysis and analysis.frame_type),
            ("frameShape", analysis and analysis.frame_shape),
        ):
            value = _value(row, key)
            if value is not None:
                out[key] = to_scalar(value)
            elif derived:
                out[key] = derived

        for key in ("frameMaterial", "composition"):
            material = _value(row, key)
            if isinstance(material, Mapping):
                material = material.get("frameMaterial")
            if material:
                out["frameMaterial"] = to_scalar(material, MATERIAL_MAX_LENGTH)
                break

        if color is not None:
            out["color"] = to_scalar(color)
        palette: ColorOutcome | None = _outcome(row, "color", ColorOutcome)
        if palette and palette.color_description:
            out["colorDescription"] = palette.color_description

        dims = _value(row, SIZE_FIELD_KEY)
        if isinstance(dims, Mapping):
            for key in _DIMENSION_KEYS:
                if dims.get(key):
                    out[key] = dims[key]

        if not out.get("season"):
            out["season"] = DEFAULT_SEASON

    @staticmethod
    def coverage(enhanced_rows: Sequence[Row], schema: Mapping[str, str]) -> MappingCoverage:
        """How many source fields of the first row can land in the schema."""
        if not enhanced_rows or not isinstance(enhanced_rows[0], Mapping):
            return MappingCoverage(total_fields=len(schema))
        source_fields = list(enhanced_rows[0])
        mapped = [f for f in source_fields if f in schema or f in _INDIRECT_SOURCES]
        return MappingCoverage(
            coverage=round(len(mapped) / len(schema) * 100) if schema else 0,
            mapped_fields=len(mapped),
            total_fields=len(schema),
            mapped_source_fields=mapped,
            unmapped_source_fields=[f for f in source_fields if f not in mapped],
        )
