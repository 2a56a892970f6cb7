"""ColumnMapperService: maps input headers onto canonical field keys.

Assignment is greedy and follows header order: the first header to claim a
field key keeps it, even if a later header would have matched better.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from lensmap.models.record import RecordType
from lensmap.models.schema_mapping import ColumnMapping
from lensmap.registry.patterns import (
    INDIVIDUAL_DIMENSION_KEYS,
    MATERIAL_FIELD_KEY,
    MATERIAL_HEADER_PREFERENCE,
    SIZE_FIELD_KEY,
    SIZE_PATTERNS,
    find_best_matching_field,
    is_loose_match,
    normalize_header,
)
from lensmap.registry.schemas import get_schema_keys

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 95
MIN_CONFIDENCE = 60
SIZE_EXACT_CONFIDENCE = 85
SIZE_PARTIAL_CONFIDENCE = 70
MATERIAL_CONFIDENCE = 80


def mapping_confidence(header: str, pattern: str) -> int:
    """95 for an exact match, otherwise scaled by length similarity."""
    left, right = normalize_header(header), normalize_header(pattern)
    if left == right:
        return EXACT_CONFIDENCE
    if is_loose_match(left, right):
        similarity = min(len(left), len(right)) / max(len(left), len(right))
        return max(int(math.floor(70 + similarity * 25 + 0.5)), MIN_CONFIDENCE)
    return MIN_CONFIDENCE


class ColumnMapperService:
    """Builds one ColumnMapping per file, reused for every row."""

    def map_columns(self, headers: Sequence[str], record_type: RecordType | str) -> ColumnMapping:
        record_type = RecordType(record_type)
        targets = get_schema_keys(record_type)
        result = ColumnMapping(
            record_type=record_type,
            total_inputs=len(headers),
            total_targets=len(targets),
        )
        consumed: set[str] = set()

        for header in headers:
            if header in consumed:
                continue
            match = find_best_matching_field(header)
            if match is None:
                logger.debug("No mapping found for header %r", header)
                continue
            field_key, pattern, _exact = match
            if field_key in result.mapping:
                logger.debug("Header %r matched %s, already filled by %r",
                             header, field_key, result.mapping[field_key])
                continue
            result.mapping[field_key] = header
            result.confidence[field_key] = mapping_confidence(header, pattern)
            consumed.add(header)
            logger.debug("Mapped %r -> %s (%d%%)", header, field_key, result.confidence[field_key])

        if record_type == RecordType.FRAME:
            self._resolve_composite_size(headers, result, consumed)
            self._resolve_material(headers, result, consumed)

        result.unmapped_inputs = [h for h in headers if h not in consumed]
        result.unmatched_targets = [k for k in targets if k not in result.mapping]
        logger.info(
            "Mapped %d/%d target fields for %s (avg confidence %d%%)",
            result.mapped_count, result.total_targets, record_type, result.average_confidence,
        )
        return result

    @staticmethod
    def _resolve_composite_size(
        headers: Sequence[str], result: ColumnMapping, consumed: set[str]
    ) -> None:
        if SIZE_FIELD_KEY in result.mapping:
            return
        if any(key in result.mapping for key in INDIVIDUAL_DIMENSION_KEYS):
            return

        size_patterns = [normalize_header(p) for p in SIZE_PATTERNS]
        for header in headers:
            if header in consumed:
                continue
            normalized = normalize_header(header)
            if any(is_loose_match(normalized, pattern) for pattern in size_patterns):
                confidence = SIZE_EXACT_CONFIDENCE if normalized == "size" else SIZE_PARTIAL_CONFIDENCE
                result.mapping[SIZE_FIELD_KEY] = header
                result.confidence[SIZE_FIELD_KEY] = confidence
                consumed.add(header)
                logger.debug("Composite size column %r -> %s", header, SIZE_FIELD_KEY)
                return

    @staticmethod
    def _resolve_material(
        headers: Sequence[str], result: ColumnMapping, consumed: set[str]
    ) -> None:
        current = result.mapping.get(MATERIAL_FIELD_KEY)
        for markers in MATERIAL_HEADER_PREFERENCE:
            candidate = next(
                (h for h in headers if any(m in normalize_header(h) for m in markers)),
                None,
            )
            if candidate is None:
                continue
            if candidate == current:
                return
            if candidate in consumed:
                continue
            if current is not None:
                # Only a less preferred material column may be displaced.
                current_rank = _material_rank(current)
                if current_rank is None or current_rank <= _material_rank(candidate):
                    return
                consumed.discard(current)
            result.mapping[MATERIAL_FIELD_KEY] = candidate
            result.confidence[MATERIAL_FIELD_KEY] = MATERIAL_CONFIDENCE
            consumed.add(candidate)
            logger.debug("Material column %r -> %s", candidate, MATERIAL_FIELD_KEY)
            return


def _material_rank(header: str) -> int | None:
    normalized = normalize_header(header)
    for rank, markers in enumerate(MATERIAL_HEADER_PREFERENCE):
        if any(m in normalized for m in markers):
            return rank
    return None
