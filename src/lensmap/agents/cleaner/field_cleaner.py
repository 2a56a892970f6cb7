"""FieldCleanerService: deterministic cleanup ahead of the enhancement stage.

Per field, in order: empty/non-string passthrough, obvious-pattern
extraction, generic whitespace cleaning, the enhancement-need decision,
and finally the domain rules that can make the enhancement call unnecessary.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from lensmap.agents.cleaner import rules
from lensmap.models.fields import CleanedField, CleanedRow, FieldSource
from lensmap.models.pipeline import CleaningStats
from lensmap.models.schema_mapping import ColumnMapping

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")

GENERIC_CONFIDENCE = 60
WHITESPACE_BONUS = 5
NEEDS_AI_CONFIDENCE_CAP = 70
DOMAIN_RULE_CONFIDENCE = 95


class FieldCleanerService:
    """Cleans raw values field by field. Stateless; safe to reuse across files."""

    def clean_field(
        self,
        field_key: str,
        raw_value: Any,
        *,
        source_header: str | None = None,
    ) -> CleanedField:
        """Clean one raw value.

        ``field_key`` and ``source_header`` are both consulted by the
        name-driven rule tables.
        """
        if not isinstance(raw_value, str) or raw_value == "":
            return CleanedField(
                value=raw_value,
                confidence=100 if raw_value else 0,
                needs_ai=False,
                source_header=source_header,
            )

        names = tuple(n.lower() for n in (field_key, source_header) if n)

        extracted = rules.extract_if_obvious(names, raw_value)
        if extracted is not None:
            return CleanedField(
                value=extracted.value,
                confidence=extracted.confidence,
                needs_ai=False,
                notes=[extracted.note],
                source=FieldSource.RULE,
                source_header=source_header,
            )

        stripped = raw_value.strip()
        cleaned = _WHITESPACE_RUN.sub(" ", stripped)
        confidence = GENERIC_CONFIDENCE
        notes: list[str] = []
        if cleaned != stripped:
            confidence += WHITESPACE_BONUS
            notes.append("Normalized spaces")

        if not rules.should_use_ai(names, cleaned):
            return CleanedField(
                value=cleaned,
                confidence=confidence,
                needs_ai=False,
                notes=notes,
                source_header=source_header,
            )

        hit = rules.apply_domain_rules(names, cleaned)
        if hit is not None:
            return CleanedField(
                value=hit.value,
                confidence=DOMAIN_RULE_CONFIDENCE,
                needs_ai=False,
                notes=[*notes, hit.note],
                source=FieldSource.DOMAIN_RULE,
                source_header=source_header,
                outcome=hit.outcome,
            )

        return CleanedField(
            value=cleaned,
            confidence=min(confidence, NEEDS_AI_CONFIDENCE_CAP),
            needs_ai=True,
            notes=notes,
            source_header=source_header,
        )

    def clean_batch(
        self,
        rows: Sequence[Mapping[str, Any]],
        mapping: ColumnMapping,
    ) -> tuple[list[CleanedRow], CleaningStats]:
        """Clean every row, re-keying mapped fields to their canonical key.

        Headers without a mapping keep their source header as key.
        """
        reverse = mapping.reverse
        stats = CleaningStats()
        cleaned_rows: list[CleanedRow] = []

        for row in rows:
            cleaned_row: CleanedRow = {}
            for header, raw_value in row.items():
                field_key = reverse.get(header, header)
                cleaned = self.clean_field(field_key, raw_value, source_header=header)
                cleaned_row[field_key] = cleaned

                stats.total_fields += 1
                if field_key != header:
                    stats.transformed += 1
                if cleaned.needs_ai:
                    stats.needs_ai += 1
                else:
                    stats.cleaned_fields += 1
                if cleaned.source == FieldSource.RULE:
                    stats.extracted += 1
                elif cleaned.source == FieldSource.DOMAIN_RULE:
                    stats.ruled += 1
            cleaned_rows.append(cleaned_row)

        logger.info(
            "Cleaned %d fields across %d rows: %d final, %d need enhancement (%d%%), "
            "%d extracted, %d resolved by domain rules",
            stats.total_fields, len(cleaned_rows), stats.cleaned_fields, stats.needs_ai,
            stats.ai_percentage, stats.extracted, stats.ruled,
        )
        return cleaned_rows, stats
