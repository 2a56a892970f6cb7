"""Turns variably shaped service responses into exactly one result per item."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from lensmap.agents.enhancer.prompts import (
    FRAME_SHAPE_CODES,
    FRAME_TYPE_CODES,
    HINGE_TYPE_CODES,
    RIM_TYPE_CODES,
)
from lensmap.agents.enhancer.results import EnhancementItem, ItemResult
from lensmap.models.fields import OUTCOME_TYPES, FieldSource, SizeOutcome

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 85
DEGRADED_CONFIDENCE = 80
PAD_CONFIDENCE = 60
FAILED_BATCH_CONFIDENCE = 70

_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

ABBREVIATIONS: dict[str, str] = {
    "bc": "baseColor",
    "cd": "colorDescription",
    "hl": "hasLens",
    "sm": "summary",
    "gn": "gender",
    "md": "model",
    "cl": "collection",
    "pol": "polarized",
    "pn": "productName",
    "mn": "modelNumber",
    "ft": "frameType",
    "fs": "frameShape",
    "rt": "rimType",
    "ht": "hingeType",
    "cv": "cleanedValue",
}


def unwrap_response(text: str) -> Any:
    """Parse response text, stripping code fences.

    A JSON object holding a single array (as JSON mode produces) is unwrapped
    to that array. Returns None when the text is not JSON.
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, dict):
        arrays = [v for v in parsed.values() if isinstance(v, list)]
        if len(arrays) == 1:
            return arrays[0]
    return parsed


def expand_abbreviations(result: Mapping[str, Any]) -> dict[str, Any]:
    """Rename abbreviated keys; a canonical key present alongside its
    abbreviation always wins."""
    expanded: dict[str, Any] = {}
    for key, value in result.items():
        canonical = ABBREVIATIONS.get(key)
        if canonical is None:
            expanded[key] = value
        elif canonical not in result:
            expanded[canonical] = value
    return expanded


def truncate(value: Any, limit: int) -> str:
    return str(value if value is not None else "")[:limit]


def build_result(
    item: EnhancementItem,
    raw: Any,
    *,
    confidence: int,
    source: FieldSource,
    tokens_used: int,
    fallback_source: FieldSource = FieldSource.BATCH_AI_FALLBACK,
    fallback_limit: int = 100,
) -> ItemResult:
    """Attach one response entry to its item as a typed outcome.

    Empty, non-scalar or invalid entries resolve like a padded item:
    truncated original value, ``fallback_source``, reduced confidence.
    """
    if isinstance(raw, Mapping) and raw:
        payload = expand_abbreviations(raw)
        payload["kind"] = item.category.value
        try:
            outcome = OUTCOME_TYPES[item.category].model_validate(payload)
        except ValidationError:
            logger.warning("Unusable %s result for %s: %r", item.category, item.field_key, raw)
        else:
            return ItemResult(
                value=outcome.primary_value(item.field_key, item.value),
                confidence=confidence, source=source,
                outcome=outcome, tokens_used=tokens_used,
            )
    elif isinstance(raw, (bool, int, float)) or (isinstance(raw, str) and raw.strip()):
        return ItemResult(value=raw, confidence=confidence, source=source, tokens_used=tokens_used)
    else:
        logger.warning("Empty %s result for %s: %r", item.category, item.field_key, raw)

    return fallback_results(
        [item], source=fallback_source, confidence=PAD_CONFIDENCE, limit=fallback_limit,
    )[0]


def fallback_results(
    items: Sequence[EnhancementItem],
    *,
    source: FieldSource,
    confidence: int,
    limit: int,
) -> list[ItemResult]:
    return [
        ItemResult(value=truncate(item.value, limit), confidence=confidence, source=source)
        for item in items
    ]


def reconcile(
    items: Sequence[EnhancementItem],
    parsed: Any,
    total_tokens: int,
    *,
    fallback_limit: int = 100,
) -> list[ItemResult]:
    """Map a parsed response onto a chunk, always returning ``len(items)`` results."""
    if not isinstance(parsed, list) or not items:
        logger.warning("Batch response is not an array, falling back for %d items", len(items))
        return fallback_results(
            items, source=FieldSource.BATCH_FALLBACK,
            confidence=FAILED_BATCH_CONFIDENCE, limit=fallback_limit,
        )

    n = len(items)
    if len(parsed) == n:
        per_item = round(total_tokens / n)
        return [
            build_result(item, raw, confidence=EXACT_CONFIDENCE,
                         source=FieldSource.BATCH_AI, tokens_used=per_item,
                         fallback_limit=fallback_limit)
            for item, raw in zip(items, parsed)
        ]

    if len(parsed) > n:
        logger.warning("Service returned %d results for %d items, keeping the first %d",
                       len(parsed), n, n)
        per_item = round(total_tokens / n)
        return [
            build_result(item, raw, confidence=DEGRADED_CONFIDENCE,
                         source=FieldSource.BATCH_AI_TRUNCATED, tokens_used=per_item,
                         fallback_limit=fallback_limit)
            for item, raw in zip(items, parsed[:n])
        ]

    logger.warning("Service returned %d results for %d items, padding with fallbacks",
                   len(parsed), n)
    per_item = round(total_tokens / len(parsed)) if parsed else 0
    results = [
        build_result(item, raw, confidence=DEGRADED_CONFIDENCE,
                     source=FieldSource.BATCH_AI_PARTIAL, tokens_used=per_item,
                     fallback_limit=fallback_limit)
        for item, raw in zip(items, parsed)
    ]
    results.extend(
        fallback_results(
            items[len(parsed):], source=FieldSource.BATCH_AI_FALLBACK,
            confidence=PAD_CONFIDENCE, limit=fallback_limit,
        )
    )
    return results


# ---------------------------------------------------------------------------
# Size pass
# ---------------------------------------------------------------------------

def _expand_code(codes: Mapping[str, str], value: Any, default: str) -> str:
    text = str(value).strip().lower() if value is not None else ""
    if text in codes:
        return codes[text]
    if text in codes.values():
        return text
    return default


def parse_size_results(parsed: Any, expected: int) -> list[SizeOutcome] | None:
    """Expand terse size-pass entries. None unless the array length matches."""
    if not isinstance(parsed, list) or len(parsed) != expected:
        return None
    outcomes: list[SizeOutcome] = []
    for raw in parsed:
        entry = expand_abbreviations(raw) if isinstance(raw, Mapping) else {}
        outcomes.append(
            SizeOutcome(
                frame_type=_expand_code(FRAME_TYPE_CODES, entry.get("frameType"), "full-rim"),
                frame_shape=_expand_code(FRAME_SHAPE_CODES, entry.get("frameShape"), "rectangular"),
                rim_type=_expand_code(RIM_TYPE_CODES, entry.get("rimType"), "full"),
                hinge_type=_expand_code(HINGE_TYPE_CODES, entry.get("hingeType"), "standard"),
            )
        )
    return outcomes


def infer_frame_type(dims: Mapping[str, Any]) -> str:
    """Width/height ratio heuristic; ``full-rim`` when the ratio is unknown or moderate."""
    width, height = dims.get("lensWidth"), dims.get("lensHeight")
    try:
        ratio = float(width) / float(height)
    except (TypeError, ValueError, ZeroDivisionError):
        return "full-rim"
    if ratio > 1.8:
        return "rectangular"
    if ratio < 1.2:
        return "round"
    return "full-rim"


def infer_size_outcome(dims: Mapping[str, Any]) -> SizeOutcome:
    return SizeOutcome(
        frame_type=infer_frame_type(dims),
        frame_shape="rectangular",
        rim_type="full",
        hinge_type="standard",
    )
