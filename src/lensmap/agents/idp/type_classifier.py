"""TypeClassifierService: decides which record type a whole file holds.

Headers weigh twice as much as sampled values. Confidence combines an
absolute floor (how much signal there is) with relative dominance (how
clearly the winner beats the runner-up).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence

from lensmap.models.record import ClassificationResult, RecordType
from lensmap.registry.patterns import normalize_header

logger = logging.getLogger(__name__)

HEADER_WEIGHT = 2
VALUE_WEIGHT = 1
MAX_SAMPLE_ROWS = 5
MAX_CONFIDENCE = 95

KEYWORDS: dict[RecordType, tuple[str, ...]] = {
    RecordType.LENS: (
        "optical solution", "sphere range", "cylinder range", "add range",
        "progressive", "single vision", "bifocal", "index", "coating",
        "photochromic", "treatment", "lens diameter",
    ),
    RecordType.FRAME: (
        "frame", "bridge", "temple", "lens width", "lens height",
        "frame material", "frame shape", "frametype", "hinge",
        "rim type", "color description", "collection",
    ),
    RecordType.EYE_GLASSES: (
        "frame sku", "lens sku", "complete pair", "pd range",
        "assembled", "eyeglasses", "prescription",
    ),
    RecordType.CONTACT_LENS: (
        "contact", "base curve", "diameter", "water content",
        "oxygen permeability", "dk/t", "modality", "wear schedule",
        "replacement schedule", "material",
    ),
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _in_headers(keyword: str, header_text: str, normalized_headers: Sequence[str]) -> bool:
    # Headers arrive normalized ("lenswidth"), so multi-word keywords are
    # also compared in normalized form against each header.
    if keyword in header_text:
        return True
    compact = normalize_header(keyword)
    return bool(compact) and any(compact in header for header in normalized_headers)


def relative_confidence(scores: Mapping[RecordType, int], best_score: int) -> float:
    """Two-tier confidence from the winning score and the spread of all scores."""
    total = sum(scores.values())
    if total == 0:
        return 0.0

    if best_score == total:
        if best_score >= 6:
            return 95.0
        if best_score >= 4:
            return 85.0
        if best_score >= 2:
            return 75.0
        return 60.0

    ordered = sorted(scores.values(), reverse=True)
    second = ordered[1] if len(ordered) > 1 else 0
    ratio = best_score / second if second > 0 else float(best_score)

    confidence = min(best_score / total * 100, MAX_CONFIDENCE)
    if ratio >= 3:
        confidence = min(confidence + 20, MAX_CONFIDENCE)
    if ratio >= 2:
        confidence = min(confidence + 10, MAX_CONFIDENCE)

    if best_score >= 4 and confidence < 70:
        confidence = 70.0
    if best_score >= 2 and confidence < 60:
        confidence = 60.0
    return max(confidence, 0.0)


class TypeClassifierService:
    """Scores headers and sampled values against per-type keyword sets."""

    def __init__(self, keywords: Mapping[RecordType, Sequence[str]] | None = None) -> None:
        self._keywords = dict(keywords or KEYWORDS)

    def classify(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, str]] = (),
    ) -> ClassificationResult:
        header_text = " ".join(headers).lower()
        normalized_headers = [normalize_header(h) for h in headers]
        value_text = " ".join(
            " ".join(str(v) for v in row.values())
            for row in list(sample_rows)[:MAX_SAMPLE_ROWS]
        ).lower()

        scores: dict[RecordType, int] = {}
        matched: dict[RecordType, list[str]] = {}
        for record_type, keywords in self._keywords.items():
            score = 0
            found: list[str] = []
            for keyword in dict.fromkeys(k.lower() for k in keywords):
                if _in_headers(keyword, header_text, normalized_headers):
                    score += HEADER_WEIGHT
                    found.append(keyword)
                elif value_text and keyword in value_text:
                    score += VALUE_WEIGHT
                    found.append(keyword)
            scores[record_type] = score
            matched[record_type] = found

        best_type, best_score = RecordType.UNKNOWN, 0
        for record_type, score in scores.items():
            if score > best_score:
                best_type, best_score = record_type, score

        confidence = _round_half_up(relative_confidence(scores, best_score))
        keywords_found = matched.get(best_type, [])
        result = ClassificationResult(
            record_type=best_type,
            confidence=confidence,
            matched_keywords=keywords_found,
            scores=scores,
            reasoning=_reasoning(best_type, best_score, keywords_found),
        )
        logger.info(
            "Detected record type %s (%d%% confidence, scores=%s)",
            result.record_type, result.confidence, {str(k): v for k, v in scores.items()},
        )
        return result


def _reasoning(record_type: RecordType, score: int, keywords: Sequence[str]) -> str:
    if score == 0:
        return "No specific keywords found, defaulting to UNKNOWN"
    shown = ", ".join(keywords[:3])
    more = "..." if len(keywords) > 3 else ""
    return f"Detected as {record_type} based on {len(keywords)} matching keywords: {shown}{more}"
