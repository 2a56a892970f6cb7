"""Local heuristics used in place of the service when no credential is set."""

from __future__ import annotations

import re
from typing import Any

from lensmap.agents.enhancer.results import EnhancementItem, ItemResult
from lensmap.models.fields import ColorOutcome, FieldCategory, FieldSource

_WIDTH = re.compile(r"(?:width|w)\s*:?\s*(\d+)", re.IGNORECASE)
_BRIDGE = re.compile(r"bridge\s*:?\s*(\d+)", re.IGNORECASE)
_TEMPLE = re.compile(r"(?:arms?|temple)\s*:?\s*(\d+)", re.IGNORECASE)
_NUMBER = re.compile(r"(\d+(?:[.,]\d{1,2})?)")

KNOWN_COLORS = ("black", "brown", "blue", "gray", "grey", "clear", "smoke", "red", "green", "gold", "silver")


def _simulate_size(text: str) -> tuple[Any, int] | None:
    dims: dict[str, int] = {}
    for key, pattern in (("lensWidth", _WIDTH), ("bridgeWidth", _BRIDGE), ("templeLength", _TEMPLE)):
        match = pattern.search(text)
        if match:
            dims[key] = int(match.group(1))
    return (dims, 80) if dims else None


def _simulate_price(text: str) -> tuple[Any, int] | None:
    match = _NUMBER.search(text)
    if not match:
        return None
    return float(match.group(1).replace(",", ".")), 85


def simulate(item: EnhancementItem) -> ItemResult:
    """Best local guess for one item. Confidence 65 to 85."""
    text = str(item.value) if item.value is not None else ""
    key = item.field_key.lower()

    if item.category == FieldCategory.SIZE and isinstance(item.value, str):
        guess = _simulate_size(text)
        if guess:
            return ItemResult(value=guess[0], confidence=guess[1], source=FieldSource.SIMULATION)

    if item.category == FieldCategory.COLOR:
        lowered = text.lower()
        found = next((c for c in KNOWN_COLORS if c in lowered), None)
        if found:
            base = found.capitalize()
            return ItemResult(
                value=base,
                confidence=75,
                source=FieldSource.SIMULATION,
                outcome=ColorOutcome(base_color=base, color_description=text),
            )

    if "price" in key:
        guess = _simulate_price(text)
        if guess:
            return ItemResult(value=guess[0], confidence=guess[1], source=FieldSource.SIMULATION)

    return ItemResult(value=item.value, confidence=65, source=FieldSource.SIMULATION)
