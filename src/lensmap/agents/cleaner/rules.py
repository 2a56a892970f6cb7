"""Ordered predicate tables used by the field cleaner.

Every table is evaluated top to bottom and the first matching entry wins.
Field names are matched by lowercase substring against both the canonical
field key and the original source header.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from lensmap.models.fields import ColorOutcome

COLOR_NAMES = ("color", "colour")
SIZE_NAMES = ("size", "dimension", "measure", "lenswidth", "bridgewidth", "templelength")
MATERIAL_NAMES = ("composition", "material")
DESCRIPTION_NAMES = ("description", "desc")
POLARIZED_NAMES = ("polar",)

LONG_TEXT_LIMIT = 100
DEFAULT_AI_LENGTH = 80
SHORT_CHARACTERISTICS_LIMIT = 50

_PLACEHOLDERS = {"-", "n/a", "na", "none", "null", "undefined"}

_WIDTH = re.compile(r"(?:lens\s*)?width\s*:\s*(\d+)", re.IGNORECASE)
_HEIGHT = re.compile(r"(?:lens\s*)?height\s*:\s*(\d+)", re.IGNORECASE)
_BRIDGE = re.compile(r"bridge\s*:\s*(\d+)", re.IGNORECASE)
_ARMS = re.compile(r"(?:arms?|temple)\s*:\s*(\d+)", re.IGNORECASE)
_SIZE_LABEL = re.compile(r"\b(?:width|height|bridge|arms?)\s*:", re.IGNORECASE)

_FRAME_MATERIAL = re.compile(r"frame\s*:\s*(.+?)(?:\s*lens\s*:|$)", re.IGNORECASE)
_LENS_MATERIAL = re.compile(r"lens\s*:\s*(.+)$", re.IGNORECASE)
_MATERIAL_LABEL = re.compile(r"\b(?:frame|lens)\s*:", re.IGNORECASE)

_BOOLEAN = re.compile(r"^(yes|no|true|false)$", re.IGNORECASE)
_TRUTHY = re.compile(r"^(yes|true)$", re.IGNORECASE)


def name_has(names: Sequence[str], substrings: Sequence[str]) -> bool:
    return any(s in name for name in names for s in substrings)


@dataclass(frozen=True)
class Extraction:
    value: Any
    confidence: int
    note: str


# ---------------------------------------------------------------------------
# Obvious-pattern extraction
# ---------------------------------------------------------------------------

def extract_dimensions(text: str) -> Extraction | None:
    if not _SIZE_LABEL.search(text):
        return None
    dims: dict[str, int] = {}
    for key, pattern in (
        ("lensWidth", _WIDTH),
        ("lensHeight", _HEIGHT),
        ("bridgeWidth", _BRIDGE),
        ("templeLength", _ARMS),
    ):
        match = pattern.search(text)
        if match:
            dims[key] = int(match.group(1))
    if not dims:
        return None
    return Extraction(dims, 85, f"Extracted dimensions: {', '.join(dims)}")


def extract_materials(text: str) -> Extraction | None:
    if not _MATERIAL_LABEL.search(text):
        return None
    frame = _FRAME_MATERIAL.search(text)
    lens = _LENS_MATERIAL.search(text)
    if not frame and not lens:
        return None
    value = {
        "frameMaterial": frame.group(1).strip() if frame else None,
        "lensMaterial": lens.group(1).strip() if lens else None,
    }
    return Extraction(value, 90, "Extracted frame/lens materials")


def extract_polarized(text: str) -> Extraction | None:
    stripped = text.strip()
    if not _BOOLEAN.match(stripped):
        return None
    return Extraction(bool(_TRUTHY.match(stripped)), 95, "Converted to boolean")


EXTRACTION_RULES: tuple[tuple[tuple[str, ...], Callable[[str], Extraction | None]], ...] = (
    (SIZE_NAMES, extract_dimensions),
    (MATERIAL_NAMES, extract_materials),
    (POLARIZED_NAMES, extract_polarized),
)


def extract_if_obvious(names: Sequence[str], text: str) -> Extraction | None:
    for substrings, extractor in EXTRACTION_RULES:
        if name_has(names, substrings):
            extracted = extractor(text)
            if extracted is not None:
                return extracted
    return None


# ---------------------------------------------------------------------------
# Enhancement-need decision
# ---------------------------------------------------------------------------

def is_trivial(text: str) -> bool:
    stripped = text.strip()
    return (
        len(stripped) < 2
        or stripped.lower() in _PLACEHOLDERS
        or not any(ch.isalpha() for ch in stripped)
    )


# (name substrings, predicate on text, decision)
AI_DECISIONS: tuple[tuple[tuple[str, ...], Callable[[str], bool], bool], ...] = (
    (COLOR_NAMES, lambda t: not is_trivial(t), True),
    (DESCRIPTION_NAMES, lambda t: len(t) > LONG_TEXT_LIMIT, True),
    (SIZE_NAMES, lambda t: len(t) > LONG_TEXT_LIMIT, True),
    (("name",), lambda t: " " in t, False),
    (("characteristic",), lambda t: len(t) < SHORT_CHARACTERISTICS_LIMIT, False),
    (("link", "url", "image"), lambda t: True, False),
    (("code",), lambda t: True, False),
    (("ean", "upc", "barcode"), lambda t: True, False),
    (("reference", "sku"), lambda t: True, False),
    (("price", "pvp"), lambda t: True, False),
    (("quantity", "qty"), lambda t: True, False),
    (("total",), lambda t: True, False),
)


def should_use_ai(names: Sequence[str], text: str) -> bool:
    for substrings, predicate, decision in AI_DECISIONS:
        if name_has(names, substrings) and predicate(text):
            return decision
    return len(text) > DEFAULT_AI_LENGTH


# ---------------------------------------------------------------------------
# Domain rules that make the service call unnecessary
# ---------------------------------------------------------------------------

COLOR_RULES: tuple[tuple[str, str, str], ...] = (
    ("shiny black", "Black", "Shiny Black"),
    ("matte black", "Black", "Matte Black"),
    ("demy brown", "Brown", "Demy Brown"),
    ("black and brown", "Brown", "Black and Brown"),
    ("clear", "Clear", "Clear"),
    ("transparent", "Clear", "Transparent"),
)

MATERIAL_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"100\s*%\s*acetate", re.IGNORECASE), "Acetate"),
)


@dataclass(frozen=True)
class DomainHit:
    value: Any
    note: str
    outcome: ColorOutcome | None = None


def apply_domain_rules(names: Sequence[str], text: str) -> DomainHit | None:
    lowered = text.lower()
    if name_has(names, COLOR_NAMES):
        for literal, base_color, description in COLOR_RULES:
            if literal in lowered:
                return DomainHit(
                    base_color,
                    f"Color rule: {literal}",
                    ColorOutcome(base_color=base_color, color_description=description),
                )
    if name_has(names, MATERIAL_NAMES):
        for pattern, material in MATERIAL_RULES:
            if pattern.search(text):
                return DomainHit(material, f"Material rule: {material}")
    return None
