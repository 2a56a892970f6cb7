"""Semantic category of a field, decided by ordered substring predicates."""

from __future__ import annotations

from lensmap.models.fields import FieldCategory

# First match wins.
CATEGORY_RULES: tuple[tuple[FieldCategory, tuple[str, ...]], ...] = (
    (FieldCategory.COLOR, ("color", "colour")),
    (FieldCategory.DESCRIPTION, ("description", "desc")),
    (
        FieldCategory.CHARACTERISTICS,
        ("characteristic", "feature", "polarized", "uv", "protection", "category"),
    ),
    (FieldCategory.NAME, ("name", "model", "product", "sku")),
    (
        FieldCategory.SIZE,
        ("size", "dimension", "lens", "bridge", "temple", "width", "height", "length"),
    ),
)


def categorize(field_key: str) -> FieldCategory:
    lowered = field_key.lower()
    for category, substrings in CATEGORY_RULES:
        if any(s in lowered for s in substrings):
            return category
    return FieldCategory.OTHER
