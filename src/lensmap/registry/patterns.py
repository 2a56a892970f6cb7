"""Header synonym vocabulary for mapping input columns to canonical field keys.

Order matters: field keys are tried in declaration order and the first
match wins, so more specific keys come before generic ones.
"""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")
_SEPARATORS = re.compile(r"[_-]")
_NON_ALNUM = re.compile(r"[\W_]+")

MAPPING_PATTERNS: dict[str, list[str]] = {
    # Universal
    "sku": ["reference", "sku", "ref", "id", "product_id", "item_id", "code", "product_code", "item_code"],
    "brand": ["brand", "manufacturer", "supplier"],
    "description": ["description", "title", "product_name"],
    "price": ["price", "cost", "wholesale_price", "net_price"],
    "recommendedPrice": ["recommended_price", "pvp", "retail_price", "retailprice", "msrp", "rrp"],
    "weight": ["weight"],
    "upc": ["ean", "upc", "barcode"],

    # Frame
    "color": ["frame_color", "framecolor", "color", "colour"],
    "colorDescription": ["color_description", "color_desc", "frame_color_desc", "colour_description"],
    "frameMaterial": ["composition", "characteristics", "material", "frame_material", "framematerial"],
    "frameShape": ["shape", "frame_shape", "frameshape"],
    "frameType": ["type", "frame_type", "frametype"],
    "collection": ["collection", "line", "series"],
    "manufacturerModel": ["model", "model_name", "name"],
    "image1": ["image1", "image", "link", "links", "photo", "url"],
    "processingDays": ["processing_days", "lead_time", "delivery"],

    # Individual dimensions
    "lensWidth": ["lens_width", "lenswidth", "width"],
    "bridgeWidth": ["bridge_width", "bridgewidth", "bridge"],
    "templeLength": ["temple_length", "templelength", "temple", "arms"],
    "lensHeight": ["lens_height", "lensheight", "height"],

    # Frame structure
    "rimType": ["rim_type", "rimtype"],
    "hingeType": ["hinge_type", "hingetype"],
    "gender": ["gender"],
    "season": ["season"],
    "frameCategory": ["frame_category", "framecategory", "category"],

    # Lens
    "index": ["index", "indice"],
    "coating": ["coating", "treatment"],
    "photochromic": ["photochromic"],
    "polarized": ["polarized", "polarised"],

    # Contact lens
    "baseCurve": ["base_curve", "curve"],
    "diameter": ["diameter", "dia"],
    "waterContent": ["water_content", "hydration"],

    # Misc
    "customsCode": ["customs_code", "customscode", "custom code", "customcode"],
    "quantity": ["quantity", "qty"],
}

# A single column carrying several dimensions; split later by the cleaner.
SIZE_FIELD_KEY = "size"
SIZE_PATTERNS: list[str] = ["size", "sizes", "dimension", "dimensions", "measurements", "measure"]
INDIVIDUAL_DIMENSION_KEYS: tuple[str, ...] = ("lensWidth", "bridgeWidth", "templeLength")

# Richer free text first: characteristics beats composition/material.
MATERIAL_FIELD_KEY = "frameMaterial"
MATERIAL_HEADER_PREFERENCE: tuple[tuple[str, ...], ...] = (
    ("characteristic",),
    ("composition", "material"),
)


def normalize_header(text: str) -> str:
    """Lowercase and strip whitespace, separators and any other non-alphanumerics.

    Idempotent: normalizing a normalized header returns it unchanged.
    """
    text = str(text).lower()
    text = _WHITESPACE.sub("", text)
    text = _SEPARATORS.sub("", text)
    return _NON_ALNUM.sub("", text)


def get_patterns_for_field(field_key: str) -> list[str]:
    if field_key == SIZE_FIELD_KEY:
        return list(SIZE_PATTERNS)
    return list(MAPPING_PATTERNS.get(field_key, []))


def get_all_field_keys() -> list[str]:
    return list(MAPPING_PATTERNS)


def is_loose_match(left: str, right: str) -> bool:
    """Exact or containment match between two normalized, non-empty strings."""
    if not left or not right:
        return False
    return left == right or left in right or right in left


def header_matches_field(header: str, field_key: str) -> bool:
    normalized = normalize_header(header)
    return any(
        is_loose_match(normalized, normalize_header(pattern))
        for pattern in get_patterns_for_field(field_key)
    )


def find_best_matching_field(header: str) -> tuple[str, str, bool] | None:
    """Return ``(field_key, matched_pattern, exact)`` for a header, or None.

    Exact matches across the whole vocabulary take priority over
    containment matches.
    """
    normalized = normalize_header(header)
    if not normalized:
        return None

    for field_key, patterns in MAPPING_PATTERNS.items():
        for pattern in patterns:
            if normalized == normalize_header(pattern):
                return field_key, pattern, True

    for field_key, patterns in MAPPING_PATTERNS.items():
        for pattern in patterns:
            if is_loose_match(normalized, normalize_header(pattern)):
                return field_key, pattern, False

    return None
