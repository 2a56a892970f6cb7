"""Instruction templates for the enhancement service.

Values are listed in a fixed numbered order, so response entry ``i`` is
read back as the result for input ``i``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from lensmap.models.fields import FieldCategory

_FIELD_GUIDES: dict[FieldCategory, tuple[str, str]] = {
    FieldCategory.COLOR: (
        "Analyze color information for eyewear frames",
        "{baseColor,colorDescription,hasLens}\n"
        "- baseColor: Primary color (Black, Brown, Blue, Red, Green, etc.)\n"
        '- colorDescription: Full color description (e.g., "Shiny Black", "Matte Brown")\n'
        "- hasLens: true if includes lens color, false if frame only",
    ),
    FieldCategory.DESCRIPTION: (
        "Analyze eyewear product descriptions and extract key information",
        "{summary,gender,model,collection,frameType,frameShape}\n"
        "- summary: Clean product description (max 8 words) focused on main product features\n"
        "- gender: Male/Female/Unisex (look for gender indicators)\n"
        "- model: Main model name or number mentioned\n"
        '- collection: Brand collection/series name (e.g., "LAS VEGAS", "CLASSIC", "SPORT")\n'
        "- frameType: full-rim/semi-rimless/rimless (infer from description)\n"
        "- frameShape: rectangular/round/oval/cat-eye/aviator/square/other",
    ),
    FieldCategory.CHARACTERISTICS: (
        "Analyze eyewear characteristics and features",
        "{polarized,uv,protection,category}\n"
        '- polarized: true/false (look for "polarized", "polarization")\n'
        '- uv: true/false (look for "UV", "ultraviolet", "protection")\n'
        "- protection: UV400/UV380/none (extract protection level)\n"
        "- category: Sunglasses/Reading/Computer/Other",
    ),
    FieldCategory.NAME: (
        "Extract product names and model information",
        "{productName,modelNumber,brand}\n"
        "- productName: Clean product name (max 6 words)\n"
        "- modelNumber: Model number/code if present\n"
        "- brand: Brand name if mentioned",
    ),
    FieldCategory.SIZE: (
        "Analyze eyewear frame dimensions",
        "{frameType,frameShape,rimType,hingeType}\n"
        "- frameType: full-rim/semi-rimless/rimless (infer from dimensions)\n"
        "- frameShape: rectangular/round/oval/cat-eye/aviator/square/other (use L/H ratio)\n"
        "- rimType: full/semi/rimless (infer from frameType)\n"
        "- hingeType: standard/spring/pin/screw/other (default: standard)",
    ),
    FieldCategory.OTHER: (
        "Clean and standardize data",
        "{cleanedValue,confidence}\n"
        "- cleanedValue: Cleaned and standardized value\n"
        "- confidence: 1-100 confidence in the cleaning",
    ),
}

# Terse size-pass vocabulary: abbreviation -> canonical value.
FRAME_TYPE_CODES = {"f": "full-rim", "s": "semi-rimless", "r": "rimless"}
FRAME_SHAPE_CODES = {
    "rec": "rectangular", "rnd": "round", "ov": "oval", "cat": "cat-eye",
    "av": "aviator", "sq": "square", "oth": "other",
}
RIM_TYPE_CODES = {"f": "full", "s": "semi", "r": "rimless"}
HINGE_TYPE_CODES = {"std": "standard", "spr": "spring", "pin": "pin", "scr": "screw", "oth": "other"}


def encode_dimensions(dims: Mapping[str, Any]) -> str:
    """Compact positional encoding, missing dimensions as 0: ``L52B18T140H0``."""
    return "L{}B{}T{}H{}".format(
        dims.get("lensWidth") or 0,
        dims.get("bridgeWidth") or 0,
        dims.get("templeLength") or 0,
        dims.get("lensHeight") or 0,
    )


def _render(category: FieldCategory, value: Any) -> str:
    if category == FieldCategory.SIZE and isinstance(value, Mapping):
        return encode_dimensions(value)
    return json.dumps(str(value), ensure_ascii=False)


def build_batch_prompt(category: FieldCategory, values: Sequence[Any]) -> str:
    title, guide = _FIELD_GUIDES[category]
    listing = "\n".join(f"{i}.{_render(category, v)}" for i, v in enumerate(values, start=1))
    return (
        f"{title}:\n{listing}\n"
        f'Return a JSON object {{"results": [...]}} whose array holds EXACTLY {len(values)} '
        f"objects, in input order: [{guide.splitlines()[0]}] where:\n"
        + "\n".join(guide.splitlines()[1:])
    )


def build_individual_prompt(category: FieldCategory, value: Any) -> str:
    title, guide = _FIELD_GUIDES[category]
    return f"{title}: {_render(category, value)}\nReturn one JSON object {guide}"


def build_size_prompt(dimensions: Sequence[Mapping[str, Any]]) -> str:
    dims = " ".join(f"{i}.{encode_dimensions(d)}" for i, d in enumerate(dimensions, start=1))
    return (
        f"Analyze dims:{dims}\n"
        'Ret JSON:{"results":[{ft,fs,rt,ht}]}\n'
        "ft:f=full-rim,s=semi-rimless,r=rimless\n"
        "fs:rec=rectangular,rnd=round,ov=oval,cat=cat-eye,av=aviator,sq=square,oth=other\n"
        "rt:f=full,s=semi,r=rimless\n"
        "ht:std=standard,spr=spring,pin=pin,scr=screw,oth=other\n"
        "Use ratio L/H for shape. std vals: ft=f,fs=rec,rt=f,ht=std"
    )
