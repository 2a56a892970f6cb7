"""Canonical output schemas per record type.

Each schema is an ordered mapping from canonical field key to the column
label written to the output file. Column order follows key order.
"""

from __future__ import annotations

from lensmap.core.exceptions import SchemaNotFoundError
from lensmap.models.record import RecordType

SCHEMAS: dict[RecordType, dict[str, str]] = {
    RecordType.FRAME: {
        "brand": "Brand",
        "frameCategory": "Frame category",
        "sku": "SKU",
        "description": "Description",
        "collection": "Collection",
        "gender": "Gender",
        "frameType": "Frame type",
        "frameMaterial": "Frame material",
        "frameShape": "Frame shape",
        "color": "Color",
        "colorDescription": "Color description",
        "lensWidth": "Lens width",
        "bridgeWidth": "Bridge width",
        "templeLength": "Temple length",
        "lensHeight": "Lens height",
        "rimType": "Rim type",
        "hingeType": "Hinge type",
        "manufacturerModel": "Manufacturer model #",
        "upc": "UPC",
        "season": "Season",
        "weight": "Weight",
        "recommendedPrice": "Recommended Price",
        "price": "Price",
        "processingDays": "Processing days",
        "image1": "Image1",
        "image2": "Image2",
        "image3": "Image3",
    },
    RecordType.LENS: {
        "opticalSolution": "OpticalSolution",
        "solution": "Solution",
        "opticalDesign": "OpticalDesign",
        "index": "Index",
        "diameter": "Diameter",
        "coating": "Coating",
        "treatment": "Treatment",
        "treatmentColor": "TreatmentColor",
        "photochromic": "Photochromic",
        "ar": "AR",
        "sku": "SKU",
        "supplierName": "SupplierName",
        "weight": "Weight",
        "price": "Price",
        "processingDays": "ProcessingDays",
        "sphereRangeMin": "SphereRangeMin",
        "sphereRangeMax": "SphereRangeMax",
        "cylinderRangeMin": "CylinderRangeMin",
        "cylinderRangeMax": "CylinderRangeMax",
        "addRangeMin": "AddRangeMin",
        "addRangeMax": "AddRangeMax",
    },
    RecordType.EYE_GLASSES: {
        "brand": "Brand",
        "sku": "SKU",
        "description": "Description",
        "frameSku": "Frame SKU",
        "lensSku": "Lens SKU",
        "gender": "Gender",
        "frameMaterial": "FrameMaterial",
        "frameShape": "FrameShape",
        "color": "Color",
        "lensType": "LensType",
        "index": "Index",
        "coating": "Coating",
        "ar": "AR",
        "photochromic": "Photochromic",
        "sphereRangeMin": "SphereRangeMin",
        "sphereRangeMax": "SphereRangeMax",
        "cylinderRangeMin": "CylinderRangeMin",
        "cylinderRangeMax": "CylinderRangeMax",
        "addRangeMin": "AddRangeMin",
        "addRangeMax": "AddRangeMax",
        "pdRangeMin": "PDRangeMin",
        "pdRangeMax": "PDRangeMax",
        "price": "Price",
        "processingDays": "ProcessingDays",
        "weight": "Weight",
        "image1": "Image1",
        "image2": "Image2",
    },
    RecordType.CONTACT_LENS: {
        "brand": "Brand",
        "sku": "SKU",
        "description": "Description",
        "lensModality": "LensModality",
        "wearSchedule": "WearSchedule",
        "replacementSchedule": "ReplacementSchedule",
        "material": "Material",
        "waterContent": "WaterContent",
        "oxygenPermeability": "OxygenPermeability",
        "baseCurve": "BaseCurve",
        "diameter": "Diameter",
        "powerRangeMin": "PowerRangeMin",
        "powerRangeMax": "PowerRangeMax",
        "cylinderRangeMin": "CylinderRangeMin",
        "cylinderRangeMax": "CylinderRangeMax",
        "axisSteps": "AxisSteps",
        "addPowerOptions": "AddPowerOptions",
    },
}


def get_schema(record_type: str) -> dict[str, str]:
    """Ordered field key -> label mapping; empty for unknown types."""
    try:
        key = RecordType(record_type)
    except ValueError:
        return {}
    return dict(SCHEMAS.get(key, {}))


def require_schema(record_type: str) -> dict[str, str]:
    schema = get_schema(record_type)
    if not schema:
        raise SchemaNotFoundError(f"No canonical schema for record type {record_type!r}")
    return schema


def get_schema_keys(record_type: str) -> list[str]:
    return list(get_schema(record_type))


def get_schema_values(record_type: str) -> list[str]:
    return list(get_schema(record_type).values())


def has_field(record_type: str, field_key: str) -> bool:
    return field_key in get_schema(record_type)


def get_standard_field_name(record_type: str, field_key: str) -> str | None:
    return get_schema(record_type).get(field_key)
