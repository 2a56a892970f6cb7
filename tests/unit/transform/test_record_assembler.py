"""Tests for canonical row assembly."""

from __future__ import annotations

import pytest

from lensmap.agents.transform.record_assembler import RecordAssembler, to_scalar
from lensmap.core.exceptions import SchemaNotFoundError
from lensmap.models.fields import ColorOutcome, DescriptionOutcome, EnhancedField
from lensmap.models.record import RecordType
from lensmap.registry.schemas import get_schema_keys


def field(value, outcome=None):
    return EnhancedField(value=value, confidence=85, outcome=outcome)


@pytest.fixture
def assembler():
    return RecordAssembler()


@pytest.fixture
def frame_row():
    return {
        "sku": field("OC-1"),
        "color": field("Black", ColorOutcome(base_color="Black", color_description="Shiny Black")),
        "description": field("Acetate frame from the Las Vegas line"),
        "size": field({"lensWidth": 52, "bridgeWidth": 18, "templeLength": 140}),
        "frameMaterial": field({"frameMaterial": "Acetate", "lensMaterial": "Nylon"}),
        "price": field(49.9),
        "notes": field("internal"),
    }


class TestFrameAssembly:
    def test_every_schema_key_in_order(self, assembler, frame_row):
        result = assembler.assemble([frame_row], RecordType.FRAME, "Ocean")
        row = result.rows[0]
        assert list(row) == get_schema_keys(RecordType.FRAME)
        assert list(result.columns) == list(row)

    def test_derived_fields(self, assembler, frame_row):
        row = assembler.assemble([frame_row], RecordType.FRAME, "Ocean").rows[0]
        assert row["brand"] == "Ocean"
        assert row["sku"] == "OC-1"
        assert row["frameCategory"] == "Sunglasses"
        assert row["collection"] == "LAS VEGAS"
        assert row["gender"] == "Unisex"
        assert row["frameMaterial"] == "Acetate"
        assert row["color"] == "Black"
        assert row["colorDescription"] == "Shiny Black"
        assert (row["lensWidth"], row["bridgeWidth"], row["templeLength"]) == (52, 18, 140)
        assert row["lensHeight"] == ""
        assert row["season"] == "All Year"
        assert row["price"] == 49.9

    def test_stats_and_coverage(self, assembler, frame_row):
        result = assembler.assemble([frame_row], RecordType.FRAME, "Ocean")
        assert result.stats.succeeded == 1
        assert result.stats.failed == 0
        assert result.stats.fields_filled == 14
        assert result.coverage.mapped_fields == 6
        assert result.coverage.unmapped_source_fields == ["notes"]
        assert result.coverage.coverage == 22

    @pytest.mark.parametrize(
        "row, category",
        [
            ({"color": field("Crystal clear")}, "Eyeglasses"),
            ({"color": field("Transp. grey")}, "Eyeglasses"),
            ({"polarized": field(True)}, "Sunglasses"),
            ({"polarized": field(False)}, "Eyeglasses"),
            ({}, "Eyeglasses"),
        ],
    )
    def test_frame_category(self, assembler, row, category):
        assembled = assembler.assemble([row], RecordType.FRAME, "Nike").rows[0]
        assert assembled["frameCategory"] == category

    def test_description_analysis(self, assembler):
        outcome = DescriptionOutcome(
            summary="Cat-eye acetate frame", gender="Female",
            collection="CLASSIC", frame_type="full-rim", frame_shape="cat-eye",
        )
        row = {
            "description": field("Cat-eye acetate frame", outcome),
            "frameShape": field("oval"),
        }
        assembled = assembler.assemble([row], RecordType.FRAME, "Ocean").rows[0]
        assert assembled["collection"] == "CLASSIC"
        assert assembled["gender"] == "Female"
        assert assembled["frameType"] == "full-rim"
        assert assembled["frameShape"] == "oval"

    def test_long_values_are_truncated(self, assembler):
        row = {"description": field("d" * 250), "frameMaterial": field("m" * 150)}
        assembled = assembler.assemble([row], RecordType.FRAME, "Ocean").rows[0]
        assert len(assembled["description"]) == 200
        assert len(assembled["frameMaterial"]) == 100


def test_bad_row_is_counted_and_skipped(assembler, frame_row):
    result = assembler.assemble([frame_row, "not a row"], RecordType.FRAME, "Ocean")
    assert len(result.rows) == 1
    assert result.stats.total_rows == 2
    assert result.stats.failed == 1


def test_lens_rows_copy_same_key_fields(assembler):
    row = {"sku": field("LN-1"), "index": field("1.67"), "coating": field("AR")}
    assembled = assembler.assemble([row], RecordType.LENS, "Ocean").rows[0]
    assert assembled["sku"] == "LN-1"
    assert assembled["index"] == "1.67"
    assert "brand" not in assembled
    assert assembled["sphereRangeMin"] == ""


def test_unknown_record_type_raises(assembler):
    with pytest.raises(SchemaNotFoundError):
        assembler.assemble([], RecordType.UNKNOWN, "Ocean")


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        ("text", "text"),
        (3, 3),
        (True, True),
        ({"value": "inner"}, "inner"),
        ({"summary": "Short"}, "Short"),
        ({"lensWidth": 52, "bridgeWidth": None}, "lensWidth:52"),
        (["Red", "", "Blue"], "Red, Blue"),
        (DescriptionOutcome(summary="Modelled"), "Modelled"),
    ],
)
def test_to_scalar(value, expected):
    assert to_scalar(value) == expected
