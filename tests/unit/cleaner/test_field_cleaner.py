"""Tests for the deterministic field cleaner."""

from __future__ import annotations

import pytest

from lensmap.agents.cleaner.field_cleaner import FieldCleanerService
from lensmap.models.fields import ColorOutcome, FieldSource
from lensmap.models.record import RecordType
from lensmap.models.schema_mapping import ColumnMapping

LONG_MATERIAL = (
    "100%Acetate premium handcrafted frame made in Italy "
    "with a polished finish and spring hinges"
)


@pytest.fixture
def cleaner():
    return FieldCleanerService()


class TestPassthrough:
    @pytest.mark.parametrize("raw, confidence", [("", 0), (None, 0), (52, 100), (0, 0)])
    def test_empty_and_non_string(self, cleaner, raw, confidence):
        field = cleaner.clean_field("lensWidth", raw)
        assert field.value == raw
        assert field.confidence == confidence
        assert not field.needs_ai


class TestExtraction:
    def test_size_decomposition(self, cleaner):
        field = cleaner.clean_field("size", "Width: 52 Bridge: 18 Arms: 140")
        assert field.value == {"lensWidth": 52, "bridgeWidth": 18, "templeLength": 140}
        assert field.confidence == 85
        assert field.source == FieldSource.RULE
        assert not field.needs_ai

    def test_lens_height_only_when_present(self, cleaner):
        field = cleaner.clean_field("size", "Lens width: 52 Lens height: 40")
        assert field.value == {"lensWidth": 52, "lensHeight": 40}

    def test_materials(self, cleaner):
        field = cleaner.clean_field("frameMaterial", "Frame: Acetate Lens: Nylon",
                                    source_header="composition")
        assert field.value == {"frameMaterial": "Acetate", "lensMaterial": "Nylon"}
        assert field.confidence == 90

    def test_polarized_boolean(self, cleaner):
        field = cleaner.clean_field("polarized", " Yes ")
        assert field.value is True
        assert field.confidence == 95

    def test_polarized_free_text_is_not_extracted(self, cleaner):
        field = cleaner.clean_field("polarized", "Category 3")
        assert field.value == "Category 3"
        assert field.source == FieldSource.CLEANER


class TestGenericCleaning:
    def test_whitespace_bonus(self, cleaner):
        field = cleaner.clean_field("sku", "  AB   12 ")
        assert field.value == "AB 12"
        assert field.confidence == 65
        assert field.notes == ["Normalized spaces"]

    def test_plain_value(self, cleaner):
        field = cleaner.clean_field("sku", " OC-1 ")
        assert field.value == "OC-1"
        assert field.confidence == 60
        assert field.notes == []


class TestEnhancementDecision:
    def test_color_needs_enhancement(self, cleaner):
        field = cleaner.clean_field("color", "Havana tortoise")
        assert field.needs_ai
        assert field.value == "Havana tortoise"
        assert field.confidence <= 70

    def test_placeholder_color_is_final(self, cleaner):
        field = cleaner.clean_field("color", "-")
        assert not field.needs_ai

    def test_long_description(self, cleaner):
        field = cleaner.clean_field("description", "Lightweight frame " * 7)
        assert field.needs_ai
        assert field.confidence == 60

    def test_image_url_is_never_enhanced(self, cleaner):
        url = "https://cdn.example.com/catalogue/2024/frames/ocean/" + "x" * 60 + ".jpg"
        field = cleaner.clean_field("image1", url)
        assert not field.needs_ai
        assert field.value == url

    def test_short_characteristics_are_final(self, cleaner):
        field = cleaner.clean_field("frameMaterial", "UV400 polarized",
                                    source_header="characteristics")
        assert not field.needs_ai

    def test_header_name_is_consulted(self, cleaner):
        field = cleaner.clean_field("notes", "x" * 90, source_header="ean_code")
        assert not field.needs_ai

    def test_long_unknown_text_needs_enhancement(self, cleaner):
        field = cleaner.clean_field("notes", "word " * 20)
        assert field.needs_ai


class TestDomainRules:
    def test_color_rule(self, cleaner):
        field = cleaner.clean_field("color", "Shiny black")
        assert field.value == "Black"
        assert field.confidence == 95
        assert field.source == FieldSource.DOMAIN_RULE
        assert not field.needs_ai
        assert isinstance(field.outcome, ColorOutcome)
        assert field.outcome.color_description == "Shiny Black"

    def test_transparent(self, cleaner):
        field = cleaner.clean_field("color", "Transparent crystal")
        assert field.value == "Clear"

    def test_material_rule_on_long_text(self, cleaner):
        assert len(LONG_MATERIAL) > 80
        field = cleaner.clean_field("frameMaterial", LONG_MATERIAL, source_header="composition")
        assert field.value == "Acetate"
        assert field.source == FieldSource.DOMAIN_RULE
        assert field.outcome is None


def test_cleaning_is_deterministic(cleaner):
    first = cleaner.clean_field("color", "Matte  black")
    second = cleaner.clean_field("color", "Matte  black")
    assert first == second


def test_clean_batch_rekeys_and_counts(cleaner):
    mapping = ColumnMapping(
        record_type=RecordType.FRAME,
        mapping={"sku": "reference", "color": "framecolor", "size": "size"},
    )
    rows = [
        {"reference": "OC-1", "framecolor": "Havana tortoise",
         "size": "Width: 52 Bridge: 18", "notes": "x"},
        {"reference": "OC-2", "framecolor": "Matte black frame", "size": "", "notes": ""},
    ]
    cleaned, stats = cleaner.clean_batch(rows, mapping)

    assert list(cleaned[0]) == ["sku", "color", "size", "notes"]
    assert cleaned[0]["color"].source_header == "framecolor"
    assert cleaned[0]["color"].needs_ai
    assert cleaned[1]["color"].value == "Black"
    assert stats.total_fields == 8
    assert stats.transformed == 4
    assert stats.needs_ai == 1
    assert stats.cleaned_fields == 7
    assert stats.extracted == 1
    assert stats.ruled == 1
