"""Tests for record type detection."""

from __future__ import annotations

import pytest

from lensmap.agents.idp.type_classifier import TypeClassifierService, relative_confidence
from lensmap.models.record import RecordType


@pytest.fixture
def classifier():
    return TypeClassifierService()


def test_empty_input_is_unknown(classifier):
    result = classifier.classify([], [])
    assert result.record_type == RecordType.UNKNOWN
    assert result.confidence == 0
    assert result.matched_keywords == []
    assert "UNKNOWN" in result.reasoning


def test_frame_headers_dominate(classifier):
    headers = ["reference", "framecolor", "bridgewidth", "templelength", "lenswidth"]
    result = classifier.classify(headers, [])
    assert result.record_type == RecordType.FRAME
    assert result.confidence == 95
    assert result.scores[RecordType.FRAME] == 8
    assert result.matched_keywords == ["frame", "bridge", "temple", "lens width"]


def test_values_count_half_as_much_as_headers(classifier):
    rows = [{"reference": "A1", "description": "Polarized frame with spring hinge"}]
    result = classifier.classify(["reference", "description"], rows)
    assert result.record_type == RecordType.FRAME
    assert result.scores[RecordType.FRAME] == 2
    assert result.confidence == 75
    assert result.matched_keywords == ["frame", "hinge"]


def test_only_first_five_rows_are_sampled(classifier):
    rows = [{"note": "plain"}] * 5 + [{"note": "hinge"}]
    result = classifier.classify(["note"], rows)
    assert result.record_type == RecordType.UNKNOWN


def test_tie_goes_to_first_declared_type(classifier):
    result = classifier.classify(["frame", "coating"], [])
    assert result.record_type == RecordType.LENS
    assert result.confidence == 60


def test_is_acceptable_threshold(classifier):
    result = classifier.classify(["frame", "coating"], [])
    assert result.is_acceptable(60)
    assert not result.is_acceptable(61)


@pytest.mark.parametrize(
    "best, expected",
    [(5, 70.0), (6, 70.0), (7, 80.0), (8, 95.0), (9, 95.0)],
)
def test_relative_confidence_grows_with_dominance(best, expected):
    scores = {RecordType.LENS: best, RecordType.FRAME: 10 - best}
    assert relative_confidence(scores, best) == expected


@pytest.mark.parametrize("best, expected", [(1, 60.0), (2, 75.0), (4, 85.0), (6, 95.0)])
def test_single_type_tiers(best, expected):
    assert relative_confidence({RecordType.FRAME: best}, best) == expected


def test_custom_keywords():
    classifier = TypeClassifierService({RecordType.CONTACT_LENS: ("toric",)})
    result = classifier.classify(["toric"], [])
    assert result.record_type == RecordType.CONTACT_LENS
