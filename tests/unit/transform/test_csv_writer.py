"""Tests for the CSV output sink."""

from __future__ import annotations

import csv
from datetime import datetime

import pytest

from lensmap.agents.transform.csv_writer import CsvOutputSink, output_filename, write_csv
from lensmap.core.exceptions import OutputError, SchemaNotFoundError
from lensmap.core.protocols import IOutputSink
from lensmap.registry.schemas import get_schema_values


def test_output_filename():
    stamp = datetime(2024, 5, 1, 12, 30, 5)
    assert output_filename("Ocean", "FRAME", stamp) == "output-ocean-frame-2024-05-01T12-30-05.csv"


def test_sink_satisfies_protocol(tmp_path):
    assert isinstance(CsvOutputSink(tmp_path), IOutputSink)


def test_write_csv_uses_schema_labels_and_order(tmp_path):
    rows = [
        {"sku": "OC-1", "brand": "Ocean", "description": 'Frame, "classic"', "price": 49.9},
        {"sku": "OC-2", "brand": "Ocean", "price": None},
    ]
    export = write_csv(rows, "FRAME", "Ocean", output_dir=tmp_path / "out")

    with open(export.path, encoding="utf-8", newline="") as handle:
        written = list(csv.reader(handle))

    labels = get_schema_values("FRAME")
    assert written[0] == labels
    assert written[1][labels.index("SKU")] == "OC-1"
    assert written[1][labels.index("Description")] == 'Frame, "classic"'
    assert written[1][labels.index("Price")] == "49.9"
    assert written[2][labels.index("Price")] == ""
    assert export.record_count == 2
    assert export.column_count == len(labels)
    assert export.filename.startswith("output-ocean-frame-")
    assert export.brand == "Ocean"


def test_write_failure_is_wrapped(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory", encoding="utf-8")
    sink = CsvOutputSink(blocker)
    with pytest.raises(OutputError):
        sink.write([], {"sku": "SKU"}, brand="Ocean", record_type="FRAME")


def test_write_csv_unknown_type(tmp_path):
    with pytest.raises(SchemaNotFoundError):
        write_csv([], "UNKNOWN", "Ocean", output_dir=tmp_path)
