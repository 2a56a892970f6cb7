"""End-to-end tests for the pipeline executor with an offline provider."""

from __future__ import annotations

import csv

import pytest

from lensmap.agents.orchestrator.pipeline_executor import PipelineExecutor
from lensmap.agents.transform.csv_writer import CsvOutputSink
from lensmap.core.config import AppSettings
from lensmap.models.pipeline import StepStatus
from lensmap.models.record import IngestedTable
from tests.fakes import MemoryCacheBackend, MockModelProvider

pytestmark = pytest.mark.asyncio

FRAMES_CSV = (
    "Reference,Frame Color,Bridge Width,Temple Length,Lens Width,Description\n"
    "OC-1,Shiny black,18,140,52,Acetate frame\n"
    "OC-2,Havana tortoise,19,145,54,Metal frame\n"
)


@pytest.fixture
def executor(tmp_path):
    return PipelineExecutor(
        AppSettings(),
        model=MockModelProvider(configured=False),
        cache=MemoryCacheBackend(),
        sink=CsvOutputSink(tmp_path / "out"),
    )


@pytest.fixture
def frames_file(tmp_path):
    path = tmp_path / "ocean_frames.csv"
    path.write_text(FRAMES_CSV, encoding="utf-8")
    return path


async def test_frame_file_runs_every_stage(executor, frames_file):
    result = await executor.process_file(frames_file)

    assert result.success
    assert result.errors == []
    assert [s.name for s in result.steps] == [
        "read", "classify", "map", "clean", "enhance", "assemble", "write",
    ]
    assert result.step("classify").status == StepStatus.COMPLETED
    assert result.step("map").status == StepStatus.WARNING
    assert all(s.duration_ms is not None for s in result.steps)
    assert result.record_type == "FRAME"
    assert result.brand == "Ocean"

    first, second = result.rows
    assert first["sku"] == "OC-1"
    assert first["brand"] == "Ocean"
    assert first["color"] == "Black"
    assert first["colorDescription"] == "Shiny Black"
    assert first["frameCategory"] == "Sunglasses"
    assert first["lensWidth"] == "52"
    assert second["color"] == "Havana tortoise"

    assert result.stats["ingestion"]["cleaned_rows"] == 2
    assert result.stats["enhancement"]["simulated"] == 1
    assert result.stats["usage"]["total_calls"] == 0
    assert result.stats["output"]["record_count"] == 2

    with open(result.stats["output"]["path"], encoding="utf-8", newline="") as handle:
        written = list(csv.reader(handle))
    assert written[0][:3] == ["Brand", "Frame category", "SKU"]
    assert len(written) == 3


async def test_unknown_type_fails_at_assembly(executor, tmp_path):
    path = tmp_path / "mystery.csv"
    path.write_text("foo,qux\n1,2\n", encoding="utf-8")

    result = await executor.process_file(path)

    assert not result.success
    assert result.record_type == "UNKNOWN"
    assert result.step("classify").status == StepStatus.WARNING
    assert result.step("assemble").status == StepStatus.FAILED
    assert result.step("write") is None
    assert len(result.errors) == 1
    assert result.brand == "Unknown"


async def test_unreadable_file(executor, tmp_path):
    result = await executor.process_file(tmp_path / "catalog.pdf")

    assert not result.success
    assert [s.name for s in result.steps] == ["read"]
    assert result.steps[0].status == StepStatus.FAILED
    assert "Unsupported file format" in result.errors[0]


async def test_process_table_without_output(executor):
    table = IngestedTable(
        headers=["reference", "framecolor", "size"],
        rows=[{"reference": "NK-7", "framecolor": "Clear", "size": "Width: 50 Height: 44"}],
        file_name="api",
    )

    result = await executor.process_table(table, brand="Nike", write_output=False)

    assert result.success
    assert result.step("write") is None
    row = result.rows[0]
    assert row["brand"] == "Nike"
    assert row["frameCategory"] == "Eyeglasses"
    assert row["lensWidth"] == 50
    assert row["lensHeight"] == 44
    assert row["frameType"] == "round"
    assert row["frameShape"] == "rectangular"
    assert result.stats["enhancement"]["size_rows_analyzed"] == 1


async def test_aclose_releases_the_provider(tmp_path):
    provider = MockModelProvider(configured=False)
    executor = PipelineExecutor(
        AppSettings(), model=provider, cache=MemoryCacheBackend(), sink=CsvOutputSink(tmp_path)
    )

    await executor.aclose()

    assert provider.closed
