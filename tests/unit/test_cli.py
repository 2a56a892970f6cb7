"""Tests for the lensmap command line."""

from __future__ import annotations

import json

import pytest

from lensmap.agents.orchestrator.pipeline_executor import PipelineExecutor
from lensmap.cli import main


@pytest.fixture(autouse=True)
def _offline(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("LENSMAP_LLM_API_KEY", raising=False)


@pytest.fixture
def frames_file(tmp_path):
    path = tmp_path / "nike_frames.csv"
    path.write_text(
        "reference,frame_color,bridge_width,temple_length,lens_width\n"
        "NK-1,Matte black,18,140,52\n",
        encoding="utf-8",
    )
    return path


def test_detect_prints_classification(frames_file, capsys):
    assert main(["detect", str(frames_file)]) == 0
    body = json.loads(capsys.readouterr().out)
    assert body["record_type"] == "FRAME"
    assert body["confidence"] == 95


def test_detect_reports_read_errors(tmp_path, capsys):
    assert main(["detect", str(tmp_path / "frames.txt")]) == 1
    assert "Unsupported file format" in capsys.readouterr().err


def test_convert_writes_output(frames_file, tmp_path, capsys):
    out_dir = tmp_path / "converted"
    code = main(["--log-level", "WARNING", "convert", str(frames_file),
                 "--output-dir", str(out_dir), "--provider", "openai"])

    assert code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["success"] is True
    assert summary["brand"] == "Nike"
    assert "rows" not in summary
    assert len(list(out_dir.glob("output-nike-frame-*.csv"))) == 1


def test_convert_failure_exit_code(tmp_path, capsys):
    path = tmp_path / "mystery.csv"
    path.write_text("foo\n1\n", encoding="utf-8")
    assert main(["convert", str(path), "--output-dir", str(tmp_path)]) == 1
    assert json.loads(capsys.readouterr().out)["success"] is False


def test_convert_closes_the_executor(frames_file, tmp_path, monkeypatch, capsys):
    closed = []
    original = PipelineExecutor.aclose

    async def recording_aclose(self):
        closed.append(self)
        await original(self)

    monkeypatch.setattr(PipelineExecutor, "aclose", recording_aclose)

    assert main(["convert", str(frames_file), "--output-dir", str(tmp_path)]) == 0
    assert len(closed) == 1


def test_command_is_required():
    with pytest.raises(SystemExit):
        main([])
