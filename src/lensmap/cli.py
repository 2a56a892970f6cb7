"""Command-line entry point: ``lensmap convert`` and ``lensmap detect``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from lensmap.agents.idp.file_reader import read_file, sample_rows
from lensmap.agents.idp.type_classifier import TypeClassifierService
from lensmap.agents.orchestrator.pipeline_executor import PipelineExecutor
from lensmap.core.config import AppSettings, LLMConfig, OutputConfig
from lensmap.core.exceptions import LensMapError
from lensmap.core.logging import configure_logging
from lensmap.models.pipeline import PipelineResult


async def _run(executor: PipelineExecutor, path: str) -> PipelineResult:
    try:
        return await executor.process_file(path)
    finally:
        await executor.aclose()


def _convert(args: argparse.Namespace, settings: AppSettings) -> int:
    if args.output_dir:
        settings.output = OutputConfig(output_dir=args.output_dir)
    if args.provider:
        settings.llm = LLMConfig(provider=args.provider)
    executor = PipelineExecutor(settings)
    result = asyncio.run(_run(executor, args.path))
    summary = result.model_dump(exclude={"rows"}, mode="json")
    print(json.dumps(summary, indent=2))
    return 0 if result.success else 1


def _detect(args: argparse.Namespace, settings: AppSettings) -> int:
    try:
        table = read_file(args.path)
    except LensMapError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    classification = TypeClassifierService().classify(table.headers, sample_rows(table))
    print(json.dumps(classification.model_dump(mode="json"), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="lensmap", description="Normalize eyewear catalog files into canonical CSV"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")
    commands = parser.add_subparsers(dest="command", required=True)

    convert = commands.add_parser("convert", help="Run the full pipeline on a CSV/XLSX file")
    convert.add_argument("path", help="Input .csv or .xlsx file")
    convert.add_argument("--output-dir", default=None, help="Directory for the output CSV")
    convert.add_argument(
        "--provider", choices=["mock", "openai"], default=None,
        help="Enhancement provider (default from settings)",
    )
    convert.set_defaults(handler=_convert)

    detect = commands.add_parser("detect", help="Print the detected record type of a file")
    detect.add_argument("path", help="Input .csv or .xlsx file")
    detect.set_defaults(handler=_detect)

    args = parser.parse_args(argv)
    settings = AppSettings()
    configure_logging(args.log_level or settings.log_level)
    return args.handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())
