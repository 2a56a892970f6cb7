"""Writes canonical rows to a CSV file with schema labels as the header."""

from __future__ import annotations

import csv
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from lensmap.core.exceptions import OutputError
from lensmap.models.outputs import ExportFile
from lensmap.registry.schemas import require_schema

logger = logging.getLogger(__name__)


def output_filename(brand: str, record_type: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    return f"output-{brand.lower()}-{str(record_type).lower()}-{stamp}.csv"


class CsvOutputSink:
    """IOutputSink writing one file per batch into ``output_dir``."""

    def __init__(self, output_dir: str | Path = ".") -> None:
        self._output_dir = Path(output_dir)

    def write(
        self,
        rows: Sequence[Mapping[str, Any]],
        schema: Mapping[str, str],
        *,
        brand: str,
        record_type: str,
    ) -> ExportFile:
        filename = output_filename(brand, record_type)
        path = self._output_dir / filename
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as handle:
                writer = csv.writer(handle, quoting=csv.QUOTE_MINIMAL)
                writer.writerow(list(schema.values()))
                for row in rows:
                    writer.writerow(["" if row.get(key) is None else row.get(key) for key in schema])
        except OSError as exc:
            raise OutputError(f"Could not write {path}: {exc}") from exc

        logger.info("Wrote %d rows to %s", len(rows), path)
        return ExportFile(
            filename=filename,
            path=str(path),
            record_count=len(rows),
            column_count=len(schema),
            record_type=str(record_type),
            brand=brand,
        )


def write_csv(
    rows: Sequence[Mapping[str, Any]],
    record_type: str,
    brand: str,
    output_dir: str | Path = ".",
) -> ExportFile:
    """Write rows in the canonical column order of ``record_type``."""
    return CsvOutputSink(output_dir).write(
        rows, require_schema(record_type), brand=brand, record_type=record_type
    )
