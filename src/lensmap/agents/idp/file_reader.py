"""Tabular file ingestion: CSV/XLSX into normalized headers and string rows."""

from __future__ import annotations

import csv
import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import openpyxl

from lensmap.core.exceptions import IngestionError, UnsupportedFileFormatError
from lensmap.core.types import RawRecord
from lensmap.models.record import IngestedTable, IngestionStats
from lensmap.registry.patterns import normalize_header

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".csv", ".xlsx"}

REFERENCE_HEADERS = (
    "reference", "ref", "sku", "id", "productid", "itemid", "code",
    "productcode", "article", "numero", "number",
)
PLACEHOLDERS = {"-", "n/a", "null", "undefined"}
_PUNCTUATION_ONLY = re.compile(r"^[\s\-_.,;:]*$")


def _read_raw(path: Path) -> list[list[Any]]:
    if path.suffix.lower() == ".csv":
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return list(csv.reader(handle))

    workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.active
        return [[cell.value for cell in row] for row in sheet.iter_rows()]
    finally:
        workbook.close()


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def find_reference_column(headers: Sequence[str]) -> str | None:
    """Exact reference-like header, else the first column."""
    for candidate in REFERENCE_HEADERS:
        if candidate in headers:
            return candidate
    return headers[0] if headers else None


def _is_meaningful(value: str) -> bool:
    text = value.strip()
    return bool(text) and text.lower() not in PLACEHOLDERS and not _PUNCTUATION_ONLY.match(text)


def filter_rows(
    rows: list[RawRecord], headers: Sequence[str]
) -> tuple[list[RawRecord], IngestionStats]:
    reference = find_reference_column(headers)
    kept: list[RawRecord] = []
    for index, row in enumerate(rows, start=1):
        if not any(v.strip() for v in row.values()):
            logger.debug("Removing empty row %d", index)
            continue
        if reference and not row.get(reference, "").strip():
            logger.debug("Removing row %d without reference (%s)", index, reference)
            continue
        if not any(_is_meaningful(v) for v in row.values()):
            logger.debug("Removing row %d without meaningful data", index)
            continue
        kept.append(row)

    stats = IngestionStats(
        original_rows=len(rows),
        cleaned_rows=len(kept),
        removed_rows=len(rows) - len(kept),
        reference_column=reference,
    )
    return kept, stats


def read_file(path: str | Path) -> IngestedTable:
    """Read the first sheet of a CSV or XLSX file.

    Headers are normalized, rows are keyed by normalized header and every
    value is a stripped string.
    """
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise UnsupportedFileFormatError(str(path))
    if not path.is_file():
        raise IngestionError(f"Input file {str(path)!r} does not exist")

    raw = _read_raw(path)
    # Skip blank lines above the header row.
    while raw and all(_is_blank(cell) for cell in raw[0]):
        raw.pop(0)
    if not raw:
        raise IngestionError(f"Input file {path.name!r} is empty")

    header_row, *data = raw
    columns = [
        (index, normalize_header(str(cell).strip()))
        for index, cell in enumerate(header_row)
        if not _is_blank(cell)
    ]
    columns = [(index, header) for index, header in columns if header]
    if not columns:
        raise IngestionError(f"No valid column headers found in {path.name!r}")
    headers = list(dict.fromkeys(header for _, header in columns))

    rows: list[RawRecord] = []
    for record in data:
        row: RawRecord = {}
        for index, header in columns:
            if header in row:
                continue
            cell = record[index] if index < len(record) else None
            row[header] = "" if cell is None else str(cell).strip()
        rows.append(row)

    kept, stats = filter_rows(rows, headers)
    logger.info(
        "Read %s: %d columns, %d rows kept of %d (reference column %s)",
        path.name, len(headers), stats.cleaned_rows, stats.original_rows, stats.reference_column,
    )
    return IngestedTable(headers=headers, rows=kept, file_name=path.name, cleaning_stats=stats)


def sample_rows(table: IngestedTable, n: int = 5) -> list[RawRecord]:
    return table.rows[:n]


def detect_brand(file_name: str, known_brands: Sequence[str], default: str = "Unknown") -> str:
    """Case-insensitive brand lookup in the base file name."""
    stem = Path(file_name).name.lower()
    for brand in known_brands:
        if brand.lower() in stem:
            return brand
    return default
