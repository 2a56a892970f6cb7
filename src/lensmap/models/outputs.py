"""Output file models."""

from __future__ import annotations

from pydantic import BaseModel


class ExportFile(BaseModel):
    """Metadata for an exported output file."""

    filename: str
    file_type: str = "csv"
    path: str = ""
    record_count: int = 0
    column_count: int = 0
    record_type: str = ""
    brand: str = ""
