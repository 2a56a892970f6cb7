"""LensMap exception hierarchy."""

from __future__ import annotations


class LensMapError(Exception):
    """Base exception for all LensMap errors."""


class IngestionError(LensMapError):
    """Input file could not be read into a table."""


class UnsupportedFileFormatError(IngestionError):
    """Input file extension is not CSV or XLSX."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Unsupported file format for {path!r}. Please use .xlsx or .csv")


class SchemaNotFoundError(LensMapError):
    """No canonical schema registered for a record type."""


class EnhancementServiceError(LensMapError):
    """The text-enhancement service failed or answered with an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RowTransformError(LensMapError):
    """A canonical row could not be assembled from enhanced fields."""

    def __init__(self, row_index: int, message: str) -> None:
        self.row_index = row_index
        super().__init__(f"Row {row_index} could not be assembled: {message}")


class OutputError(LensMapError):
    """Canonical rows could not be written."""
