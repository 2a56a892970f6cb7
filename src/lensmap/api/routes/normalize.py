"""Normalization and schema lookup endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from lensmap.core.exceptions import SchemaNotFoundError
from lensmap.models.pipeline import PipelineResult
from lensmap.models.record import IngestedTable
from lensmap.registry.patterns import normalize_header
from lensmap.registry.schemas import require_schema

router = APIRouter(tags=["normalize"])


class NormalizeRequest(BaseModel):
    """Rows keyed by their original column headers."""

    headers: list[str]
    rows: list[dict[str, Any]] = Field(default_factory=list)
    file_name: str = "request"
    brand: str | None = None


def _to_table(payload: NormalizeRequest) -> IngestedTable:
    columns: list[tuple[str, str]] = []
    seen: set[str] = set()
    for header in payload.headers:
        normalized = normalize_header(header)
        if normalized and normalized not in seen:
            seen.add(normalized)
            columns.append((header, normalized))
    rows = [
        {n: "" if row.get(h) is None else str(row.get(h)).strip() for h, n in columns}
        for row in payload.rows
    ]
    return IngestedTable(
        headers=[n for _, n in columns], rows=rows, file_name=payload.file_name
    )


@router.post("/normalize", response_model=PipelineResult)
async def normalize(payload: NormalizeRequest, request: Request) -> PipelineResult:
    """Run the pipeline over JSON rows and return canonical rows without writing a file."""
    table = _to_table(payload)
    return await request.app.state.executor.process_table(
        table, brand=payload.brand, write_output=False
    )


@router.get("/schemas/{record_type}")
async def get_schema(record_type: str) -> dict[str, Any]:
    """Return the canonical field key -> label mapping for a record type."""
    try:
        schema = require_schema(record_type.upper())
    except SchemaNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"record_type": record_type.upper(), "fields": schema}
