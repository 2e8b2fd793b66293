"""
Source adapter protocol and preview DTO.

Contract:
    SourceAdapter.read_all() returns every source record as a dict, in file
    order, only after the whole file has been read successfully.
    SourceAdapter.preview() returns a quick snapshot: row count, columns, sample rows.

Architecture: billing_ingestion/adapters. File I/O only, no DB or kernel imports
other than the exception types.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading structured source files into record dicts."""

    def read_all(self, source_path: Path, options: dict[str, Any]) -> list[dict[str, str]]:
        """Return one dict per source record. Raises SourceReadError on any read failure."""
        ...

    def preview(self, source_path: Path, options: dict[str, Any]) -> "SourcePreview":
        """Quick preview: row count, detected columns, sample rows."""
        ...


@dataclass(frozen=True)
class SourcePreview:
    """Result of probing a source file (row count, columns, first N rows)."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]  # First 5 rows; do not mutate
    encoding: str | None = None
    detected_delimiter: str | None = None
