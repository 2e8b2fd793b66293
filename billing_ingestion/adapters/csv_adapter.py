"""
CSV source adapter.

Uses csv.DictReader. Configurable: delimiter, encoding. Handles BOM via
utf-8-sig when encoding is utf-8. Header names are stripped of surrounding
whitespace; short rows are padded with empty strings and surplus cells
dropped, so every record has exactly the header's keys.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from billing_ingestion.adapters.base import SourcePreview
from billing_kernel.exceptions import SourceReadError

_SAMPLE_SIZE = 5


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() in ("utf-8", "utf8"):
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _rows(source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, str]]:
    encoding = _get_encoding(options)
    delimiter = options.get("delimiter", ",")

    with source_path.open("r", encoding=encoding, newline="") as f:
        reader = csv.DictReader(f, delimiter=delimiter, restval="")
        if reader.fieldnames is None:
            return
        reader.fieldnames = [name.strip() for name in reader.fieldnames]
        for row in reader:
            row.pop(None, None)
            yield {key: (value if value is not None else "") for key, value in row.items()}


class CsvSourceAdapter:
    """Read CSV files as one dict per row, fully buffered."""

    def read_all(self, source_path: Path, options: dict[str, Any] | None = None) -> list[dict[str, str]]:
        source_path = Path(source_path)
        try:
            return list(_rows(source_path, options or {}))
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise SourceReadError(str(source_path), str(exc)) from exc

    def preview(self, source_path: Path, options: dict[str, Any] | None = None) -> SourcePreview:
        source_path = Path(source_path)
        options = options or {}
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")

        try:
            with source_path.open("r", encoding=encoding, newline="") as f:
                reader = csv.DictReader(f, delimiter=delimiter, restval="")
                columns = tuple(name.strip() for name in (reader.fieldnames or ()))
                if columns:
                    reader.fieldnames = list(columns)
                sample: list[dict[str, Any]] = []
                count = 0
                for row in reader:
                    count += 1
                    if len(sample) < _SAMPLE_SIZE:
                        row.pop(None, None)
                        sample.append(dict(row))
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise SourceReadError(str(source_path), str(exc)) from exc

        return SourcePreview(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=delimiter,
        )
