"""Source adapters: file format readers for ingestion."""

from billing_ingestion.adapters.base import SourceAdapter, SourcePreview
from billing_ingestion.adapters.csv_adapter import CsvSourceAdapter

__all__ = [
    "CsvSourceAdapter",
    "SourceAdapter",
    "SourcePreview",
]
