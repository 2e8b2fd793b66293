"""
billing_ingestion -- CSV reconciliation and upsert pipeline.

Reads a consolidated feed or the three legacy exports, normalizes column
names, dates and amounts, resolves cross-file references and upserts
customers, invoices, platforms, transactions and allocations in one
transaction.
"""

from billing_ingestion.domain.types import IngestionPhase, IngestionSummary
from billing_ingestion.services.ingestion_service import IngestionService

__all__ = [
    "IngestionPhase",
    "IngestionService",
    "IngestionSummary",
]
