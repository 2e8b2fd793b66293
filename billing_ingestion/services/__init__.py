"""Ingestion services: transactional CSV loading."""

from billing_ingestion.domain.types import IngestionPhase, IngestionSummary
from billing_ingestion.services.ingestion_service import IngestionService

__all__ = [
    "IngestionPhase",
    "IngestionService",
    "IngestionSummary",
]
