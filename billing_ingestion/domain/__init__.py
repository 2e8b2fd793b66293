"""Pure ingestion domain types (no I/O)."""

from billing_ingestion.domain.types import (
    ConsolidatedRow,
    CustomerRecord,
    IngestionPhase,
    IngestionSummary,
    InvoiceRecord,
    LegacyCustomer,
    LegacyInvoice,
    LegacyTransaction,
    TransactionRecord,
)

__all__ = [
    "ConsolidatedRow",
    "CustomerRecord",
    "IngestionPhase",
    "IngestionSummary",
    "InvoiceRecord",
    "LegacyCustomer",
    "LegacyInvoice",
    "LegacyTransaction",
    "TransactionRecord",
]
