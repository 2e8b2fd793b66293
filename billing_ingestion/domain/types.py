"""
billing_ingestion.domain.types -- Pure frozen dataclasses for the ingestion pipeline.

ZERO I/O. Canonical records are what the normalizer produces and the
upserters consume; native ids are the identifiers used inside the legacy
export files, never database ids.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


# =============================================================================
# Orchestrator lifecycle
# =============================================================================


class IngestionPhase(str, Enum):
    """Lifecycle of one ingestion call."""

    NOT_STARTED = "not_started"
    READING = "reading"  # Source file(s) being buffered
    NORMALIZING = "normalizing"  # Raw rows mapped to canonical records
    UPSERTING = "upserting"  # Inside the database transaction
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class IngestionSummary:
    """Per-entity counts for one committed ingestion."""

    processed_rows: int = 0
    customers: int = 0
    invoices: int = 0
    transactions: int = 0
    invoice_payments: int = 0
    skipped_rows: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


# =============================================================================
# Canonical records
# =============================================================================


@dataclass(frozen=True)
class CustomerRecord:
    document_number: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class InvoiceRecord:
    """Invoice data; the owning customer id is supplied at upsert time."""

    invoice_number: str
    issue_date: date
    total_amount: Decimal
    due_date: date | None = None


@dataclass(frozen=True)
class TransactionRecord:
    """Transaction data; the platform id is supplied at upsert time."""

    transaction_reference: str
    platform_name: str
    transaction_date: datetime
    amount: Decimal
    currency: str
    description: str | None = None


@dataclass(frozen=True)
class ConsolidatedRow:
    """
    One normalized row of the consolidated feed.

    customer is None when the row has no document number; the whole row is
    then skipped.  allocated_amount is None when no allocation applies.
    """

    source_row: int
    customer: CustomerRecord | None
    invoice: InvoiceRecord | None = None
    transaction: TransactionRecord | None = None
    allocated_amount: Decimal | None = None

    @property
    def skipped(self) -> bool:
        return self.customer is None


# =============================================================================
# Legacy export records
# =============================================================================


@dataclass(frozen=True)
class LegacyCustomer:
    native_id: str
    source_row: int
    customer: CustomerRecord


@dataclass(frozen=True)
class LegacyInvoice:
    """Invoice from the legacy export; issue/due are None for an unusable period."""

    native_id: str
    source_row: int
    issue_date: date | None
    due_date: date | None
    total_amount: Decimal


@dataclass(frozen=True)
class LegacyTransaction:
    """
    Transaction from the legacy export.

    transaction is None when the row has no reference; the row still takes
    part in invoice ownership resolution.
    """

    source_row: int
    native_customer_id: str
    native_invoice_id: str
    completed: bool
    transaction: TransactionRecord | None
