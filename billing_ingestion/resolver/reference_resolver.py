"""
Reference resolver for the three-file legacy export.

The legacy files reference each other by their own native ids: an invoice
row carries no customer, so ownership is inferred from the transactions
file (each transaction names both a customer and an invoice).  The
resolver keeps the native -> database id maps filled in by the
orchestrator as rows are upserted.

Invariants:
    - Indexes are built in one deterministic pass per file.  A repeated
      native id keeps its first position and the last row's data.
    - Invoice ownership is first-match-wins over the transactions file.
      Later rows naming a different customer are recorded as conflicts and
      logged, never acted on.

ZERO database access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from billing_ingestion.domain.types import LegacyCustomer, LegacyInvoice, LegacyTransaction
from billing_kernel.logging_config import get_logger

logger = get_logger("ingestion.resolver")


@dataclass(frozen=True)
class OwnershipConflict:
    """A transaction naming a different owner than the one already chosen."""

    native_invoice_id: str
    kept_customer_id: str
    ignored_customer_id: str
    source_row: int


class ReferenceResolver:
    """In-memory cross-file reference indexes for one multi-file ingestion."""

    def __init__(
        self,
        customers: Iterable[LegacyCustomer],
        invoices: Iterable[LegacyInvoice],
        transactions: Iterable[LegacyTransaction],
    ):
        self._customers: dict[str, LegacyCustomer] = {}
        for customer in customers:
            self._customers[customer.native_id] = customer

        self._invoices: dict[str, LegacyInvoice] = {}
        for invoice in invoices:
            self._invoices[invoice.native_id] = invoice

        self._owners: dict[str, str] = {}
        self.conflicts: list[OwnershipConflict] = []
        for tx in transactions:
            self._record_owner(tx)

        self._customer_ids: dict[str, UUID] = {}
        self._invoice_ids: dict[str, UUID] = {}

    def _record_owner(self, tx: LegacyTransaction) -> None:
        if not tx.native_invoice_id or not tx.native_customer_id:
            return
        kept = self._owners.setdefault(tx.native_invoice_id, tx.native_customer_id)
        if kept != tx.native_customer_id:
            conflict = OwnershipConflict(
                native_invoice_id=tx.native_invoice_id,
                kept_customer_id=kept,
                ignored_customer_id=tx.native_customer_id,
                source_row=tx.source_row,
            )
            self.conflicts.append(conflict)
            logger.warning(
                "invoice_owner_ambiguous",
                extra={
                    "native_invoice_id": conflict.native_invoice_id,
                    "kept_customer_id": conflict.kept_customer_id,
                    "ignored_customer_id": conflict.ignored_customer_id,
                    "source_row": conflict.source_row,
                },
            )

    # -------------------------------------------------------------------------
    # Indexed rows
    # -------------------------------------------------------------------------

    @property
    def customers(self) -> list[LegacyCustomer]:
        return list(self._customers.values())

    @property
    def invoices(self) -> list[LegacyInvoice]:
        return list(self._invoices.values())

    def owner_of(self, native_invoice_id: str) -> str | None:
        """Native customer id owning an invoice, per the transactions file."""
        return self._owners.get(native_invoice_id)

    # -------------------------------------------------------------------------
    # Native -> database id maps
    # -------------------------------------------------------------------------

    def register_customer(self, native_id: str, customer_id: UUID) -> None:
        self._customer_ids[native_id] = customer_id

    def customer_for_invoice(self, native_invoice_id: str) -> UUID | None:
        """Database id of the invoice's owner, or None if it cannot be resolved."""
        owner = self._owners.get(native_invoice_id)
        if owner is None:
            return None
        return self._customer_ids.get(owner)

    def register_invoice(self, native_id: str, invoice_id: UUID) -> None:
        self._invoice_ids[native_id] = invoice_id

    def invoice_id_for(self, native_invoice_id: str) -> UUID | None:
        if not native_invoice_id:
            return None
        return self._invoice_ids.get(native_invoice_id)
