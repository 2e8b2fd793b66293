"""Invoice and allocation upserters."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from billing_ingestion.domain.types import InvoiceRecord
from billing_ingestion.upserts.base import upsert_returning_id
from billing_kernel.models.invoice import Invoice, InvoicePayment


class InvoiceUpserter:
    """Upserts invoices by invoice_number. Entity type: invoice."""

    entity_type: str = "invoice"

    def upsert(self, session: Session, record: InvoiceRecord, customer_id: UUID) -> UUID:
        return upsert_returning_id(
            session,
            Invoice,
            values={
                "invoice_number": record.invoice_number,
                "customer_id": customer_id,
                "issue_date": record.issue_date,
                "due_date": record.due_date,
                "total_amount": record.total_amount,
            },
            key_columns=["invoice_number"],
            update_columns=["customer_id", "issue_date", "due_date", "total_amount"],
        )


class InvoicePaymentUpserter:
    """Upserts allocations by (invoice_id, transaction_id). Entity type: invoice_payment."""

    entity_type: str = "invoice_payment"

    def upsert(
        self,
        session: Session,
        invoice_id: UUID,
        transaction_id: UUID,
        allocated_amount: Decimal,
    ) -> UUID:
        return upsert_returning_id(
            session,
            InvoicePayment,
            values={
                "invoice_id": invoice_id,
                "transaction_id": transaction_id,
                "allocated_amount": allocated_amount,
            },
            key_columns=["invoice_id", "transaction_id"],
            update_columns=["allocated_amount"],
        )
