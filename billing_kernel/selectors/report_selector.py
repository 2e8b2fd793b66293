"""
Module: billing_kernel.selectors.report_selector
Responsibility: Read-only reporting over ingested billing data: how much
    each customer has paid, which invoices still have an outstanding
    balance, and which transactions arrived through a given platform.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - Paid amounts are derived from invoice_payments at query time; nothing
      is stored.
    - All monetary results are Decimal.

Failure modes:
    - transactions_by_platform() raises ValueError for a blank platform name.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from billing_kernel.models.customer import Customer
from billing_kernel.models.invoice import Invoice, InvoicePayment
from billing_kernel.models.transaction import Platform, Transaction
from billing_kernel.selectors.base import BaseSelector

_ZERO = Decimal("0")


@dataclass(frozen=True)
class CustomerPaidTotal:
    """Total allocated to a customer's invoices."""

    customer_id: UUID
    document_number: str
    first_name: str
    last_name: str
    total_paid: Decimal


@dataclass(frozen=True)
class PendingInvoice:
    """An invoice whose allocations do not yet cover its total."""

    invoice_id: UUID
    invoice_number: str
    customer_first_name: str
    customer_last_name: str
    total_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    transaction_references: tuple[str, ...]


@dataclass(frozen=True)
class PlatformTransaction:
    """
    One transaction on a platform, with its invoice and customer.

    A transaction funding several invoices appears once per allocation; an
    unallocated one appears once with the invoice and customer fields None.
    """

    transaction_id: UUID
    transaction_reference: str
    transaction_date: datetime
    amount: Decimal
    currency: str
    platform_name: str
    allocated_amount: Decimal | None = None
    invoice_number: str | None = None
    issue_date: date | None = None
    customer_document_number: str | None = None
    customer_first_name: str | None = None
    customer_last_name: str | None = None


class ReportSelector(BaseSelector[Invoice]):
    """Reporting queries used by the reconciliation reports."""

    def total_paid_by_customer(self) -> list[CustomerPaidTotal]:
        """Every customer with the sum of allocations to their invoices (0 if none)."""
        total_paid = func.coalesce(func.sum(InvoicePayment.allocated_amount), 0)
        stmt = (
            select(
                Customer.id,
                Customer.document_number,
                Customer.first_name,
                Customer.last_name,
                total_paid.label("total_paid"),
            )
            .select_from(Customer)
            .outerjoin(Invoice, Invoice.customer_id == Customer.id)
            .outerjoin(InvoicePayment, InvoicePayment.invoice_id == Invoice.id)
            .group_by(Customer.id, Customer.document_number, Customer.first_name, Customer.last_name)
            .order_by(total_paid.desc(), Customer.id.asc())
        )
        return [
            CustomerPaidTotal(
                customer_id=row.id,
                document_number=row.document_number,
                first_name=row.first_name,
                last_name=row.last_name,
                total_paid=Decimal(str(row.total_paid)),
            )
            for row in self.session.execute(stmt)
        ]

    def pending_invoices(self) -> list[PendingInvoice]:
        """Invoices with total minus allocations greater than zero, largest first."""
        paid = func.coalesce(func.sum(InvoicePayment.allocated_amount), 0)
        stmt = (
            select(
                Invoice.id,
                Invoice.invoice_number,
                Invoice.total_amount,
                Customer.first_name,
                Customer.last_name,
                paid.label("paid_amount"),
            )
            .join(Customer, Customer.id == Invoice.customer_id)
            .outerjoin(InvoicePayment, InvoicePayment.invoice_id == Invoice.id)
            .group_by(
                Invoice.id,
                Invoice.invoice_number,
                Invoice.total_amount,
                Customer.first_name,
                Customer.last_name,
            )
            .having(Invoice.total_amount - paid > 0)
        )
        rows = list(self.session.execute(stmt))
        references = self._references_by_invoice([row.id for row in rows])

        pending = []
        for row in rows:
            total = Decimal(str(row.total_amount))
            paid_amount = Decimal(str(row.paid_amount))
            pending.append(
                PendingInvoice(
                    invoice_id=row.id,
                    invoice_number=row.invoice_number,
                    customer_first_name=row.first_name,
                    customer_last_name=row.last_name,
                    total_amount=total,
                    paid_amount=paid_amount,
                    pending_amount=total - paid_amount,
                    transaction_references=tuple(references.get(row.id, ())),
                )
            )
        pending.sort(key=lambda p: (-p.pending_amount, p.invoice_number))
        return pending

    def transactions_by_platform(self, platform_name: str) -> list[PlatformTransaction]:
        """Transactions received on a platform, allocated or not, newest first."""
        if not platform_name or not platform_name.strip():
            raise ValueError("platform name is required")

        stmt = (
            select(
                Transaction.id,
                Transaction.transaction_reference,
                Transaction.transaction_date,
                Transaction.amount,
                Transaction.currency,
                Platform.name.label("platform_name"),
                InvoicePayment.allocated_amount,
                Invoice.invoice_number,
                Invoice.issue_date,
                Customer.document_number,
                Customer.first_name,
                Customer.last_name,
            )
            .join(Platform, Platform.id == Transaction.platform_id)
            .outerjoin(InvoicePayment, InvoicePayment.transaction_id == Transaction.id)
            .outerjoin(Invoice, Invoice.id == InvoicePayment.invoice_id)
            .outerjoin(Customer, Customer.id == Invoice.customer_id)
            .where(Platform.name == platform_name.strip())
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        )
        return [
            PlatformTransaction(
                transaction_id=row.id,
                transaction_reference=row.transaction_reference,
                transaction_date=row.transaction_date,
                amount=row.amount,
                currency=row.currency,
                platform_name=row.platform_name,
                allocated_amount=row.allocated_amount,
                invoice_number=row.invoice_number,
                issue_date=row.issue_date,
                customer_document_number=row.document_number,
                customer_first_name=row.first_name,
                customer_last_name=row.last_name,
            )
            for row in self.session.execute(stmt)
        ]

    def _references_by_invoice(self, invoice_ids: list[UUID]) -> dict[UUID, list[str]]:
        # Grouped in Python to stay portable across dialects.
        if not invoice_ids:
            return {}
        stmt = (
            select(InvoicePayment.invoice_id, Transaction.transaction_reference)
            .join(Transaction, Transaction.id == InvoicePayment.transaction_id)
            .where(InvoicePayment.invoice_id.in_(invoice_ids))
            .order_by(Transaction.transaction_date, Transaction.transaction_reference)
        )
        grouped: dict[UUID, list[str]] = defaultdict(list)
        for invoice_id, reference in self.session.execute(stmt):
            grouped[invoice_id].append(reference)
        return grouped
