"""
Module: billing_kernel.models.invoice
Responsibility: ORM persistence for invoices and their payment allocations.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - invoice_number is globally unique (uq_invoice_number).
    - Every invoice references exactly one customer (NOT NULL FK).
    - issue_date is NOT NULL.
    - (invoice_id, transaction_id) is unique on invoice_payments
      (uq_invoice_payment_pair): one allocation per invoice/transaction pair.

Failure modes:
    - IntegrityError on duplicate natural keys or dangling foreign keys.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString


class Invoice(TrackedBase):
    """An invoice owned by one customer."""

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoice_number"),
        Index("idx_invoice_customer", "customer_id"),
    )

    # Natural key
    invoice_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    issue_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    due_date: Mapped[date | None] = mapped_column(
        nullable=True,
    )

    total_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number}: {self.total_amount}>"


class InvoicePayment(TrackedBase):
    """
    Allocation of part of a transaction to an invoice.

    A transaction may fund zero, one or many invoices; an invoice may be paid
    by many transactions.
    """

    __tablename__ = "invoice_payments"

    __table_args__ = (
        UniqueConstraint("invoice_id", "transaction_id", name="uq_invoice_payment_pair"),
        Index("idx_invoice_payment_transaction", "transaction_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("invoices.id"),
        nullable=False,
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("transactions.id"),
        nullable=False,
    )

    allocated_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<InvoicePayment {self.invoice_id} <- {self.transaction_id}: {self.allocated_amount}>"
