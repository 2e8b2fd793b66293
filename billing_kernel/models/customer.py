"""
Module: billing_kernel.models.customer
Responsibility: ORM persistence for customers, the owners of invoices.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - document_number is globally unique (uq_customer_document_number) and
      is the natural key used by ingestion upserts.

Failure modes:
    - IntegrityError on duplicate document_number.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase


class Customer(TrackedBase):
    """
    A billed customer.

    Guarantees:
        - document_number is unique and non-null.
        - email and phone are optional; email format is validated by
          CustomerService, not at the ORM level.
    """

    __tablename__ = "customers"

    __table_args__ = (
        UniqueConstraint("document_number", name="uq_customer_document_number"),
    )

    # Natural key
    document_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    phone: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Customer {self.document_number}: {self.first_name} {self.last_name}>"
