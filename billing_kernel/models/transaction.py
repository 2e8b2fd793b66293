"""
Module: billing_kernel.models.transaction
Responsibility: ORM persistence for payment platforms and the transactions
    received through them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Platform.name is unique (uq_platform_name).
    - Transaction.transaction_reference is unique (uq_transaction_reference).
    - Every transaction references exactly one platform.
    - A transaction may exist with zero allocations (unreconciled payment).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString

DEFAULT_CURRENCY = "COP"


class Platform(TrackedBase):
    """A payment channel, e.g. a wallet or bank transfer network."""

    __tablename__ = "platforms"

    __table_args__ = (
        UniqueConstraint("name", name="uq_platform_name"),
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Platform {self.name}>"


class Transaction(TrackedBase):
    """A payment received on a platform."""

    __tablename__ = "transactions"

    __table_args__ = (
        UniqueConstraint("transaction_reference", name="uq_transaction_reference"),
        Index("idx_transaction_platform", "platform_id"),
        Index("idx_transaction_date", "transaction_date"),
    )

    # Natural key
    transaction_reference: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    platform_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("platforms.id"),
        nullable=False,
    )

    transaction_date: Mapped[datetime] = mapped_column(
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default=DEFAULT_CURRENCY,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_reference}: {self.amount} {self.currency}>"
