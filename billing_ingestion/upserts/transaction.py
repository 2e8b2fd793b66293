"""Platform and transaction upserters."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from billing_ingestion.domain.types import TransactionRecord
from billing_ingestion.upserts.base import upsert_returning_id
from billing_kernel.models.transaction import Platform, Transaction


class PlatformUpserter:
    """Creates a platform on first reference, otherwise reuses it. Entity type: platform."""

    entity_type: str = "platform"

    def upsert(self, session: Session, name: str) -> UUID:
        return upsert_returning_id(
            session,
            Platform,
            values={"name": name},
            key_columns=["name"],
            update_columns=[],
        )


class TransactionUpserter:
    """Upserts transactions by transaction_reference. Entity type: transaction."""

    entity_type: str = "transaction"

    def upsert(self, session: Session, record: TransactionRecord, platform_id: UUID) -> UUID:
        return upsert_returning_id(
            session,
            Transaction,
            values={
                "transaction_reference": record.transaction_reference,
                "platform_id": platform_id,
                "transaction_date": record.transaction_date,
                "amount": record.amount,
                "currency": record.currency,
                "description": record.description,
            },
            key_columns=["transaction_reference"],
            update_columns=["platform_id", "transaction_date", "amount", "currency", "description"],
        )
