"""Customer upserter: natural key document_number."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from billing_ingestion.domain.types import CustomerRecord
from billing_ingestion.upserts.base import upsert_returning_id
from billing_kernel.models.customer import Customer


class CustomerUpserter:
    """Upserts customers. Entity type: customer."""

    entity_type: str = "customer"

    def upsert(self, session: Session, record: CustomerRecord) -> UUID:
        return upsert_returning_id(
            session,
            Customer,
            values={
                "document_number": record.document_number,
                "first_name": record.first_name,
                "last_name": record.last_name,
                "email": record.email,
                "phone": record.phone,
            },
            key_columns=["document_number"],
            update_columns=["first_name", "last_name", "email", "phone"],
        )
