"""Entity upserters: canonical records -> live rows, keyed by natural key."""

from billing_ingestion.upserts.base import EntityUpserter, upsert_returning_id
from billing_ingestion.upserts.customer import CustomerUpserter
from billing_ingestion.upserts.invoice import InvoicePaymentUpserter, InvoiceUpserter
from billing_ingestion.upserts.transaction import PlatformUpserter, TransactionUpserter


def default_upserter_registry() -> dict[str, EntityUpserter]:
    """Return a dict of entity_type -> upserter for every ingested entity."""
    return {
        "customer": CustomerUpserter(),
        "invoice": InvoiceUpserter(),
        "platform": PlatformUpserter(),
        "transaction": TransactionUpserter(),
        "invoice_payment": InvoicePaymentUpserter(),
    }


__all__ = [
    "CustomerUpserter",
    "EntityUpserter",
    "InvoicePaymentUpserter",
    "InvoiceUpserter",
    "PlatformUpserter",
    "TransactionUpserter",
    "default_upserter_registry",
    "upsert_returning_id",
]
