"""
Service layer for customer CRUD.

Returns CustomerInfo DTOs instead of ORM entities.  Deleting a customer
cascades through its invoices and their payment allocations, then removes
transactions that no longer fund any invoice.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError

from billing_kernel.exceptions import (
    CustomerNotFoundError,
    CustomerValidationError,
    DuplicateCustomerError,
)
from billing_kernel.logging_config import get_logger
from billing_kernel.models.customer import Customer
from billing_kernel.models.invoice import Invoice, InvoicePayment
from billing_kernel.models.transaction import Transaction
from billing_kernel.services.base import BaseService

logger = get_logger("services.customer")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

UPDATABLE_FIELDS = ("document_number", "first_name", "last_name", "email", "phone")
_REQUIRED_FIELDS = ("document_number", "first_name", "last_name")


@dataclass(frozen=True)
class CustomerInfo:
    """Immutable DTO for customer data."""

    id: UUID
    document_number: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None

    @classmethod
    def from_model(cls, customer: Customer) -> CustomerInfo:
        return cls(
            id=customer.id,
            document_number=customer.document_number,
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            phone=customer.phone,
        )


@dataclass(frozen=True)
class CustomerDeletion:
    """What a cascading customer delete removed."""

    customer_id: UUID
    invoices_deleted: int
    allocations_deleted: int
    transactions_deleted: int


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def validate_customer_payload(payload: dict[str, Any], partial: bool = False) -> list[str]:
    """
    Return validation messages for a customer payload (empty list = valid).

    partial=True validates only the keys present (update semantics).
    """
    errors: list[str] = []
    for field_name in _REQUIRED_FIELDS:
        if partial and field_name not in payload:
            continue
        if _is_blank(payload.get(field_name)):
            errors.append(f"{field_name} is required")
    email = payload.get("email")
    if email and not _EMAIL_RE.match(str(email)):
        errors.append("email is invalid")
    return errors


def _optional(value: Any) -> str | None:
    if _is_blank(value):
        return None
    return str(value).strip()


class CustomerService(BaseService[Customer]):
    """
    Customer CRUD within the caller's transaction.

    Duplicate document numbers surface as DuplicateCustomerError (a client
    conflict), never as a raw IntegrityError.
    """

    def list_customers(self) -> list[CustomerInfo]:
        stmt = select(Customer).order_by(Customer.created_at.desc(), Customer.document_number)
        return [CustomerInfo.from_model(c) for c in self.session.scalars(stmt)]

    def get_customer(self, customer_id: UUID) -> CustomerInfo:
        return CustomerInfo.from_model(self._load(customer_id))

    def create_customer(self, payload: dict[str, Any]) -> CustomerInfo:
        errors = validate_customer_payload(payload)
        if errors:
            raise CustomerValidationError(errors)

        document_number = str(payload["document_number"]).strip()
        self._ensure_document_available(document_number)

        customer = Customer(
            document_number=document_number,
            first_name=str(payload["first_name"]).strip(),
            last_name=str(payload["last_name"]).strip(),
            email=_optional(payload.get("email")),
            phone=_optional(payload.get("phone")),
        )
        self.session.add(customer)
        self._flush(document_number)
        logger.info("customer_created", extra={"customer_id": str(customer.id), "document_number": document_number})
        return CustomerInfo.from_model(customer)

    def update_customer(self, customer_id: UUID, payload: dict[str, Any]) -> CustomerInfo:
        changes = {k: payload[k] for k in UPDATABLE_FIELDS if k in payload}
        if not changes:
            raise CustomerValidationError(["No fields to update"])
        errors = validate_customer_payload(changes, partial=True)
        if errors:
            raise CustomerValidationError(errors)

        customer = self._load(customer_id)
        if "document_number" in changes:
            document_number = str(changes["document_number"]).strip()
            if document_number != customer.document_number:
                self._ensure_document_available(document_number)
            customer.document_number = document_number
        for name in ("first_name", "last_name"):
            if name in changes:
                setattr(customer, name, str(changes[name]).strip())
        for name in ("email", "phone"):
            if name in changes:
                setattr(customer, name, _optional(changes[name]))

        self._flush(customer.document_number)
        logger.info("customer_updated", extra={"customer_id": str(customer_id), "fields": sorted(changes)})
        return CustomerInfo.from_model(customer)

    def delete_customer(self, customer_id: UUID) -> CustomerDeletion:
        """
        Delete a customer and everything that only exists because of it.

        Order: allocations of the customer's invoices, the invoices, then
        transactions that were involved and now have no allocation left.
        Transactions still funding other customers' invoices survive.
        """
        customer = self._load(customer_id)

        invoice_ids = list(self.session.scalars(select(Invoice.id).where(Invoice.customer_id == customer_id)))
        allocations_deleted = 0
        transactions_deleted = 0

        if invoice_ids:
            transaction_ids = list(
                self.session.scalars(
                    select(InvoicePayment.transaction_id)
                    .where(InvoicePayment.invoice_id.in_(invoice_ids))
                    .distinct()
                )
            )

            allocations_deleted = self.session.execute(
                delete(InvoicePayment).where(InvoicePayment.invoice_id.in_(invoice_ids))
            ).rowcount
            self.session.execute(delete(Invoice).where(Invoice.id.in_(invoice_ids)))

            if transaction_ids:
                still_allocated = exists().where(InvoicePayment.transaction_id == Transaction.id)
                transactions_deleted = self.session.execute(
                    delete(Transaction)
                    .where(Transaction.id.in_(transaction_ids))
                    .where(~still_allocated)
                    .execution_options(synchronize_session=False)
                ).rowcount

        self.session.delete(customer)
        self.session.flush()

        logger.info(
            "customer_deleted",
            extra={
                "customer_id": str(customer_id),
                "invoices_deleted": len(invoice_ids),
                "allocations_deleted": allocations_deleted,
                "transactions_deleted": transactions_deleted,
            },
        )
        return CustomerDeletion(
            customer_id=customer_id,
            invoices_deleted=len(invoice_ids),
            allocations_deleted=allocations_deleted,
            transactions_deleted=transactions_deleted,
        )

    def _load(self, customer_id: UUID) -> Customer:
        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise CustomerNotFoundError(str(customer_id))
        return customer

    def _ensure_document_available(self, document_number: str) -> None:
        stmt = select(Customer.id).where(Customer.document_number == document_number)
        if self.session.scalars(stmt).first() is not None:
            raise DuplicateCustomerError(document_number)

    def _flush(self, document_number: str) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateCustomerError(document_number) from exc
