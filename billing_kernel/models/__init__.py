"""ORM models for the billing kernel."""

from billing_kernel.models.customer import Customer
from billing_kernel.models.invoice import Invoice, InvoicePayment
from billing_kernel.models.transaction import DEFAULT_CURRENCY, Platform, Transaction

__all__ = [
    "Customer",
    "Invoice",
    "InvoicePayment",
    "Platform",
    "Transaction",
    "DEFAULT_CURRENCY",
]
