"""Services for the billing kernel (write side)."""

from billing_kernel.services.customer_service import (
    CustomerDeletion,
    CustomerInfo,
    CustomerService,
)

__all__ = [
    "CustomerDeletion",
    "CustomerInfo",
    "CustomerService",
]
