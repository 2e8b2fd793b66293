"""Selectors for the billing kernel (read side)."""

from billing_kernel.selectors.report_selector import (
    CustomerPaidTotal,
    PendingInvoice,
    PlatformTransaction,
    ReportSelector,
)

__all__ = [
    "CustomerPaidTotal",
    "PendingInvoice",
    "PlatformTransaction",
    "ReportSelector",
]
