"""
Billing Kernel

Persistence and shared infrastructure for the customer / invoice / payment
backend:
- Customers, invoices, platforms, transactions and payment allocations
- Engine and session lifecycle (PostgreSQL, SQLite for local runs)
- Structured logging and typed exceptions
"""

__version__ = "0.1.0"
