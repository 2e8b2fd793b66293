"""
Typed exception hierarchy for the billing backend.

Every error carries a machine-readable ``code`` class attribute and its
structured data as instance attributes, so callers catch by type and read
fields instead of parsing messages.

    BillingError (base)
    |
    +-- IngestionError
    |   +-- SourceReadError
    |   +-- MissingSourceFilesError
    |   +-- IngestionAbortedError
    |
    +-- StoreError
    |   +-- UnsupportedDialectError
    |
    +-- CustomerError
        +-- CustomerNotFoundError
        +-- DuplicateCustomerError
        +-- CustomerValidationError

Category   | Code                  | When Raised
-----------|-----------------------|--------------------------------------------
Ingestion  | SOURCE_READ_FAILED    | CSV file missing, unreadable or undecodable
           | MISSING_SOURCE_FILES  | Multi-file directory lacks an expected file
           | INGESTION_ABORTED     | Storage integrity failure mid-batch
-----------|-----------------------|--------------------------------------------
Store      | UNSUPPORTED_DIALECT   | Upsert requested on a non-supported backend
-----------|-----------------------|--------------------------------------------
Customer   | CUSTOMER_NOT_FOUND    | Customer id does not exist
           | DUPLICATE_ENTRY       | document_number already taken (conflict)
           | VALIDATION_FAILED     | Create/update payload rejected
"""


class BillingError(Exception):
    """
    Base exception for all billing backend errors.

    All subclasses must define a `code` class attribute.
    """

    code: str = "BILLING_ERROR"


# Ingestion exceptions


class IngestionError(BillingError):
    """Base for ingestion pipeline errors. Always batch-fatal."""

    code: str = "INGESTION_ERROR"


class SourceReadError(IngestionError):
    """Source file could not be read; raised before any database work."""

    code: str = "SOURCE_READ_FAILED"

    def __init__(self, source_path: str, reason: str):
        self.source_path = source_path
        self.reason = reason
        super().__init__(f"Cannot read source {source_path}: {reason}")


class MissingSourceFilesError(IngestionError):
    """Multi-file directory does not contain all expected files."""

    code: str = "MISSING_SOURCE_FILES"

    def __init__(self, directory: str, missing: list[str]):
        self.directory = directory
        self.missing = missing
        super().__init__(
            f"Missing CSV files in {directory}: {', '.join(missing)}. "
            "Ensure the customers, invoices and transactions exports exist"
        )


class IngestionAbortedError(IngestionError):
    """A storage-level failure aborted the batch; nothing was committed."""

    code: str = "INGESTION_ABORTED"

    def __init__(self, entity_type: str, source_row: int | None, reason: str):
        self.entity_type = entity_type
        self.source_row = source_row
        self.reason = reason
        where = f" at row {source_row}" if source_row is not None else ""
        super().__init__(f"Ingestion aborted while upserting {entity_type}{where}: {reason}")


# Store exceptions


class StoreError(BillingError):
    """Base for relational store errors."""

    code: str = "STORE_ERROR"


class UnsupportedDialectError(StoreError):
    """Upserts are only implemented for PostgreSQL and SQLite."""

    code: str = "UNSUPPORTED_DIALECT"

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"Upsert is not supported on dialect {dialect!r}")


# Customer exceptions


class CustomerError(BillingError):
    """Base for customer CRUD errors."""

    code: str = "CUSTOMER_ERROR"


class CustomerNotFoundError(CustomerError):
    """Customer id does not exist."""

    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class DuplicateCustomerError(CustomerError):
    """Unique constraint hit on create/update. Surfaced as a conflict."""

    code: str = "DUPLICATE_ENTRY"

    def __init__(self, document_number: str | None):
        self.document_number = document_number
        super().__init__(
            "Duplicate entry (document_number must be unique)"
            + (f": {document_number}" if document_number else "")
        )


class CustomerValidationError(CustomerError):
    """Payload failed validation."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")
