"""
Ingestion service: read -> normalize -> upsert, in one database transaction.

Two entry points:
    load_single_file     one consolidated CSV (customer, invoice, transaction
                         and allocation columns on every row)
    load_from_directory  the three legacy exports (customers, invoices,
                         transactions) linked by their native ids

Reading buffers every input file before the database is touched; a read
failure therefore never opens a transaction.  All upserts of a call share
one session: every row succeeds and the batch commits, or nothing is
persisted.  Skip-row conditions are not errors; they only drop a row (or a
sub-entity of it) and are logged at DEBUG.

Uses structured logging (LogContext, get_logger("ingestion.*")).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from billing_config import get_ingestion_config
from billing_config.schema import (
    CONSOLIDATED,
    LEGACY_CUSTOMERS,
    LEGACY_INVOICES,
    LEGACY_TRANSACTIONS,
    IngestionConfig,
)
from billing_ingestion.adapters.base import SourceAdapter
from billing_ingestion.adapters.csv_adapter import CsvSourceAdapter
from billing_ingestion.domain.types import (
    ConsolidatedRow,
    IngestionPhase,
    IngestionSummary,
    InvoiceRecord,
    LegacyTransaction,
    TransactionRecord,
)
from billing_ingestion.mapping.normalizer import (
    normalize_consolidated_row,
    normalize_legacy_customer,
    normalize_legacy_invoice,
    normalize_legacy_transaction,
)
from billing_ingestion.resolver.reference_resolver import ReferenceResolver
from billing_ingestion.upserts import EntityUpserter, default_upserter_registry
from billing_kernel.db.engine import session_scope
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.exceptions import IngestionAbortedError, MissingSourceFilesError
from billing_kernel.logging_config import LogContext, get_logger

logger = get_logger("ingestion.ingestion_service")


@dataclass
class _Cursor:
    """What is being upserted right now; reported when the batch aborts."""

    entity_type: str = ""
    source_row: int | None = None

    def at(self, entity_type: str, source_row: int | None) -> None:
        self.entity_type = entity_type
        self.source_row = source_row


@dataclass
class _Counts:
    processed_rows: int = 0
    customers: int = 0
    invoices: int = 0
    transactions: int = 0
    invoice_payments: int = 0
    skipped_rows: int = 0

    def freeze(self) -> IngestionSummary:
        return IngestionSummary(
            processed_rows=self.processed_rows,
            customers=self.customers,
            invoices=self.invoices,
            transactions=self.transactions,
            invoice_payments=self.invoice_payments,
            skipped_rows=self.skipped_rows,
        )


def _skip(source_row: int | None, entity_type: str, reason: str) -> None:
    logger.debug("row_skipped", extra={"source_row": source_row, "entity_type": entity_type, "reason": reason})


class IngestionService:
    """Loads CSV sources into the billing tables atomically. Uses session factory, config, clock, adapter, upserters."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: IngestionConfig | None = None,
        clock: Clock | None = None,
        adapter: SourceAdapter | None = None,
        upserters: dict[str, EntityUpserter] | None = None,
    ):
        self._session_factory = session_factory
        self._config = config or get_ingestion_config()
        self._clock = clock or SystemClock()
        self._adapter = adapter or CsvSourceAdapter()
        self._upserters = upserters if upserters is not None else default_upserter_registry()
        self._phase = IngestionPhase.NOT_STARTED

    @property
    def phase(self) -> IngestionPhase:
        """Phase reached by the most recent call."""
        return self._phase

    def _set_phase(self, phase: IngestionPhase) -> None:
        self._phase = phase
        logger.info("ingestion_phase_changed", extra={"phase": phase.value})

    def _csv_options(self) -> dict[str, Any]:
        return {"encoding": self._config.csv.encoding, "delimiter": self._config.csv.delimiter}

    # -------------------------------------------------------------------------
    # Single consolidated file
    # -------------------------------------------------------------------------

    def load_single_file(self, source_path: Path | str) -> IngestionSummary:
        """Ingest one consolidated CSV. Returns the summary of the committed batch."""
        source_path = Path(source_path)
        run_id = uuid4()
        with LogContext.bind(
            correlation_id=str(run_id), producer="ingestion", source_file=str(source_path), mode="single"
        ):
            self._phase = IngestionPhase.NOT_STARTED
            logger.info("ingestion_started", extra={"source_path": str(source_path)})
            try:
                self._set_phase(IngestionPhase.READING)
                raw_rows = self._adapter.read_all(source_path, self._csv_options())

                self._set_phase(IngestionPhase.NORMALIZING)
                profile = self._config.profile(CONSOLIDATED)
                now = self._clock.now_utc()
                rows = [
                    normalize_consolidated_row(raw, i, profile, self._config, now)
                    for i, raw in enumerate(raw_rows, start=1)
                ]
                counts = _Counts(processed_rows=len(raw_rows))

                summary = self._run_transaction(
                    lambda session, cursor: self._upsert_consolidated(session, rows, counts, cursor),
                    counts,
                )
            except Exception:
                self._fail()
                raise
            self._succeed(summary)
            return summary

    def _upsert_consolidated(
        self,
        session: Session,
        rows: list[ConsolidatedRow],
        counts: _Counts,
        cursor: _Cursor,
    ) -> None:
        for row in rows:
            if row.skipped:
                counts.skipped_rows += 1
                _skip(row.source_row, "customer", "missing_document_number")
                continue

            cursor.at("customer", row.source_row)
            customer_id = self._upserters["customer"].upsert(session, row.customer)
            counts.customers += 1

            invoice_id = None
            if row.invoice is not None:
                cursor.at("invoice", row.source_row)
                invoice_id = self._upserters["invoice"].upsert(session, row.invoice, customer_id)
                counts.invoices += 1
            else:
                _skip(row.source_row, "invoice", "incomplete_invoice")

            transaction_id = None
            if row.transaction is not None:
                transaction_id = self._upsert_transaction(session, row.transaction, row.source_row, cursor)
                counts.transactions += 1
            else:
                _skip(row.source_row, "transaction", "incomplete_transaction")

            if invoice_id is not None and transaction_id is not None and row.allocated_amount is not None:
                cursor.at("invoice_payment", row.source_row)
                self._upserters["invoice_payment"].upsert(session, invoice_id, transaction_id, row.allocated_amount)
                counts.invoice_payments += 1

    # -------------------------------------------------------------------------
    # Three legacy files
    # -------------------------------------------------------------------------

    def load_from_directory(self, directory: Path | str) -> IngestionSummary:
        """Ingest the customers/invoices/transactions exports found in ``directory``."""
        directory = Path(directory).resolve()
        names = self._config.multi_file
        run_id = uuid4()
        with LogContext.bind(
            correlation_id=str(run_id), producer="ingestion", source_file=str(directory), mode="multi"
        ):
            self._phase = IngestionPhase.NOT_STARTED
            logger.info("ingestion_started", extra={"source_path": str(directory)})
            try:
                missing = [name for name in names.as_tuple() if not (directory / name).is_file()]
                if missing:
                    raise MissingSourceFilesError(str(directory), missing)

                self._set_phase(IngestionPhase.READING)
                options = self._csv_options()
                raw_customers = self._adapter.read_all(directory / names.customers, options)
                raw_invoices = self._adapter.read_all(directory / names.invoices, options)
                raw_transactions = self._adapter.read_all(directory / names.transactions, options)

                self._set_phase(IngestionPhase.NORMALIZING)
                counts = _Counts(processed_rows=len(raw_customers) + len(raw_invoices) + len(raw_transactions))
                resolver, transactions = self._normalize_legacy(raw_customers, raw_invoices, raw_transactions, counts)

                summary = self._run_transaction(
                    lambda session, cursor: self._upsert_legacy(session, resolver, transactions, counts, cursor),
                    counts,
                )
            except Exception:
                self._fail()
                raise
            self._succeed(summary)
            return summary

    def _normalize_legacy(
        self,
        raw_customers: list[dict[str, str]],
        raw_invoices: list[dict[str, str]],
        raw_transactions: list[dict[str, str]],
        counts: _Counts,
    ) -> tuple[ReferenceResolver, list[LegacyTransaction]]:
        config = self._config
        now = self._clock.now_utc()

        customers = []
        customer_profile = config.profile(LEGACY_CUSTOMERS)
        for i, raw in enumerate(raw_customers, start=1):
            customer = normalize_legacy_customer(raw, i, customer_profile)
            if customer is None:
                counts.skipped_rows += 1
                _skip(i, "customer", "missing_customer_id")
                continue
            customers.append(customer)

        invoices = []
        invoice_profile = config.profile(LEGACY_INVOICES)
        for i, raw in enumerate(raw_invoices, start=1):
            invoice = normalize_legacy_invoice(raw, i, invoice_profile, config)
            if invoice is None:
                counts.skipped_rows += 1
                _skip(i, "invoice", "missing_invoice_id")
                continue
            invoices.append(invoice)

        transaction_profile = config.profile(LEGACY_TRANSACTIONS)
        transactions = [
            normalize_legacy_transaction(raw, i, transaction_profile, config, now)
            for i, raw in enumerate(raw_transactions, start=1)
        ]

        return ReferenceResolver(customers, invoices, transactions), transactions

    def _upsert_legacy(
        self,
        session: Session,
        resolver: ReferenceResolver,
        transactions: list[LegacyTransaction],
        counts: _Counts,
        cursor: _Cursor,
    ) -> None:
        """
        Upsert customers, then invoices, then transactions and allocations.

        A transaction row with a blank ID_Transaccion has no natural key to
        upsert on, so it is counted in skipped_rows and never written; its
        platform is not created either.
        """
        for legacy in resolver.customers:
            cursor.at("customer", legacy.source_row)
            customer_id = self._upserters["customer"].upsert(session, legacy.customer)
            resolver.register_customer(legacy.native_id, customer_id)
            counts.customers += 1

        for invoice in resolver.invoices:
            customer_id = resolver.customer_for_invoice(invoice.native_id)
            if customer_id is None:
                counts.skipped_rows += 1
                _skip(invoice.source_row, "invoice", "unresolved_customer")
                continue
            if invoice.issue_date is None:
                counts.skipped_rows += 1
                _skip(invoice.source_row, "invoice", "missing_issue_date")
                continue
            cursor.at("invoice", invoice.source_row)
            record = InvoiceRecord(
                invoice_number=invoice.native_id,
                issue_date=invoice.issue_date,
                due_date=invoice.due_date,
                total_amount=invoice.total_amount,
            )
            invoice_id = self._upserters["invoice"].upsert(session, record, customer_id)
            resolver.register_invoice(invoice.native_id, invoice_id)
            counts.invoices += 1

        for legacy in transactions:
            if legacy.transaction is None:
                counts.skipped_rows += 1
                _skip(legacy.source_row, "transaction", "missing_transaction_reference")
                continue
            transaction_id = self._upsert_transaction(session, legacy.transaction, legacy.source_row, cursor)
            counts.transactions += 1

            if not legacy.completed:
                continue
            invoice_id = resolver.invoice_id_for(legacy.native_invoice_id)
            if invoice_id is None:
                continue
            cursor.at("invoice_payment", legacy.source_row)
            self._upserters["invoice_payment"].upsert(
                session, invoice_id, transaction_id, legacy.transaction.amount
            )
            counts.invoice_payments += 1

    # -------------------------------------------------------------------------
    # Shared
    # -------------------------------------------------------------------------

    def _upsert_transaction(
        self, session: Session, record: TransactionRecord, source_row: int, cursor: _Cursor
    ) -> UUID:
        cursor.at("platform", source_row)
        platform_id = self._upserters["platform"].upsert(session, record.platform_name)
        cursor.at("transaction", source_row)
        return self._upserters["transaction"].upsert(session, record, platform_id)

    def _run_transaction(
        self, work: Callable[[Session, _Cursor], None], counts: _Counts
    ) -> IngestionSummary:
        """Run ``work(session, cursor)`` in one transaction; commit on success."""
        self._set_phase(IngestionPhase.UPSERTING)
        cursor = _Cursor()
        try:
            with session_scope(self._session_factory) as session:
                work(session, cursor)
        except IntegrityError as exc:
            raise IngestionAbortedError(cursor.entity_type, cursor.source_row, str(exc.orig)) from exc
        return counts.freeze()

    def _succeed(self, summary: IngestionSummary) -> None:
        self._set_phase(IngestionPhase.COMMITTED)
        logger.info("ingestion_committed", extra=summary.as_dict())

    def _fail(self) -> None:
        self._set_phase(IngestionPhase.ROLLED_BACK)
        logger.warning("ingestion_rolled_back", exc_info=True)
