"""Tests for the structured logging system (billing_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "billing_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("row_skipped", extra={"source_row": 7, "reason": "missing_document_number"})

        record = _parse_log(stream)
        assert record["source_row"] == 7
        assert record["reason"] == "missing_document_number"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(correlation_id="run-1", producer="ingestion", mode="single"):
            get_logger("test").info("ingestion_started")

        record = _parse_log(stream)
        assert record["correlation_id"] == "run-1"
        assert record["producer"] == "ingestion"
        assert record["mode"] == "single"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_billing_exception_code_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        from billing_kernel.exceptions import IngestionAbortedError

        try:
            raise IngestionAbortedError("invoice", 12, "FOREIGN KEY constraint failed")
        except IngestionAbortedError:
            get_logger("test").warning("ingestion_rolled_back", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INGESTION_ABORTED"
        assert record["exc_type"] == "IngestionAbortedError"
        assert record["exc_entity_type"] == "invoice"
        assert record["exc_source_row"] == 12

    def test_uuid_and_decimal_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_values", extra={"customer_id": uid, "amount": Decimal("10.50")})

        record = _parse_log(stream)
        assert record["customer_id"] == str(uid)
        assert record["amount"] == "10.50"

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_bind_and_get(self):
        with LogContext.bind(correlation_id="x", source_file="feed.csv"):
            assert LogContext.get_all() == {"correlation_id": "x", "source_file": "feed.csv"}

    def test_clear(self):
        with LogContext.bind(correlation_id="x"):
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        with LogContext.bind(correlation_id="outer", mode="single"):
            with LogContext.bind(correlation_id="inner"):
                assert LogContext.get_all() == {"correlation_id": "inner", "mode": "single"}
            assert LogContext.get_all()["correlation_id"] == "outer"

    def test_bind_restores_empty_context(self):
        with LogContext.bind(correlation_id="temp", mode="multi"):
            assert LogContext.get_all()["mode"] == "multi"
        assert LogContext.get_all() == {}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(correlation_id="run-1"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_none_values_not_bound(self):
        with LogContext.bind(correlation_id="c", source_file=None):
            assert LogContext.get_all() == {"correlation_id": "c"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="not_a_field"):
            with LogContext.bind(correlation_id="c", not_a_field="x"):
                pass


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("billing_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("ingestion.resolver").name == "billing_kernel.ingestion.resolver"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "billing_kernel.deep.nested.module"
