"""Tests for the row normalizer: alias resolution, dates, amounts, skip rules."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from billing_config.schema import CONSOLIDATED, LEGACY_CUSTOMERS, LEGACY_INVOICES, LEGACY_TRANSACTIONS
from billing_ingestion.mapping.normalizer import (
    is_completed,
    normalize_consolidated_row,
    normalize_legacy_customer,
    normalize_legacy_invoice,
    normalize_legacy_transaction,
    parse_amount,
    parse_date,
    parse_datetime,
    parse_period,
    platform_name_for_code,
    resolve_field,
    split_full_name,
)

NOW = datetime(2024, 6, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def consolidated(ingestion_config):
    return ingestion_config.profile(CONSOLIDATED)


def _row(**values):
    return {k: v for k, v in values.items()}


# ---------------------------------------------------------------------------
# resolve_field / split_full_name
# ---------------------------------------------------------------------------


class TestResolveField:
    def test_first_non_empty_alias_wins(self):
        raw = {"customer_document": "", "document_number": "  C1 ", "ID": "X"}
        assert resolve_field(raw, ["customer_document", "document_number", "ID"]) == "C1"

    def test_whitespace_only_counts_as_empty(self):
        assert resolve_field({"a": "   ", "b": "v"}, ["a", "b"]) == "v"

    def test_no_match_returns_none(self):
        assert resolve_field({"a": ""}, ["a", "missing"]) is None

    def test_alias_order_not_column_order(self):
        raw = {"b": "second", "a": "first"}
        assert resolve_field(raw, ["a", "b"]) == "first"


class TestSplitFullName:
    def test_first_token_and_rest(self):
        assert split_full_name("Ana María  López Gómez") == ("Ana", "María López Gómez")

    def test_single_token(self):
        assert split_full_name("Cher") == ("Cher", "")

    def test_empty(self):
        assert split_full_name("") == ("", "")
        assert split_full_name(None) == ("", "")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class TestParsePeriod:
    def test_month_bounds(self):
        assert parse_period("2024-03") == (date(2024, 3, 1), date(2024, 3, 31))

    def test_leap_february(self):
        assert parse_period("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))

    def test_december(self):
        assert parse_period("2023-12") == (date(2023, 12, 1), date(2023, 12, 31))

    @pytest.mark.parametrize("value", ["", None, "2024", "2024-13", "2024-00", "marzo", "2024-03-01"])
    def test_invalid_period(self, value):
        assert parse_period(value) == (None, None)


class TestParseDate:
    def test_iso_date(self, ingestion_config):
        assert parse_date("2024-03-05", ingestion_config.date_formats) == date(2024, 3, 5)

    def test_day_first_slash(self, ingestion_config):
        assert parse_date("05/03/2024", ingestion_config.date_formats) == date(2024, 3, 5)

    def test_iso_timestamp_uses_utc_calendar_day(self, ingestion_config):
        assert parse_date("2024-03-05T23:30:00-05:00", ingestion_config.date_formats) == date(2024, 3, 6)

    def test_unparseable_is_none(self, ingestion_config):
        assert parse_date("not a date", ingestion_config.date_formats) is None
        assert parse_date("", ingestion_config.date_formats) is None


class TestParseDatetime:
    def test_naive_value_is_utc(self, ingestion_config):
        parsed = parse_datetime("2024-06-01 15:00:00", ingestion_config.datetime_formats)
        assert parsed == datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self, ingestion_config):
        parsed = parse_datetime("2024-06-01T10:00:00-05:00", ingestion_config.datetime_formats)
        assert parsed == datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)

    def test_zulu_suffix(self, ingestion_config):
        parsed = parse_datetime("2024-06-01T15:00:00Z", ingestion_config.datetime_formats)
        assert parsed == datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)

    def test_garbage_is_none(self, ingestion_config):
        assert parse_datetime("yesterday", ingestion_config.datetime_formats) is None


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


class TestParseAmount:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("100", Decimal("100")),
            ("1234.5", Decimal("1234.5")),
            ("1,234.50", Decimal("1234.50")),
            ("1.234,50", Decimal("1234.50")),
            ("1234,50", Decimal("1234.50")),
            ("1,234", Decimal("1234")),
            ("1.234.567", Decimal("1234567")),
            ("$ 150.000,75", Decimal("150000.75")),
            ("COP 2500", Decimal("2500")),
            ("  42  ", Decimal("42")),
            ("-10.5", Decimal("-10.5")),
        ],
    )
    def test_accepted_encodings(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "1,2,3", "12..5x"])
    def test_unparseable_is_none(self, raw):
        assert parse_amount(raw) is None


# ---------------------------------------------------------------------------
# Platforms / status
# ---------------------------------------------------------------------------


class TestPlatformCodes:
    def test_known_codes(self, ingestion_config):
        assert platform_name_for_code("1", ingestion_config) == "Nequi"
        assert platform_name_for_code("2", ingestion_config) == "Daviplata"

    def test_unknown_code(self, ingestion_config):
        assert platform_name_for_code("7", ingestion_config) == "Unknown-7"

    def test_missing_code(self, ingestion_config):
        assert platform_name_for_code("", ingestion_config) == "Unknown-0"
        assert platform_name_for_code(None, ingestion_config) == "Unknown-0"


class TestIsCompleted:
    def test_case_and_whitespace_insensitive(self, ingestion_config):
        assert is_completed(" Completada ", ingestion_config)
        assert is_completed("COMPLETADA", ingestion_config)

    def test_other_status(self, ingestion_config):
        assert not is_completed("Pendiente", ingestion_config)
        assert not is_completed(None, ingestion_config)


# ---------------------------------------------------------------------------
# Consolidated rows
# ---------------------------------------------------------------------------


class TestNormalizeConsolidatedRow:
    def test_full_row(self, consolidated, ingestion_config):
        raw = _row(
            customer_document="C1",
            first_name="Ana",
            last_name="Pérez",
            email="ana@example.com",
            invoice_number="INV1",
            issue_date="2024-01-10",
            invoice_total="100",
            platform="Nequi",
            transaction_reference="T1",
            transaction_date="2024-01-11 08:00:00",
            transaction_amount="100",
            allocated_amount="100",
        )
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)

        assert not row.skipped
        assert row.customer.document_number == "C1"
        assert row.customer.first_name == "Ana"
        assert row.customer.email == "ana@example.com"
        assert row.customer.phone is None
        assert row.invoice.invoice_number == "INV1"
        assert row.invoice.issue_date == date(2024, 1, 10)
        assert row.invoice.total_amount == Decimal("100")
        assert row.transaction.platform_name == "Nequi"
        assert row.transaction.transaction_date == datetime(2024, 1, 11, 8, 0, tzinfo=timezone.utc)
        assert row.transaction.currency == "COP"
        assert row.allocated_amount == Decimal("100")

    def test_missing_document_skips_whole_row(self, consolidated, ingestion_config):
        raw = _row(customer_document="  ", invoice_number="INV1", issue_date="2024-01-10", invoice_total="5")
        row = normalize_consolidated_row(raw, 3, consolidated, ingestion_config, NOW)
        assert row.skipped
        assert row.source_row == 3
        assert row.invoice is None
        assert row.transaction is None

    def test_spanish_aliases_and_full_name_split(self, consolidated, ingestion_config):
        raw = _row(ID_Cliente="900", Nombre="Luis Carlos Díaz", Telefono="3001234567")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.customer.document_number == "900"
        assert (row.customer.first_name, row.customer.last_name) == ("Luis", "Carlos Díaz")
        assert row.customer.phone == "3001234567"

    def test_explicit_names_beat_full_name(self, consolidated, ingestion_config):
        raw = _row(document_number="C2", first_name="Eva", name="Someone Else")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert (row.customer.first_name, row.customer.last_name) == ("Eva", "")

    def test_invoice_without_issue_date_is_dropped(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", invoice_number="INV1", invoice_total="100")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.customer is not None
        assert row.invoice is None

    def test_invoice_without_total_is_dropped(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", invoice_number="INV1", issue_date="2024-01-01")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.invoice is None

    def test_period_synthesizes_issue_and_due(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", invoice_number="INV1", invoice_total="10", Periodo="2024-03")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.invoice.issue_date == date(2024, 3, 1)
        assert row.invoice.due_date == date(2024, 3, 31)

    def test_explicit_issue_date_beats_period(self, consolidated, ingestion_config):
        raw = _row(
            document_number="C1", invoice_number="INV1", invoice_total="10",
            issue_date="2024-03-10", period="2024-01",
        )
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.invoice.issue_date == date(2024, 3, 10)
        assert row.invoice.due_date is None

    def test_explicit_due_date_overrides_synthesized(self, consolidated, ingestion_config):
        raw = _row(
            document_number="C1", invoice_number="INV1", invoice_total="10",
            period="2024-03", due_date="2024-04-15",
        )
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.invoice.issue_date == date(2024, 3, 1)
        assert row.invoice.due_date == date(2024, 4, 15)

    def test_unparseable_issue_date_falls_back_to_period(self, consolidated, ingestion_config):
        raw = _row(
            document_number="C1", invoice_number="INV1", invoice_total="10",
            issue_date="soon", period="2024-02",
        )
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.invoice.issue_date == date(2024, 2, 1)

    def test_transaction_requires_platform(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", transaction_reference="T1", amount="5")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.transaction is None

    def test_transaction_requires_amount(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", platform="Nequi", transaction_reference="T1", amount="n/a")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.transaction is None

    def test_platform_code_mapped_when_no_name(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", platform_code="2", tx_reference="T9", amount="5")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.transaction.platform_name == "Daviplata"

    def test_missing_transaction_date_uses_now(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", platform="Nequi", transaction_reference="T1", amount="5")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.transaction.transaction_date == NOW

    def test_currency_upper_cased(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", platform="Nequi", transaction_reference="T1", amount="5", currency="usd")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.transaction.currency == "USD"

    def test_description_from_note(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", platform="Nequi", transaction_reference="T1", amount="5", note="pago parcial")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.transaction.description == "pago parcial"

    def test_non_completed_status_clears_allocation(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", allocated_amount="100", status="Pendiente")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.allocated_amount is None

    def test_completed_status_keeps_allocation(self, consolidated, ingestion_config):
        raw = _row(document_number="C1", payment_amount="100", Estado="completada")
        row = normalize_consolidated_row(raw, 1, consolidated, ingestion_config, NOW)
        assert row.allocated_amount == Decimal("100")


# ---------------------------------------------------------------------------
# Legacy exports
# ---------------------------------------------------------------------------


class TestLegacyNormalizers:
    def test_customer(self, ingestion_config):
        profile = ingestion_config.profile(LEGACY_CUSTOMERS)
        raw = {"ID_Cliente": " 101 ", "Nombre": "María José Ruiz", "Email": "mj@example.com", "Teléfono": ""}
        legacy = normalize_legacy_customer(raw, 4, profile)
        assert legacy.native_id == "101"
        assert legacy.source_row == 4
        assert legacy.customer.document_number == "101"
        assert legacy.customer.first_name == "María"
        assert legacy.customer.last_name == "José Ruiz"
        assert legacy.customer.phone is None

    def test_customer_without_id(self, ingestion_config):
        profile = ingestion_config.profile(LEGACY_CUSTOMERS)
        assert normalize_legacy_customer({"ID_Cliente": "", "Nombre": "X"}, 1, profile) is None

    def test_invoice_period_and_total(self, ingestion_config):
        profile = ingestion_config.profile(LEGACY_INVOICES)
        legacy = normalize_legacy_invoice(
            {"ID_Factura": "F1", "Periodo": "2024-03", "Monto_Facturado": "150000"}, 1, profile, ingestion_config
        )
        assert legacy.issue_date == date(2024, 3, 1)
        assert legacy.due_date == date(2024, 3, 31)
        assert legacy.total_amount == Decimal("150000")

    def test_invoice_missing_total_defaults_to_zero(self, ingestion_config):
        profile = ingestion_config.profile(LEGACY_INVOICES)
        legacy = normalize_legacy_invoice({"ID_Factura": "F1", "Periodo": "bad"}, 1, profile, ingestion_config)
        assert legacy.total_amount == Decimal("0")
        assert legacy.issue_date is None

    def test_transaction(self, ingestion_config):
        profile = ingestion_config.profile(LEGACY_TRANSACTIONS)
        raw = {
            "ID_Transaccion": "TX1",
            "Fecha_Hora": "2024-06-01 15:00:00",
            "Monto_Pagado": "50000",
            "Estado": "Completada",
            "Tipo": "Pago de Factura",
            "ID_Cliente": "101",
            "ID_Factura": "F1",
            "ID_Plataforma": "1",
        }
        legacy = normalize_legacy_transaction(raw, 2, profile, ingestion_config, NOW)
        assert legacy.completed
        assert legacy.native_customer_id == "101"
        assert legacy.native_invoice_id == "F1"
        tx = legacy.transaction
        assert tx.transaction_reference == "TX1"
        assert tx.platform_name == "Nequi"
        assert tx.amount == Decimal("50000")
        assert tx.currency == "COP"
        assert tx.description == "Estado: Completada; Tipo: Pago de Factura"

    def test_transaction_defaults(self, ingestion_config):
        profile = ingestion_config.profile(LEGACY_TRANSACTIONS)
        legacy = normalize_legacy_transaction({"ID_Transaccion": "TX2"}, 1, profile, ingestion_config, NOW)
        tx = legacy.transaction
        assert not legacy.completed
        assert tx.platform_name == "Unknown-0"
        assert tx.amount == Decimal("0")
        assert tx.transaction_date == NOW
        assert tx.description == "Estado: N/A; Tipo: N/A"

    def test_transaction_without_reference_keeps_links(self, ingestion_config):
        profile = ingestion_config.profile(LEGACY_TRANSACTIONS)
        legacy = normalize_legacy_transaction(
            {"ID_Transaccion": "", "ID_Cliente": "101", "ID_Factura": "F1"}, 1, profile, ingestion_config, NOW
        )
        assert legacy.transaction is None
        assert legacy.native_invoice_id == "F1"
        assert legacy.native_customer_id == "101"
