"""
Row normalizer: pure transformation from raw CSV dicts to canonical records.

Column names vary between feeds (English/Spanish, several aliases per
field), as do date and amount encodings.  Every function here is pure:
configuration and the current time are passed in, ZERO I/O.

Skip rules (never errors):
    - no document number            -> whole consolidated row skipped
    - invoice without number, total or issue date  -> no invoice
    - transaction without platform, reference or amount  -> no transaction
    - status present and not the completed sentinel  -> no allocation
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from billing_config.schema import AliasProfile, IngestionConfig
from billing_ingestion.domain.types import (
    ConsolidatedRow,
    CustomerRecord,
    InvoiceRecord,
    LegacyCustomer,
    LegacyInvoice,
    LegacyTransaction,
    TransactionRecord,
)

_PERIOD_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")
_CURRENCY_PREFIX_RE = re.compile(r"^(?:\$|[A-Za-z]{3}\s*\$?)")
_THOUSANDS_COMMA_RE = re.compile(r"^-?\d{1,3}(,\d{3})+$")


# -----------------------------------------------------------------------------
# Field resolution
# -----------------------------------------------------------------------------


def resolve_field(raw: Mapping[str, Any], aliases: Iterable[str]) -> str | None:
    """First alias whose value is non-empty after trimming; trimmed value or None."""
    for alias in aliases:
        value = raw.get(alias)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _field(raw: Mapping[str, Any], profile: AliasProfile, name: str) -> str | None:
    return resolve_field(raw, profile.aliases(name))


def split_full_name(full_name: str | None) -> tuple[str, str]:
    """First whitespace token is the first name, the rest the last name."""
    parts = (full_name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------


def parse_period(value: str | None) -> tuple[date | None, date | None]:
    """
    'YYYY-MM' -> (first day, last day) of that month.

    Pure calendar arithmetic, so the result never depends on a local
    timezone.  Anything else -> (None, None).
    """
    if not value:
        return None, None
    match = _PERIOD_RE.match(value)
    if not match:
        return None, None
    year, month = int(match.group(1)), int(match.group(2))
    if year < 1 or not 1 <= month <= 12:
        return None, None
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _parse_iso(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value: str | None, formats: Iterable[str]) -> date | None:
    """Parse a calendar date with the configured formats, then ISO 8601."""
    if not value:
        return None
    text = value.strip()
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    parsed = _parse_iso(text)
    if parsed is None:
        return None
    return _to_utc(parsed).date()


def parse_datetime(value: str | None, formats: Iterable[str]) -> datetime | None:
    """Parse a timestamp to an aware UTC datetime; naive values are taken as UTC."""
    if not value:
        return None
    text = value.strip()
    for fmt in formats:
        try:
            return _to_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    parsed = _parse_iso(text)
    if parsed is None:
        return None
    return _to_utc(parsed)


# -----------------------------------------------------------------------------
# Amounts
# -----------------------------------------------------------------------------


def parse_amount(value: str | None) -> Decimal | None:
    """
    Parse a money amount to Decimal.

    Accepts '1234.5', '1,234.50', '1.234,50', '1234,50', an optional
    leading '$' or currency code, and surrounding spaces.  The right-most
    of ',' / '.' is the decimal separator when both appear.  Unparseable
    -> None.
    """
    if value is None:
        return None
    text = str(value).strip()
    negative = text.startswith("-")
    if negative:
        text = text[1:].strip()
    text = _CURRENCY_PREFIX_RE.sub("", text).replace(" ", "").replace("\u00a0", "")
    if not text:
        return None

    has_comma, has_dot = "," in text, "." in text
    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma:
        if _THOUSANDS_COMMA_RE.match(text):
            text = text.replace(",", "")
        elif text.count(",") == 1:
            text = text.replace(",", ".")
        else:
            return None
    elif has_dot and text.count(".") > 1:
        text = text.replace(".", "")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -amount if negative else amount


# -----------------------------------------------------------------------------
# Platforms and status
# -----------------------------------------------------------------------------


def platform_name_for_code(code: str | None, config: IngestionConfig) -> str:
    """Known code -> platform name; anything else -> 'Unknown-<code>' ('0' when absent)."""
    code = (code or "").strip()
    known = config.platform_code_map.get(code)
    if known:
        return known
    return f"{config.unknown_platform_prefix}{code or config.unknown_platform_code}"


def is_completed(status: str | None, config: IngestionConfig) -> bool:
    return (status or "").strip().lower() == config.completed_status


def _currency(value: str | None, config: IngestionConfig) -> str:
    return (value or config.default_currency).strip().upper()


# -----------------------------------------------------------------------------
# Consolidated feed
# -----------------------------------------------------------------------------


def normalize_consolidated_row(
    raw: Mapping[str, Any],
    source_row: int,
    profile: AliasProfile,
    config: IngestionConfig,
    now: datetime,
) -> ConsolidatedRow:
    """Map one consolidated-feed row to its canonical records."""
    document_number = _field(raw, profile, "document_number")
    if document_number is None:
        return ConsolidatedRow(source_row=source_row, customer=None)

    first_name = _field(raw, profile, "first_name") or ""
    last_name = _field(raw, profile, "last_name") or ""
    if not first_name and not last_name:
        first_name, last_name = split_full_name(_field(raw, profile, "full_name"))

    customer = CustomerRecord(
        document_number=document_number,
        first_name=first_name,
        last_name=last_name,
        email=_field(raw, profile, "email"),
        phone=_field(raw, profile, "phone"),
    )

    return ConsolidatedRow(
        source_row=source_row,
        customer=customer,
        invoice=_consolidated_invoice(raw, profile, config),
        transaction=_consolidated_transaction(raw, profile, config, now),
        allocated_amount=_consolidated_allocation(raw, profile, config),
    )


def _consolidated_invoice(
    raw: Mapping[str, Any], profile: AliasProfile, config: IngestionConfig
) -> InvoiceRecord | None:
    invoice_number = _field(raw, profile, "invoice_number")
    total_amount = parse_amount(_field(raw, profile, "total_amount"))

    issue_date = parse_date(_field(raw, profile, "issue_date"), config.date_formats)
    due_date = None
    if issue_date is None:
        issue_date, due_date = parse_period(_field(raw, profile, "period"))
    explicit_due = parse_date(_field(raw, profile, "due_date"), config.date_formats)
    if explicit_due is not None:
        due_date = explicit_due

    if invoice_number is None or total_amount is None or issue_date is None:
        return None
    return InvoiceRecord(
        invoice_number=invoice_number,
        issue_date=issue_date,
        due_date=due_date,
        total_amount=total_amount,
    )


def _consolidated_transaction(
    raw: Mapping[str, Any],
    profile: AliasProfile,
    config: IngestionConfig,
    now: datetime,
) -> TransactionRecord | None:
    platform_name = _field(raw, profile, "platform_name")
    if platform_name is None:
        code = _field(raw, profile, "platform_code")
        if code is not None:
            platform_name = platform_name_for_code(code, config)
    reference = _field(raw, profile, "transaction_reference")
    amount = parse_amount(_field(raw, profile, "amount"))

    if platform_name is None or reference is None or amount is None:
        return None
    transaction_date = parse_datetime(_field(raw, profile, "transaction_date"), config.datetime_formats)
    return TransactionRecord(
        transaction_reference=reference,
        platform_name=platform_name,
        transaction_date=transaction_date or now,
        amount=amount,
        currency=_currency(_field(raw, profile, "currency"), config),
        description=_field(raw, profile, "description"),
    )


def _consolidated_allocation(
    raw: Mapping[str, Any], profile: AliasProfile, config: IngestionConfig
) -> Decimal | None:
    status = _field(raw, profile, "status")
    if status is not None and not is_completed(status, config):
        return None
    return parse_amount(_field(raw, profile, "allocated_amount"))


# -----------------------------------------------------------------------------
# Legacy exports
# -----------------------------------------------------------------------------


def normalize_legacy_customer(
    raw: Mapping[str, Any], source_row: int, profile: AliasProfile
) -> LegacyCustomer | None:
    """Customer export row; None when the native id is blank."""
    native_id = _field(raw, profile, "customer_id")
    if native_id is None:
        return None
    first_name, last_name = split_full_name(_field(raw, profile, "full_name"))
    return LegacyCustomer(
        native_id=native_id,
        source_row=source_row,
        customer=CustomerRecord(
            document_number=native_id,
            first_name=first_name,
            last_name=last_name,
            email=_field(raw, profile, "email"),
            phone=_field(raw, profile, "phone"),
        ),
    )


def normalize_legacy_invoice(
    raw: Mapping[str, Any], source_row: int, profile: AliasProfile, config: IngestionConfig
) -> LegacyInvoice | None:
    """Invoice export row; None when the native id is blank."""
    native_id = _field(raw, profile, "invoice_id")
    if native_id is None:
        return None
    issue_date, due_date = parse_period(_field(raw, profile, "period"))
    total = parse_amount(_field(raw, profile, "total_amount"))
    return LegacyInvoice(
        native_id=native_id,
        source_row=source_row,
        issue_date=issue_date,
        due_date=due_date,
        total_amount=total if total is not None else Decimal(config.legacy_default_amount),
    )


def normalize_legacy_transaction(
    raw: Mapping[str, Any],
    source_row: int,
    profile: AliasProfile,
    config: IngestionConfig,
    now: datetime,
) -> LegacyTransaction:
    """Transaction export row; the platform always resolves through the code table."""
    status = _field(raw, profile, "status")
    kind = _field(raw, profile, "kind")
    reference = _field(raw, profile, "transaction_reference")

    transaction = None
    if reference is not None:
        amount = parse_amount(_field(raw, profile, "amount"))
        transaction_date = parse_datetime(_field(raw, profile, "transaction_date"), config.datetime_formats)
        transaction = TransactionRecord(
            transaction_reference=reference,
            platform_name=platform_name_for_code(_field(raw, profile, "platform_code"), config),
            transaction_date=transaction_date or now,
            amount=amount if amount is not None else Decimal(config.legacy_default_amount),
            currency=config.default_currency,
            description=config.legacy_description_template.format(
                status=status or config.legacy_missing_value,
                kind=kind or config.legacy_missing_value,
            ),
        )

    return LegacyTransaction(
        source_row=source_row,
        native_customer_id=_field(raw, profile, "customer_id") or "",
        native_invoice_id=_field(raw, profile, "invoice_id") or "",
        completed=is_completed(status, config),
        transaction=transaction,
    )
