"""Row normalization: raw source dicts to canonical records."""

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

__all__ = [
    "is_completed",
    "normalize_consolidated_row",
    "normalize_legacy_customer",
    "normalize_legacy_invoice",
    "normalize_legacy_transaction",
    "parse_amount",
    "parse_date",
    "parse_datetime",
    "parse_period",
    "platform_name_for_code",
    "resolve_field",
    "split_full_name",
]
