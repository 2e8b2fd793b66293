"""
Ingestion configuration schema.

YAML under ``billing_config/defaults`` is parsed into these frozen types by
the loader.  The ingestion pipeline only ever sees these types, never raw
YAML dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field

CONSOLIDATED = "consolidated"
LEGACY_CUSTOMERS = "legacy_customers"
LEGACY_INVOICES = "legacy_invoices"
LEGACY_TRANSACTIONS = "legacy_transactions"

REQUIRED_PROFILES = (CONSOLIDATED, LEGACY_CUSTOMERS, LEGACY_INVOICES, LEGACY_TRANSACTIONS)


# ---------------------------------------------------------------------------
# Alias profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AliasProfile:
    """Ordered column aliases per canonical field for one source format."""

    name: str
    fields: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def aliases(self, canonical_field: str) -> tuple[str, ...]:
        """Aliases for a field, in priority order (empty if unknown)."""
        for name, aliases in self.fields:
            if name == canonical_field:
                return aliases
        return ()


# ---------------------------------------------------------------------------
# Multi-file layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MultiFileNames:
    """File names expected in a legacy export directory."""

    customers: str = "clientes.csv"
    invoices: str = "facturas.csv"
    transactions: str = "transacciones.csv"

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.customers, self.invoices, self.transactions)


@dataclass(frozen=True)
class CsvOptions:
    """Reader options shared by every source file."""

    encoding: str = "utf-8-sig"
    delimiter: str = ","


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IngestionConfig:
    """Complete ingestion configuration."""

    config_id: str
    version: int
    default_currency: str
    completed_status: str
    unknown_platform_prefix: str
    unknown_platform_code: str
    platform_codes: tuple[tuple[str, str], ...]
    legacy_description_template: str
    legacy_missing_value: str
    legacy_default_amount: str
    multi_file: MultiFileNames
    csv: CsvOptions
    date_formats: tuple[str, ...]
    datetime_formats: tuple[str, ...]
    profiles: tuple[AliasProfile, ...] = field(default_factory=tuple)
    checksum: str = ""

    def profile(self, name: str) -> AliasProfile:
        """Look up an alias profile by name."""
        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise KeyError(f"Unknown alias profile: {name}")

    @property
    def platform_code_map(self) -> dict[str, str]:
        return dict(self.platform_codes)
