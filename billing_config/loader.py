"""
Configuration Loader (``billing_config.loader``).

Responsibility
--------------
Loads the ingestion YAML file and parses it into typed
``billing_config.schema`` dataclass instances.  Runtime callers go through
``billing_config.get_ingestion_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* All four alias profiles must be present; a missing one is a ``KeyError``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Alias list that is not a list of strings  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import (
    REQUIRED_PROFILES,
    AliasProfile,
    CsvOptions,
    IngestionConfig,
    MultiFileNames,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_profile(name: str, data: dict[str, Any]) -> AliasProfile:
    """Parse one alias profile; YAML key order is the field order."""
    fields = []
    for field_name, aliases in (data or {}).items():
        if isinstance(aliases, str):
            aliases = [aliases]
        if not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases):
            raise ValueError(f"Profile {name!r} field {field_name!r}: aliases must be a list of strings")
        fields.append((str(field_name), tuple(aliases)))
    return AliasProfile(name=name, fields=tuple(fields))


def parse_ingestion_config(data: dict[str, Any]) -> IngestionConfig:
    """
    Parse an ``IngestionConfig`` from a dict.

    Raises:
        KeyError: if required keys or profiles are missing.
        ValueError: if an alias list is malformed.
    """
    profiles_data = data["profiles"]
    for required in REQUIRED_PROFILES:
        if required not in profiles_data:
            raise KeyError(f"Missing alias profile: {required}")

    multi = data.get("multi_file", {})
    csv_data = data.get("csv", {})

    return IngestionConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        default_currency=str(data.get("default_currency", "COP")).strip().upper(),
        completed_status=str(data["completed_status"]).strip().lower(),
        unknown_platform_prefix=data.get("unknown_platform_prefix", "Unknown-"),
        unknown_platform_code=str(data.get("unknown_platform_code", "0")),
        platform_codes=tuple(
            (str(code), str(name)) for code, name in (data.get("platform_codes") or {}).items()
        ),
        legacy_description_template=data["legacy_description_template"],
        legacy_missing_value=data.get("legacy_missing_value", "N/A"),
        legacy_default_amount=str(data.get("legacy_default_amount", "0")),
        multi_file=MultiFileNames(
            customers=multi.get("customers", "clientes.csv"),
            invoices=multi.get("invoices", "facturas.csv"),
            transactions=multi.get("transactions", "transacciones.csv"),
        ),
        csv=CsvOptions(
            encoding=csv_data.get("encoding", "utf-8-sig"),
            delimiter=csv_data.get("delimiter", ","),
        ),
        date_formats=tuple(data.get("date_formats", ("%Y-%m-%d",))),
        datetime_formats=tuple(data.get("datetime_formats", ("%Y-%m-%d %H:%M:%S",))),
        profiles=tuple(parse_profile(name, body) for name, body in profiles_data.items()),
        checksum=compute_checksum(data),
    )


def load_ingestion_config(path: Path) -> IngestionConfig:
    """Load and parse an ingestion config file."""
    return parse_ingestion_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
