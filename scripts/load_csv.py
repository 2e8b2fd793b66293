#!/usr/bin/env python3
"""
Load a consolidated CSV (customers, invoices, transactions and allocations on
each row) into the billing database in one transaction.

Usage:
    python3 scripts/load_csv.py <csv> [options]

Examples:
    # Load into the database from BILLING_DATABASE_URL / DATABASE_URL
    python3 scripts/load_csv.py data/consolidated.csv

    # Preview the file (row count, columns, sample) without touching the database
    python3 scripts/load_csv.py data/consolidated.csv --preview-only

    # Local SQLite file, creating the tables first
    python3 scripts/load_csv.py data/consolidated.csv --db-url sqlite:///billing.db --create-tables
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load a consolidated CSV: normalize -> upsert, all or nothing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("file", type=Path, help="Path to the consolidated CSV.")
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: BILLING_DATABASE_URL, then DATABASE_URL, then local PostgreSQL).",
    )
    parser.add_argument(
        "--preview-only",
        action="store_true",
        help="Preview source file (row count, columns, sample rows) and exit. No DB access.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before loading.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log skipped rows (DEBUG).")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    source_path = args.file.resolve()
    if not source_path.is_file():
        print(f"ERROR: File not found: {source_path}", file=sys.stderr)
        return 1

    # Lazy imports so we fail fast on args first
    from billing_config import get_database_url, get_ingestion_config
    from billing_ingestion.adapters import CsvSourceAdapter
    from billing_ingestion.services import IngestionService
    from billing_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from billing_kernel.exceptions import BillingError
    from billing_kernel.logging_config import configure_logging

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    config = get_ingestion_config()

    if args.preview_only:
        try:
            preview = CsvSourceAdapter().preview(
                source_path, {"encoding": config.csv.encoding, "delimiter": config.csv.delimiter}
            )
        except BillingError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(f"Rows: {preview.row_count}")
        print(f"Columns: {list(preview.columns)}")
        print("Sample (first 3):")
        for i, row in enumerate(preview.sample_rows[:3], 1):
            print(f"  {i}: {row}")
        return 0

    try:
        engine = init_engine_from_url(args.db_url or get_database_url())
        if args.create_tables:
            create_tables(engine)
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    service = IngestionService(get_session_factory(), config=config)
    print(f"Loading {source_path}...")
    try:
        summary = service.load_single_file(source_path)
    except Exception as e:
        print(f"ERROR: CSV load failed ({service.phase.value}): {e}", file=sys.stderr)
        return 1

    print("CSV loaded.")
    print(json.dumps(summary.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
