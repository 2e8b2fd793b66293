#!/usr/bin/env python3
"""
Load the three legacy exports (clientes.csv, facturas.csv, transacciones.csv)
from a directory into the billing database in one transaction.

Usage:
    python3 scripts/load_multi_csv.py [directory] [options]

The directory defaults to ../db relative to the current working directory.

Examples:
    python3 scripts/load_multi_csv.py exports/2024-06
    python3 scripts/load_multi_csv.py exports/2024-06 --db-url sqlite:///billing.db --create-tables
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
        description="Load legacy customer/invoice/transaction exports, all or nothing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "directory",
        nargs="?",
        type=Path,
        default=Path.cwd().parent / "db",
        help="Directory holding the three CSV exports (default: ../db).",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: BILLING_DATABASE_URL, then DATABASE_URL, then local PostgreSQL).",
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
    directory = args.directory.resolve()

    # Lazy imports so we fail fast on args first
    from billing_config import get_database_url
    from billing_ingestion.services import IngestionService
    from billing_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from billing_kernel.logging_config import configure_logging

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        engine = init_engine_from_url(args.db_url or get_database_url())
        if args.create_tables:
            create_tables(engine)
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    service = IngestionService(get_session_factory())
    print(f"Loading multi CSV from {directory}...")
    try:
        summary = service.load_from_directory(directory)
    except Exception as e:
        print(f"ERROR: Multi CSV load failed ({service.phase.value}): {e}", file=sys.stderr)
        return 1

    print("Multi CSV loaded.")
    print(json.dumps(summary.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
