#!/usr/bin/env python3
"""
Initialise the ledger database

Creates the schema (idempotent) and optionally a unit with its chart of
accounts.

Usage:
    python -m scripts.init_db
    python -m scripts.init_db --db data/unit_ledger.db --unit-name "Troop 42"
"""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings
from core.ledger.store import LedgerStore
from core.logging import setup_logging

logger = logging.getLogger("scripts.init_db")


async def main(args: argparse.Namespace) -> int:
    db_path = Path(args.db) if args.db else get_settings(args.settings).db_path

    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)
        logger.info(f"Schema ready: {db_path}")

        if args.unit_name:
            store = LedgerStore(db)
            unit_id = await store.create_unit(
                args.unit_name,
                Decimal(args.fee_percent) if args.fee_percent else None,
                Decimal(args.fee_fixed) if args.fee_fixed else None,
            )
            print(f"Unit created: {unit_id} ({args.unit_name})")

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialise the ledger database")
    parser.add_argument("--db", help="DB file path (default: settings.yaml database.path)")
    parser.add_argument("--settings", type=Path, default=None, help="settings.yaml path")
    parser.add_argument("--unit-name", help="Create a unit with this name")
    parser.add_argument("--fee-percent", help="Unit card fee fraction (0.026 = 2.6%%)")
    parser.add_argument("--fee-fixed", help="Unit card fee fixed part in dollars")
    args = parser.parse_args()

    setup_logging("scripts")
    sys.exit(asyncio.run(main(args)))
