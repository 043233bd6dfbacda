#!/usr/bin/env python3
"""
Verify ledger invariants

- every journal entry balances (sum of debits == sum of credits)
- every cached scout balance equals its journal replay

Exit code 1 when anything fails.

Usage:
    python -m scripts.verify_ledger --unit-id <unit>
"""

import argparse
import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.ledger.store import LedgerStore
from core.logging import setup_logging
from engine.projector.projector import BalanceProjector


async def main(args: argparse.Namespace) -> int:
    db_path = Path(args.db) if args.db else get_settings(args.settings).db_path

    async with SQLiteAdapter(db_path, readonly=True) as db:
        store = LedgerStore(db)
        unbalanced = await store.get_unbalanced_entry_ids(args.unit_id)
        drifts = await BalanceProjector(db).verify_all(args.unit_id)

    print(f"DB Path: {db_path}")
    print(f"Unbalanced entries: {len(unbalanced)}")
    for entry_id in unbalanced:
        print(f"  - {entry_id}")

    print(f"Balance drifts: {len(drifts)}")
    for drift in drifts:
        print(f"  - {drift.description}")

    return 1 if unbalanced or drifts else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify ledger invariants")
    parser.add_argument("--db", help="DB file path (default: settings.yaml database.path)")
    parser.add_argument("--settings", type=Path, default=None, help="settings.yaml path")
    parser.add_argument("--unit-id", default=None, help="Only this unit")
    args = parser.parse_args()

    setup_logging("scripts")
    sys.exit(asyncio.run(main(args)))
