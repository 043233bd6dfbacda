#!/usr/bin/env python3
"""
Rebuild cached scout balances from the journal

Replays every non-void journal line and overwrites any cached billing /
funds balance that disagrees. With --dry-run the drifts are only listed.

Usage:
    python -m scripts.rebuild_balances
    python -m scripts.rebuild_balances --unit-id <unit> --dry-run
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.logging import setup_logging
from engine.projector.projector import BalanceProjector

logger = logging.getLogger("scripts.rebuild_balances")


async def main(args: argparse.Namespace) -> int:
    db_path = Path(args.db) if args.db else get_settings(args.settings).db_path

    async with SQLiteAdapter(db_path) as db:
        projector = BalanceProjector(db)
        if args.dry_run:
            drifts = await projector.verify_all(args.unit_id)
        else:
            drifts = await projector.rebuild_all(args.unit_id)

    for drift in drifts:
        print(f"  - {drift.description} (difference {drift.difference})")

    if not drifts:
        print("All cached balances match the journal")
        return 0

    if args.dry_run:
        print(f"{len(drifts)} drifted balance(s) found (dry run, nothing changed)")
        return 1

    print(f"{len(drifts)} balance(s) repaired")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rebuild cached scout balances")
    parser.add_argument("--db", help="DB file path (default: settings.yaml database.path)")
    parser.add_argument("--settings", type=Path, default=None, help="settings.yaml path")
    parser.add_argument("--unit-id", default=None, help="Only this unit")
    parser.add_argument("--dry-run", action="store_true", help="Report drifts without repairing")
    args = parser.parse_args()

    setup_logging("scripts")
    sys.exit(asyncio.run(main(args)))
