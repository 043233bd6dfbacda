#!/usr/bin/env python3
"""
Pull Square payments into the reconciliation table

New payments start unlinked; a payment whose buyer email matches exactly
one scout is linked automatically. With --report, operators are notified
about anything still unlinked.

Usage:
    python -m scripts.sync_square --unit-id <unit>
    python -m scripts.sync_square --unit-id <unit> --since 2026-09-01T00:00:00Z --report
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings
from core.domain.permissions import Actor
from core.logging import setup_logging
from core.types import Role
from core.utils.timezone import parse_iso
from engine.bootstrap import build_ledger_service, create_notifier, create_square_client

logger = logging.getLogger("scripts.sync_square")

SCRIPT_ACTOR = Actor(profile_id="scripts.sync_square", role=Role.ADMIN)


async def main(args: argparse.Namespace) -> int:
    settings = get_settings(args.settings)
    square = create_square_client(settings)
    if square is None:
        print("Square is not configured (square.access_token / square.location_id)")
        return 1

    notifier = create_notifier(settings) if args.report else None
    try:
        async with SQLiteAdapter(settings.db_path, max_retries=settings.ledger.max_commit_retries) as db:
            await init_schema(db)
            ledger = build_ledger_service(db, settings, gateway=square, notifier=notifier)

            result = await ledger.sync_from_feed(SCRIPT_ACTOR, args.unit_id, square, parse_iso(args.since))
            print(
                f"Synced: {result.created} new, {result.updated} updated, "
                f"{result.auto_linked} auto-linked"
            )

            if args.report:
                unlinked = await ledger.report_unlinked(args.unit_id)
                print(f"Unlinked: {unlinked}")
    finally:
        await square.close()
        if notifier is not None:
            await notifier.close()

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync Square payments")
    parser.add_argument("--unit-id", required=True, help="Unit to sync into")
    parser.add_argument("--settings", type=Path, default=None, help="settings.yaml path")
    parser.add_argument("--since", default=None, help="Only payments created at or after (ISO-8601)")
    parser.add_argument("--report", action="store_true", help="Notify operators about unlinked payments")
    args = parser.parse_args()

    setup_logging("scripts")
    sys.exit(asyncio.run(main(args)))
