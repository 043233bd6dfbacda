"""
Balance Projector

Keeps scout_account.billing_balance / funds_balance in step with the journal.
Incremental on every write; full replay for audit and repair.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.entry_builder import JournalEntry
from core.ledger.errors import InsufficientFundsError, NotFoundError
from core.ledger.types import BalanceKind
from core.utils.money import ZERO
from core.utils.timezone import now_utc, to_iso

logger = logging.getLogger(__name__)


# Lines counted by a full replay: a voided entry and its reversal cancel
# out, so both are left out.
_REPLAY_FILTER = "je.is_void = 0 AND je.reverses_entry_id IS NULL AND je.is_posted = 1"


@dataclass
class BalanceDrift:
    """Cached balance that disagrees with the journal"""

    scout_account_id: str
    balance_kind: BalanceKind
    cached: Decimal
    derived: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached - self.derived

    @property
    def description(self) -> str:
        return (
            f"{self.balance_kind.value} balance mismatch for {self.scout_account_id}: "
            f"cached {self.cached}, journal {self.derived}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "scout_account_id": self.scout_account_id,
            "balance_kind": self.balance_kind.value,
            "cached": str(self.cached),
            "derived": str(self.derived),
            "difference": str(self.difference),
        }


class BalanceProjector:
    """Balance projector

    apply_entry() runs inside the ledger write transaction, so a reader
    never sees an entry without its balance effect.

    Args:
        db: SQLite adapter

    Example:
    ```python
    projector = BalanceProjector(db)
    store = LedgerStore(db, projector)

    # audit
    drifts = await projector.verify_all(unit_id)

    # repair
    await projector.rebuild_all(unit_id)
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def apply_entry(self, entry: JournalEntry) -> None:
        """Add an entry's credit - debit to each touched scout balance

        Raises:
            InsufficientFundsError: a funds balance would go below zero
                (the caller's transaction rolls the entry back)
        """
        deltas: dict[str, dict[BalanceKind, Decimal]] = {}
        for line in entry.lines:
            if line.scout_account_id is None or line.balance_kind is None:
                continue
            per_kind = deltas.setdefault(
                line.scout_account_id,
                {BalanceKind.BILLING: ZERO, BalanceKind.FUNDS: ZERO},
            )
            per_kind[BalanceKind(line.balance_kind)] += line.balance_delta

        for scout_account_id in sorted(deltas):
            billing, funds = await self._read_cached(scout_account_id)
            delta = deltas[scout_account_id]
            new_funds = funds + delta[BalanceKind.FUNDS]
            if delta[BalanceKind.FUNDS] < ZERO and new_funds < ZERO:
                raise InsufficientFundsError(
                    f"Entry {entry.entry_id} would take {scout_account_id} funds to {new_funds}"
                )
            await self._write_cached(
                scout_account_id,
                billing + delta[BalanceKind.BILLING],
                new_funds,
                entry.entry_id,
            )

        logger.debug(
            f"Projected entry {entry.entry_id} onto {len(deltas)} scout account(s)"
        )

    async def derive_balances(self, scout_account_id: str) -> dict[BalanceKind, Decimal]:
        """Full replay of one account from its journal lines

        Returns:
            {BalanceKind.BILLING: ..., BalanceKind.FUNDS: ...}
        """
        rows = await self.db.fetchall(
            f"""
            SELECT jl.balance_kind, jl.debit, jl.credit
            FROM journal_line jl
            JOIN journal_entry je ON je.entry_id = jl.entry_id
            WHERE jl.scout_account_id = ? AND {_REPLAY_FILTER}
            """,
            (scout_account_id,),
        )
        totals = {BalanceKind.BILLING: ZERO, BalanceKind.FUNDS: ZERO}
        for kind, debit, credit in rows:
            totals[BalanceKind(kind)] += Decimal(credit) - Decimal(debit)
        return totals

    async def verify_all(self, unit_id: str | None = None) -> list[BalanceDrift]:
        """Compare every cached balance with a full replay

        Args:
            unit_id: limit to one unit (None checks every unit)

        Returns:
            drifts found (empty when the cache is consistent)
        """
        drifts: list[BalanceDrift] = []
        for scout_account_id, cached_billing, cached_funds in await self._accounts(unit_id):
            derived = await self.derive_balances(scout_account_id)
            cached = {
                BalanceKind.BILLING: Decimal(cached_billing),
                BalanceKind.FUNDS: Decimal(cached_funds),
            }
            for kind in (BalanceKind.BILLING, BalanceKind.FUNDS):
                if cached[kind] != derived[kind]:
                    drifts.append(BalanceDrift(
                        scout_account_id=scout_account_id,
                        balance_kind=kind,
                        cached=cached[kind],
                        derived=derived[kind],
                    ))

        if drifts:
            logger.warning(
                f"Balance drift detected: {len(drifts)}",
                extra={"unit_id": unit_id, "drifts": [d.to_dict() for d in drifts]},
            )
        return drifts

    async def rebuild_all(self, unit_id: str | None = None) -> list[BalanceDrift]:
        """Overwrite drifted caches with the replayed values

        Returns:
            drifts that were repaired
        """
        async def _repair() -> list[BalanceDrift]:
            drifts = await self.verify_all(unit_id)
            by_account: dict[str, list[BalanceDrift]] = {}
            for drift in drifts:
                by_account.setdefault(drift.scout_account_id, []).append(drift)

            for scout_account_id in sorted(by_account):
                derived = await self.derive_balances(scout_account_id)
                await self.db.execute(
                    """
                    UPDATE scout_account
                    SET billing_balance = ?, funds_balance = ?, updated_at = ?
                    WHERE scout_account_id = ?
                    """,
                    (
                        str(derived[BalanceKind.BILLING]),
                        str(derived[BalanceKind.FUNDS]),
                        to_iso(now_utc()),
                        scout_account_id,
                    ),
                )
                for drift in by_account[scout_account_id]:
                    logger.warning(f"Balance repaired: {drift.description}")
            return drifts

        return await self.db.run_transaction(_repair)

    async def _accounts(self, unit_id: str | None) -> list[tuple[Any, ...]]:
        sql = "SELECT scout_account_id, billing_balance, funds_balance FROM scout_account"
        if unit_id is None:
            return await self.db.fetchall(sql + " ORDER BY scout_account_id")
        return await self.db.fetchall(
            sql + " WHERE unit_id = ? ORDER BY scout_account_id", (unit_id,),
        )

    async def _read_cached(self, scout_account_id: str) -> tuple[Decimal, Decimal]:
        row = await self.db.fetchone(
            "SELECT billing_balance, funds_balance FROM scout_account WHERE scout_account_id = ?",
            (scout_account_id,),
        )
        if row is None:
            raise NotFoundError("ScoutAccount", scout_account_id)
        return Decimal(row[0]), Decimal(row[1])

    async def _write_cached(
        self,
        scout_account_id: str,
        billing: Decimal,
        funds: Decimal,
        entry_id: str,
    ) -> None:
        await self.db.execute(
            """
            UPDATE scout_account
            SET billing_balance = ?, funds_balance = ?, last_entry_id = ?, updated_at = ?
            WHERE scout_account_id = ?
            """,
            (str(billing), str(funds), entry_id, to_iso(now_utc()), scout_account_id),
        )
