"""
Ledger store

Persists and queries journal entries. The only writer of journal_entry /
journal_line; every write hands the entry to the BalanceProjector inside
the same transaction.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol
from uuid import uuid4

from core.config.loader import FeePolicy
from core.ledger.accounts import SCOUT_ACCOUNT_COLUMNS, ScoutAccount, Unit
from core.ledger.entry_builder import JournalEntry, JournalEntryBuilder, JournalLine
from core.ledger.errors import (
    AlreadyVoidError,
    InvalidAmountError,
    InvalidVoidTargetError,
    NotFoundError,
    ReasonRequiredError,
)
from core.ledger.schema import insert_initial_accounts
from core.ledger.types import BalanceKind, EntryType
from core.utils.money import ZERO
from core.utils.timezone import now_utc, parse_iso, to_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class EntryObserver(Protocol):
    """Receives every entry written, inside the write transaction"""

    async def apply_entry(self, entry: JournalEntry) -> None:
        ...


_ENTRY_COLUMNS = (
    "entry_id, unit_id, ts, entry_type, description, reference, created_by, "
    "is_posted, is_void, void_reason, voided_at, voided_by, "
    "reverses_entry_id, reversed_by_entry_id, raw_data"
)

_LINE_COLUMNS = (
    "line_id, account_code, debit, credit, scout_account_id, balance_kind, memo"
)


def require_reason(reason: str | None) -> str:
    """Void and refund reasons are mandatory

    Raises:
        ReasonRequiredError: None or blank
    """
    if reason is None or not reason.strip():
        raise ReasonRequiredError("A reason is required")
    return reason.strip()


class LedgerStore:
    """Ledger store

    Args:
        db: SQLite adapter
        projector: balance projector notified of every entry (None for
            read-only use)
    """

    def __init__(self, db: SQLiteAdapter, projector: EntryObserver | None = None):
        self.db = db
        self.projector = projector

    # =========================================================================
    # Units and scout accounts
    # =========================================================================

    async def create_unit(
        self,
        name: str,
        fee_percent: Decimal | None = None,
        fee_fixed: Decimal | None = None,
        unit_id: str | None = None,
    ) -> str:
        """Create a unit and seed its chart of accounts"""
        unit_id = unit_id or str(uuid4())

        async def _write() -> None:
            await self.db.execute(
                """
                INSERT INTO unit (unit_id, name, processing_fee_percent, processing_fee_fixed)
                VALUES (?, ?, ?, ?)
                """,
                (
                    unit_id,
                    name,
                    str(fee_percent) if fee_percent is not None else None,
                    str(fee_fixed) if fee_fixed is not None else None,
                ),
            )
            await insert_initial_accounts(self.db, unit_id)

        await self.db.run_transaction(_write)
        logger.info("Unit created", extra={"unit_id": unit_id, "unit_name": name})
        return unit_id

    async def get_unit(self, unit_id: str) -> Unit:
        row = await self.db.fetchone(
            """
            SELECT unit_id, name, processing_fee_percent, processing_fee_fixed
            FROM unit WHERE unit_id = ?
            """,
            (unit_id,),
        )
        if row is None:
            raise NotFoundError("Unit", unit_id)
        return Unit.from_row(row)

    async def get_unit_fee_policy(self, unit_id: str, default: FeePolicy) -> FeePolicy:
        """Unit's card fee policy, each part falling back to the default"""
        unit = await self.get_unit(unit_id)
        return FeePolicy(
            percent=(
                unit.processing_fee_percent
                if unit.processing_fee_percent is not None
                else default.percent
            ),
            fixed=(
                unit.processing_fee_fixed
                if unit.processing_fee_fixed is not None
                else default.fixed
            ),
        )

    async def create_scout_account(
        self,
        unit_id: str,
        scout_name: str,
        email: str | None = None,
    ) -> str:
        """Create a scout account with zero balances

        Returns:
            scout_account_id
        """
        if not scout_name or not scout_name.strip():
            raise InvalidAmountError("Scout name is required")
        await self.get_unit(unit_id)

        scout_account_id = str(uuid4())
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO scout_account (scout_account_id, unit_id, scout_name, email)
                VALUES (?, ?, ?, ?)
                """,
                (scout_account_id, unit_id, scout_name.strip(), email.strip().lower() if email else None),
            )

        logger.info(
            "Scout account created",
            extra={"unit_id": unit_id, "scout_account_id": scout_account_id},
        )
        return scout_account_id

    async def get_scout_account(self, scout_account_id: str) -> ScoutAccount:
        """Load a scout account

        Raises:
            NotFoundError: unknown id
        """
        row = await self.db.fetchone(
            f"SELECT {SCOUT_ACCOUNT_COLUMNS} FROM scout_account WHERE scout_account_id = ?",
            (scout_account_id,),
        )
        if row is None:
            raise NotFoundError("ScoutAccount", scout_account_id)
        return ScoutAccount.from_row(row)

    async def list_scout_accounts(self, unit_id: str) -> list[ScoutAccount]:
        rows = await self.db.fetchall(
            f"""
            SELECT {SCOUT_ACCOUNT_COLUMNS} FROM scout_account
            WHERE unit_id = ?
            ORDER BY scout_name
            """,
            (unit_id,),
        )
        return [ScoutAccount.from_row(row) for row in rows]

    async def find_scout_accounts_by_email(self, unit_id: str, email: str) -> list[ScoutAccount]:
        """Scout accounts of a unit with this contact email (case-insensitive)"""
        rows = await self.db.fetchall(
            f"""
            SELECT {SCOUT_ACCOUNT_COLUMNS} FROM scout_account
            WHERE unit_id = ? AND email = ?
            """,
            (unit_id, email.strip().lower()),
        )
        return [ScoutAccount.from_row(row) for row in rows]

    # =========================================================================
    # Writes
    # =========================================================================

    async def record_entry(self, entry: JournalEntry) -> str:
        """Persist a balanced entry and apply it to the cached balances

        Validation happens before anything is written. Entry, lines and
        balance effect commit together or not at all.

        Args:
            entry: entry to save

        Returns:
            entry_id

        Raises:
            InvalidAmountError: malformed line
            UnbalancedEntryError: debits != credits
            NotFoundError: a scout account is missing or belongs to another unit
        """
        entry.validate()

        async def _write() -> str:
            await self._check_scout_accounts(entry)
            await self._insert_entry(entry)
            if self.projector is not None:
                await self.projector.apply_entry(entry)
            return entry.entry_id

        entry_id = await self.db.run_transaction(_write)

        logger.info(
            f"Journal entry recorded: {entry.entry_type.value} {entry.total_debit}",
            extra={
                "entry_id": entry_id,
                "unit_id": entry.unit_id,
                "entry_type": entry.entry_type.value,
                "reference": entry.reference,
            },
        )
        return entry_id

    async def void_entry(
        self,
        entry_id: str,
        reason: str,
        voided_by: str | None = None,
        allow_owned: bool = False,
    ) -> str:
        """Void an entry by writing its mirror image

        The original stays on file flagged void with the reason; the
        reversal entry cancels its balance effect. Entries behind a billing
        record, a charge void, a payment or a refund are refused unless
        allow_owned is set.

        Args:
            entry_id: entry to void
            reason: audit reason (required)
            voided_by: caller profile id
            allow_owned: the caller updates the owning row in the same transaction

        Returns:
            reversal entry id

        Raises:
            ReasonRequiredError: blank reason
            NotFoundError: unknown entry
            AlreadyVoidError: entry already void
            InvalidVoidTargetError: entry is itself a reversal, or is owned
                by a billing or payment row
        """
        reason = require_reason(reason)

        async def _write() -> str:
            original = await self.get_entry(entry_id)
            if original is None:
                raise NotFoundError("JournalEntry", entry_id)
            if original.is_void:
                raise AlreadyVoidError(f"Journal entry already void: {entry_id}")
            if original.reverses_entry_id is not None:
                raise InvalidVoidTargetError(
                    f"Journal entry {entry_id} is a reversal and cannot be voided"
                )
            if not allow_owned:
                owner = await self._owner_of(original)
                if owner is not None:
                    raise InvalidVoidTargetError(
                        f"Journal entry {entry_id} belongs to {owner}; "
                        "void the billing record or charge, or refund the payment"
                    )

            reversal = JournalEntryBuilder.reversal(original, created_by=voided_by)
            reversal.validate()
            await self._insert_entry(reversal)

            await self.db.execute(
                """
                UPDATE journal_entry
                SET is_void = 1, void_reason = ?, voided_at = ?, voided_by = ?,
                    reversed_by_entry_id = ?
                WHERE entry_id = ?
                """,
                (reason, to_iso(now_utc()), voided_by, reversal.entry_id, entry_id),
            )

            if self.projector is not None:
                await self.projector.apply_entry(reversal)
            return reversal.entry_id

        reversal_id = await self.db.run_transaction(_write)

        logger.info(
            "Journal entry voided",
            extra={
                "entry_id": entry_id,
                "reversal_entry_id": reversal_id,
                "reason": reason,
            },
        )
        return reversal_id

    async def _owner_of(self, entry: JournalEntry) -> str | None:
        """Billing or payment row whose state rests on an entry"""
        if entry.entry_type == EntryType.REFUND and entry.reference:
            return f"the refunds of payment {entry.reference}"
        row = await self.db.fetchone(
            """
            SELECT 'billing record ' || billing_record_id
            FROM billing_record WHERE journal_entry_id = ?
            UNION ALL
            SELECT 'billing charge ' || billing_charge_id
            FROM billing_charge WHERE void_journal_entry_id = ?
            UNION ALL
            SELECT 'payment ' || payment_id
            FROM payment WHERE journal_entry_id = ?
            LIMIT 1
            """,
            (entry.entry_id, entry.entry_id, entry.entry_id),
        )
        return row[0] if row else None

    async def update_entry_description(self, entry_id: str, description: str) -> None:
        """Rename an entry (lines and amounts are never touched)

        Raises:
            NotFoundError: unknown entry
            AlreadyVoidError: void entries keep their description
        """
        entry = await self.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("JournalEntry", entry_id)
        if entry.is_void:
            raise AlreadyVoidError(f"Journal entry is void: {entry_id}")

        await self.db.execute(
            "UPDATE journal_entry SET description = ? WHERE entry_id = ?",
            (description, entry_id),
        )

    async def _check_scout_accounts(self, entry: JournalEntry) -> None:
        for scout_account_id in entry.scout_account_ids:
            account = await self.get_scout_account(scout_account_id)
            if account.unit_id != entry.unit_id:
                raise NotFoundError("ScoutAccount", f"{scout_account_id} in unit {entry.unit_id}")

    async def _insert_entry(self, entry: JournalEntry) -> None:
        """INSERT journal_entry + journal_line (caller owns the transaction)"""
        await self.db.execute(
            """
            INSERT INTO journal_entry (
                entry_id, unit_id, ts, entry_type, description, reference,
                created_by, is_posted, reverses_entry_id, raw_data
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.entry_id,
                entry.unit_id,
                to_iso(entry.ts),
                entry.entry_type.value,
                entry.description,
                entry.reference,
                entry.created_by,
                1 if entry.is_posted else 0,
                entry.reverses_entry_id,
                json.dumps(entry.raw_data) if entry.raw_data else None,
            ),
        )

        await self.db.executemany(
            """
            INSERT INTO journal_line (
                entry_id, account_code, scout_account_id, balance_kind,
                debit, credit, memo, line_order
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    entry.entry_id,
                    line.account_code,
                    line.scout_account_id,
                    BalanceKind(line.balance_kind).value if line.balance_kind else None,
                    str(line.debit),
                    str(line.credit),
                    line.memo,
                    i,
                )
                for i, line in enumerate(entry.lines)
            ],
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_entry(self, entry_id: str) -> JournalEntry | None:
        """Load an entry with its lines (None if missing)"""
        row = await self.db.fetchone(
            f"SELECT {_ENTRY_COLUMNS} FROM journal_entry WHERE entry_id = ?",
            (entry_id,),
        )
        if row is None:
            return None
        return await self._load_entry(row)

    async def get_entries_for_account(
        self,
        scout_account_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[JournalEntry]:
        """Entries touching a scout account, newest first

        Void entries and reversals are included (audit history).
        """
        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM journal_entry
            WHERE entry_id IN (
                SELECT DISTINCT entry_id FROM journal_line WHERE scout_account_id = ?
            )
            ORDER BY ts DESC, created_at DESC
            LIMIT ? OFFSET ?
            """,
            (scout_account_id, limit, offset),
        )
        return [await self._load_entry(row) for row in rows]

    async def get_entries_by_reference(self, reference: str) -> list[JournalEntry]:
        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM journal_entry
            WHERE reference = ?
            ORDER BY ts
            """,
            (reference,),
        )
        return [await self._load_entry(row) for row in rows]

    async def get_trial_balance(self, unit_id: str) -> dict[str, dict[str, Decimal]]:
        """Debit / credit totals per ledger account code

        Void pairs cancel each other, so all entries are included.
        """
        rows = await self.db.fetchall(
            """
            SELECT jl.account_code, jl.debit, jl.credit
            FROM journal_line jl
            JOIN journal_entry je ON je.entry_id = jl.entry_id
            WHERE je.unit_id = ? AND je.is_posted = 1
            """,
            (unit_id,),
        )
        totals: dict[str, dict[str, Decimal]] = {}
        for code, debit, credit in rows:
            bucket = totals.setdefault(code, {"debit": ZERO, "credit": ZERO})
            bucket["debit"] += Decimal(debit)
            bucket["credit"] += Decimal(credit)
        return totals

    async def get_unbalanced_entry_ids(self, unit_id: str | None = None) -> list[str]:
        """Entries whose lines do not balance (should always be empty)"""
        sql = """
            SELECT je.entry_id, jl.debit, jl.credit
            FROM journal_entry je
            JOIN journal_line jl ON je.entry_id = jl.entry_id
        """
        params: tuple[Any, ...] = ()
        if unit_id is not None:
            sql += " WHERE je.unit_id = ?"
            params = (unit_id,)

        sums: dict[str, Decimal] = {}
        for entry_id, debit, credit in await self.db.fetchall(sql, params):
            sums[entry_id] = sums.get(entry_id, ZERO) + Decimal(debit) - Decimal(credit)
        return sorted(entry_id for entry_id, diff in sums.items() if diff != ZERO)

    async def _load_entry(self, row: tuple[Any, ...]) -> JournalEntry:
        line_rows = await self.db.fetchall(
            f"""
            SELECT {_LINE_COLUMNS} FROM journal_line
            WHERE entry_id = ?
            ORDER BY line_order
            """,
            (row[0],),
        )
        lines = [
            JournalLine(
                account_code=line[1],
                debit=Decimal(line[2]),
                credit=Decimal(line[3]),
                scout_account_id=line[4],
                balance_kind=BalanceKind(line[5]) if line[5] else None,
                memo=line[6],
                line_id=line[0],
            )
            for line in line_rows
        ]
        return JournalEntry(
            entry_id=row[0],
            unit_id=row[1],
            ts=parse_iso(row[2]),
            entry_type=EntryType(row[3]),
            description=row[4],
            lines=lines,
            reference=row[5],
            created_by=row[6],
            is_posted=bool(row[7]),
            is_void=bool(row[8]),
            void_reason=row[9],
            voided_at=parse_iso(row[10]) if row[10] else None,
            voided_by=row[11],
            reverses_entry_id=row[12],
            reversed_by_entry_id=row[13],
            raw_data=json.loads(row[14]) if row[14] else None,
        )
