"""
Ledger schema initialisation

Creates the ledger tables and views at startup.
CREATE IF NOT EXISTS / DROP VIEW IF EXISTS keep it safe to run repeatedly.
"""

import logging
from typing import TYPE_CHECKING

from core.ledger.types import INITIAL_ACCOUNTS

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Create ledger tables and views

    Called by the web app at startup and by scripts/init_db.py.
    Existing tables are left untouched.

    Args:
        db: SQLiteAdapter instance
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await _create_ledger_views(db)
    logger.info("Ledger schema initialised")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    await db.execute("""
        CREATE TABLE IF NOT EXISTS unit (
            unit_id                 TEXT PRIMARY KEY,
            name                    TEXT NOT NULL,
            processing_fee_percent  TEXT,
            processing_fee_fixed    TEXT,
            created_at              TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # Per-unit chart of accounts
    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_account (
            unit_id          TEXT NOT NULL REFERENCES unit(unit_id),
            code             TEXT NOT NULL,
            name             TEXT NOT NULL,
            account_type     TEXT NOT NULL,
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            PRIMARY KEY (unit_id, code)
        )
    """)

    # billing_balance / funds_balance are a cache of journal_line (BalanceProjector)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS scout_account (
            scout_account_id TEXT PRIMARY KEY,
            unit_id          TEXT NOT NULL REFERENCES unit(unit_id),
            scout_name       TEXT NOT NULL,
            email            TEXT,
            billing_balance  TEXT NOT NULL DEFAULT '0.00',
            funds_balance    TEXT NOT NULL DEFAULT '0.00',
            last_entry_id    TEXT,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS journal_entry (
            entry_id             TEXT PRIMARY KEY,
            unit_id              TEXT NOT NULL REFERENCES unit(unit_id),
            ts                   TEXT NOT NULL,
            entry_type           TEXT NOT NULL,
            description          TEXT NOT NULL,
            reference            TEXT,
            is_posted            INTEGER NOT NULL DEFAULT 1,
            is_void              INTEGER NOT NULL DEFAULT 0,
            void_reason          TEXT,
            voided_at            TEXT,
            voided_by            TEXT,
            reverses_entry_id    TEXT REFERENCES journal_entry(entry_id),
            reversed_by_entry_id TEXT REFERENCES journal_entry(entry_id),
            created_by           TEXT,
            raw_data             TEXT,
            created_at           TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS journal_line (
            line_id          INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_id         TEXT NOT NULL REFERENCES journal_entry(entry_id),
            account_code     TEXT NOT NULL,
            scout_account_id TEXT REFERENCES scout_account(scout_account_id),
            balance_kind     TEXT,
            debit            TEXT NOT NULL DEFAULT '0.00',
            credit           TEXT NOT NULL DEFAULT '0.00',
            memo             TEXT,
            line_order       INTEGER NOT NULL DEFAULT 0,
            CHECK (balance_kind IS NULL OR balance_kind IN ('billing', 'funds')),
            CHECK ((scout_account_id IS NULL) = (balance_kind IS NULL))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS billing_record (
            billing_record_id TEXT PRIMARY KEY,
            unit_id           TEXT NOT NULL REFERENCES unit(unit_id),
            description       TEXT NOT NULL,
            total_amount      TEXT NOT NULL,
            billing_date      TEXT NOT NULL,
            journal_entry_id  TEXT REFERENCES journal_entry(entry_id),
            is_void           INTEGER NOT NULL DEFAULT 0,
            void_reason       TEXT,
            voided_at         TEXT,
            voided_by         TEXT,
            created_by        TEXT,
            created_at        TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS billing_charge (
            billing_charge_id     TEXT PRIMARY KEY,
            billing_record_id     TEXT NOT NULL REFERENCES billing_record(billing_record_id),
            scout_account_id      TEXT NOT NULL REFERENCES scout_account(scout_account_id),
            amount                TEXT NOT NULL,
            is_paid               INTEGER NOT NULL DEFAULT 0,
            is_void               INTEGER NOT NULL DEFAULT 0,
            void_reason           TEXT,
            voided_at             TEXT,
            voided_by             TEXT,
            void_journal_entry_id TEXT REFERENCES journal_entry(entry_id),
            created_at            TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE (billing_record_id, scout_account_id)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS payment (
            payment_id        TEXT PRIMARY KEY,
            unit_id           TEXT NOT NULL REFERENCES unit(unit_id),
            scout_account_id  TEXT NOT NULL REFERENCES scout_account(scout_account_id),
            amount            TEXT NOT NULL,
            fee_amount        TEXT NOT NULL DEFAULT '0.00',
            net_amount        TEXT NOT NULL,
            method            TEXT NOT NULL,
            status            TEXT NOT NULL,
            square_payment_id TEXT,
            billing_charge_id TEXT REFERENCES billing_charge(billing_charge_id),
            journal_entry_id  TEXT REFERENCES journal_entry(entry_id),
            refunded_amount   TEXT NOT NULL DEFAULT '0.00',
            notes             TEXT,
            voided_at         TEXT,
            void_reason       TEXT,
            created_by        TEXT,
            created_at        TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # Mirror of the card processor's payments
    await db.execute("""
        CREATE TABLE IF NOT EXISTS square_transaction (
            square_transaction_id TEXT PRIMARY KEY,
            unit_id               TEXT NOT NULL REFERENCES unit(unit_id),
            square_payment_id     TEXT NOT NULL,
            amount_minor          INTEGER NOT NULL,
            fee_minor             INTEGER NOT NULL DEFAULT 0,
            net_minor             INTEGER NOT NULL,
            currency              TEXT NOT NULL DEFAULT 'USD',
            status                TEXT NOT NULL,
            buyer_email           TEXT,
            note                  TEXT,
            reconciliation_state  TEXT NOT NULL DEFAULT 'unlinked',
            is_reconciled         INTEGER NOT NULL DEFAULT 0,
            scout_account_id      TEXT REFERENCES scout_account(scout_account_id),
            payment_id            TEXT REFERENCES payment(payment_id),
            square_created_at     TEXT,
            synced_at             TEXT NOT NULL DEFAULT (datetime('now')),
            reconciled_at         TEXT,
            reconciled_by         TEXT,
            UNIQUE (unit_id, square_payment_id)
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    await db.execute("CREATE INDEX IF NOT EXISTS idx_scout_account_unit ON scout_account(unit_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_scout_account_email ON scout_account(unit_id, email)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_journal_entry_unit_ts ON journal_entry(unit_id, ts)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_journal_entry_reference ON journal_entry(reference)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_journal_entry_reverses ON journal_entry(reverses_entry_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_journal_line_entry ON journal_line(entry_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_journal_line_scout ON journal_line(scout_account_id, balance_kind)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_billing_record_unit ON billing_record(unit_id, billing_date)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_billing_charge_record ON billing_charge(billing_record_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_billing_charge_scout ON billing_charge(scout_account_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_payment_scout ON payment(scout_account_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_payment_square ON payment(square_payment_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_square_tx_state ON square_transaction(unit_id, reconciliation_state)")


async def _create_ledger_views(db: "SQLiteAdapter") -> None:
    """Read-only views

    Views are always dropped and recreated so definition changes apply.
    Amounts are summed as REAL for display only; balance checks use
    Decimal in Python.
    """
    # 1. Per-scout activity (void pairs excluded)
    await db.execute("DROP VIEW IF EXISTS v_scout_activity")
    await db.execute("""
        CREATE VIEW v_scout_activity AS
        SELECT
            sa.unit_id,
            sa.scout_account_id,
            sa.scout_name,
            jl.balance_kind,
            COUNT(DISTINCT je.entry_id) as entry_count,
            SUM(CAST(jl.debit AS REAL)) as total_debit,
            SUM(CAST(jl.credit AS REAL)) as total_credit
        FROM scout_account sa
        JOIN journal_line jl ON jl.scout_account_id = sa.scout_account_id
        JOIN journal_entry je ON je.entry_id = jl.entry_id
        WHERE je.is_void = 0
            AND je.reverses_entry_id IS NULL
        GROUP BY sa.unit_id, sa.scout_account_id, sa.scout_name, jl.balance_kind
    """)

    # 2. Journal lines with entry context
    await db.execute("DROP VIEW IF EXISTS v_account_ledger")
    await db.execute("""
        CREATE VIEW v_account_ledger AS
        SELECT
            je.unit_id,
            je.ts,
            je.entry_id,
            je.entry_type,
            je.description,
            je.reference,
            je.is_void,
            je.reverses_entry_id,
            jl.line_id,
            jl.account_code,
            la.name as account_name,
            jl.scout_account_id,
            jl.balance_kind,
            jl.debit,
            jl.credit,
            jl.memo
        FROM journal_line jl
        JOIN journal_entry je ON je.entry_id = jl.entry_id
        LEFT JOIN ledger_account la
            ON la.unit_id = je.unit_id AND la.code = jl.account_code
        ORDER BY je.ts DESC, jl.line_order
    """)

    # 3. Processor transactions waiting for a scout
    await db.execute("DROP VIEW IF EXISTS v_unlinked_transactions")
    await db.execute("""
        CREATE VIEW v_unlinked_transactions AS
        SELECT
            unit_id,
            square_transaction_id,
            square_payment_id,
            amount_minor,
            buyer_email,
            note,
            square_created_at
        FROM square_transaction
        WHERE reconciliation_state = 'unlinked'
        ORDER BY square_created_at
    """)

    logger.debug("Ledger views created")


async def insert_initial_accounts(db: "SQLiteAdapter", unit_id: str) -> None:
    """Seed the chart of accounts for a unit

    Existing accounts are left alone (INSERT OR IGNORE).
    """
    await db.executemany(
        """
        INSERT OR IGNORE INTO ledger_account (unit_id, code, name, account_type)
        VALUES (?, ?, ?, ?)
        """,
        [(unit_id, code, name, account_type) for code, name, account_type in INITIAL_ACCOUNTS],
    )
    logger.debug(f"Chart of accounts seeded for unit {unit_id}")
