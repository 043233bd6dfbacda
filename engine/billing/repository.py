"""
Billing Repository

billing_record / billing_charge CRUD.
Writes assume the caller already holds the ledger transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.utils.timezone import now_utc, parse_iso, to_iso

logger = logging.getLogger(__name__)


@dataclass
class BillingCharge:
    """One scout's share of a billing record

    Attributes:
        billing_charge_id: charge id
        billing_record_id: parent record
        scout_account_id: charged scout
        amount: fair-share amount
        is_paid: a payment has been applied to this charge
        is_void: charge cancelled
        void_journal_entry_id: compensating entry (single-charge void)
    """

    billing_charge_id: str
    billing_record_id: str
    scout_account_id: str
    amount: Decimal
    is_paid: bool = False
    is_void: bool = False
    void_reason: str | None = None
    voided_at: datetime | None = None
    voided_by: str | None = None
    void_journal_entry_id: str | None = None

    @property
    def is_active(self) -> bool:
        return not self.is_void

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BillingCharge":
        return cls(
            billing_charge_id=row["billing_charge_id"],
            billing_record_id=row["billing_record_id"],
            scout_account_id=row["scout_account_id"],
            amount=Decimal(row["amount"]),
            is_paid=bool(row["is_paid"]),
            is_void=bool(row["is_void"]),
            void_reason=row.get("void_reason"),
            voided_at=parse_iso(row.get("voided_at")),
            voided_by=row.get("voided_by"),
            void_journal_entry_id=row.get("void_journal_entry_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "billing_charge_id": self.billing_charge_id,
            "billing_record_id": self.billing_record_id,
            "scout_account_id": self.scout_account_id,
            "amount": str(self.amount),
            "is_paid": self.is_paid,
            "is_void": self.is_void,
            "void_reason": self.void_reason,
            "void_journal_entry_id": self.void_journal_entry_id,
        }


@dataclass
class BillingRecord:
    """Unit-level charge event split across scouts"""

    billing_record_id: str
    unit_id: str
    description: str
    total_amount: Decimal
    billing_date: date
    journal_entry_id: str | None = None
    is_void: bool = False
    void_reason: str | None = None
    voided_at: datetime | None = None
    voided_by: str | None = None
    created_by: str | None = None
    charges: list[BillingCharge] = field(default_factory=list)

    @property
    def active_charges(self) -> list[BillingCharge]:
        return [c for c in self.charges if c.is_active]

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BillingRecord":
        return cls(
            billing_record_id=row["billing_record_id"],
            unit_id=row["unit_id"],
            description=row["description"],
            total_amount=Decimal(row["total_amount"]),
            billing_date=date.fromisoformat(row["billing_date"]),
            journal_entry_id=row.get("journal_entry_id"),
            is_void=bool(row["is_void"]),
            void_reason=row.get("void_reason"),
            voided_at=parse_iso(row.get("voided_at")),
            voided_by=row.get("voided_by"),
            created_by=row.get("created_by"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "billing_record_id": self.billing_record_id,
            "unit_id": self.unit_id,
            "description": self.description,
            "total_amount": str(self.total_amount),
            "billing_date": self.billing_date.isoformat(),
            "journal_entry_id": self.journal_entry_id,
            "is_void": self.is_void,
            "void_reason": self.void_reason,
            "charges": [c.to_dict() for c in self.charges],
        }


class BillingRepository:
    """Billing Repository

    Args:
        db: SQLiteAdapter instance
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def insert_record(self, record: BillingRecord) -> None:
        await self.db.execute(
            """
            INSERT INTO billing_record (
                billing_record_id, unit_id, description, total_amount,
                billing_date, journal_entry_id, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.billing_record_id,
                record.unit_id,
                record.description,
                str(record.total_amount),
                record.billing_date.isoformat(),
                record.journal_entry_id,
                record.created_by,
            ),
        )
        await self.db.executemany(
            """
            INSERT INTO billing_charge (
                billing_charge_id, billing_record_id, scout_account_id, amount
            ) VALUES (?, ?, ?, ?)
            """,
            [
                (c.billing_charge_id, record.billing_record_id, c.scout_account_id, str(c.amount))
                for c in record.charges
            ],
        )

    async def get_record(self, billing_record_id: str) -> BillingRecord | None:
        """Record with its charges (None if missing)"""
        row = await self.db.fetch_dict(
            "SELECT * FROM billing_record WHERE billing_record_id = ?",
            (billing_record_id,),
        )
        if row is None:
            return None
        record = BillingRecord.from_row(row)
        record.charges = await self.list_charges(billing_record_id)
        return record

    async def list_records(
        self,
        unit_id: str,
        include_void: bool = True,
        limit: int = 100,
    ) -> list[BillingRecord]:
        sql = "SELECT * FROM billing_record WHERE unit_id = ?"
        if not include_void:
            sql += " AND is_void = 0"
        sql += " ORDER BY billing_date DESC, created_at DESC LIMIT ?"

        records = [BillingRecord.from_row(row) for row in await self.db.fetch_dicts(sql, (unit_id, limit))]
        for record in records:
            record.charges = await self.list_charges(record.billing_record_id)
        return records

    async def get_charge(self, billing_charge_id: str) -> BillingCharge | None:
        row = await self.db.fetch_dict(
            "SELECT * FROM billing_charge WHERE billing_charge_id = ?",
            (billing_charge_id,),
        )
        return BillingCharge.from_row(row) if row else None

    async def list_charges(self, billing_record_id: str) -> list[BillingCharge]:
        rows = await self.db.fetch_dicts(
            "SELECT * FROM billing_charge WHERE billing_record_id = ? ORDER BY rowid",
            (billing_record_id,),
        )
        return [BillingCharge.from_row(row) for row in rows]

    async def list_charges_for_scout(
        self,
        scout_account_id: str,
        unpaid_only: bool = False,
    ) -> list[BillingCharge]:
        sql = "SELECT * FROM billing_charge WHERE scout_account_id = ? AND is_void = 0"
        if unpaid_only:
            sql += " AND is_paid = 0"
        rows = await self.db.fetch_dicts(sql + " ORDER BY created_at", (scout_account_id,))
        return [BillingCharge.from_row(row) for row in rows]

    async def mark_charge_void(
        self,
        billing_charge_id: str,
        reason: str,
        voided_by: str | None,
        void_journal_entry_id: str | None = None,
    ) -> None:
        await self.db.execute(
            """
            UPDATE billing_charge
            SET is_void = 1, void_reason = ?, voided_at = ?, voided_by = ?,
                void_journal_entry_id = ?
            WHERE billing_charge_id = ?
            """,
            (reason, to_iso(now_utc()), voided_by, void_journal_entry_id, billing_charge_id),
        )

    async def mark_record_void(
        self,
        billing_record_id: str,
        reason: str,
        voided_by: str | None,
    ) -> None:
        await self.db.execute(
            """
            UPDATE billing_record
            SET is_void = 1, void_reason = ?, voided_at = ?, voided_by = ?
            WHERE billing_record_id = ?
            """,
            (reason, to_iso(now_utc()), voided_by, billing_record_id),
        )

    async def set_charge_paid(self, billing_charge_id: str, is_paid: bool) -> None:
        await self.db.execute(
            "UPDATE billing_charge SET is_paid = ? WHERE billing_charge_id = ?",
            (1 if is_paid else 0, billing_charge_id),
        )

    async def update_description(self, billing_record_id: str, description: str) -> None:
        await self.db.execute(
            "UPDATE billing_record SET description = ? WHERE billing_record_id = ?",
            (description, billing_record_id),
        )
