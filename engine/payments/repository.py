"""
Payment Repository

payment / square_transaction CRUD.
Writes assume the caller already holds the ledger transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.models import ProcessorTransaction
from core.types import PaymentMethod, PaymentStatus, ProcessorStatus, ReconciliationState
from core.utils.money import ZERO, from_minor
from core.utils.timezone import now_utc, parse_iso, to_iso

logger = logging.getLogger(__name__)


@dataclass
class Payment:
    """Payment received from a scout's family

    Attributes:
        amount: gross amount credited to the scout
        fee_amount: processing fee (unit expense)
        net_amount: amount - fee_amount (reaches the bank)
        square_payment_id: processor reference (card payments)
        refunded_amount: sum of refunds so far
    """

    payment_id: str
    unit_id: str
    scout_account_id: str
    amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    square_payment_id: str | None = None
    billing_charge_id: str | None = None
    journal_entry_id: str | None = None
    refunded_amount: Decimal = ZERO
    notes: str | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    @property
    def refundable_amount(self) -> Decimal:
        return self.amount - self.refunded_amount

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Payment":
        return cls(
            payment_id=row["payment_id"],
            unit_id=row["unit_id"],
            scout_account_id=row["scout_account_id"],
            amount=Decimal(row["amount"]),
            fee_amount=Decimal(row["fee_amount"]),
            net_amount=Decimal(row["net_amount"]),
            method=PaymentMethod(row["method"]),
            status=PaymentStatus(row["status"]),
            square_payment_id=row.get("square_payment_id"),
            billing_charge_id=row.get("billing_charge_id"),
            journal_entry_id=row.get("journal_entry_id"),
            refunded_amount=Decimal(row.get("refunded_amount") or "0.00"),
            notes=row.get("notes"),
            voided_at=parse_iso(row.get("voided_at")),
            void_reason=row.get("void_reason"),
            created_by=row.get("created_by"),
            created_at=parse_iso(row.get("created_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "unit_id": self.unit_id,
            "scout_account_id": self.scout_account_id,
            "amount": str(self.amount),
            "fee_amount": str(self.fee_amount),
            "net_amount": str(self.net_amount),
            "method": self.method.value,
            "status": self.status.value,
            "square_payment_id": self.square_payment_id,
            "billing_charge_id": self.billing_charge_id,
            "journal_entry_id": self.journal_entry_id,
            "refunded_amount": str(self.refunded_amount),
            "notes": self.notes,
            "void_reason": self.void_reason,
        }


@dataclass
class SquareTransaction:
    """Local mirror of a processor payment"""

    square_transaction_id: str
    unit_id: str
    square_payment_id: str
    amount_minor: int
    fee_minor: int
    net_minor: int
    currency: str
    status: ProcessorStatus
    reconciliation_state: ReconciliationState
    is_reconciled: bool = False
    buyer_email: str | None = None
    note: str | None = None
    scout_account_id: str | None = None
    payment_id: str | None = None
    square_created_at: datetime | None = None
    reconciled_at: datetime | None = None
    reconciled_by: str | None = None

    @property
    def amount(self) -> Decimal:
        return from_minor(self.amount_minor)

    @property
    def fee(self) -> Decimal:
        return from_minor(self.fee_minor)

    def to_processor_transaction(self) -> ProcessorTransaction:
        return ProcessorTransaction(
            processor_payment_id=self.square_payment_id,
            amount_minor=self.amount_minor,
            fee_minor=self.fee_minor,
            status=self.status,
            buyer_email=self.buyer_email,
            note=self.note,
            currency=self.currency,
            created_at=self.square_created_at,
        )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SquareTransaction":
        return cls(
            square_transaction_id=row["square_transaction_id"],
            unit_id=row["unit_id"],
            square_payment_id=row["square_payment_id"],
            amount_minor=int(row["amount_minor"]),
            fee_minor=int(row["fee_minor"]),
            net_minor=int(row["net_minor"]),
            currency=row["currency"],
            status=ProcessorStatus(row["status"]),
            reconciliation_state=ReconciliationState(row["reconciliation_state"]),
            is_reconciled=bool(row["is_reconciled"]),
            buyer_email=row.get("buyer_email"),
            note=row.get("note"),
            scout_account_id=row.get("scout_account_id"),
            payment_id=row.get("payment_id"),
            square_created_at=parse_iso(row.get("square_created_at")),
            reconciled_at=parse_iso(row.get("reconciled_at")),
            reconciled_by=row.get("reconciled_by"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "square_transaction_id": self.square_transaction_id,
            "unit_id": self.unit_id,
            "square_payment_id": self.square_payment_id,
            "amount": str(self.amount),
            "fee": str(self.fee),
            "currency": self.currency,
            "status": self.status.value,
            "reconciliation_state": self.reconciliation_state.value,
            "is_reconciled": self.is_reconciled,
            "buyer_email": self.buyer_email,
            "note": self.note,
            "scout_account_id": self.scout_account_id,
            "payment_id": self.payment_id,
        }


class PaymentRepository:
    """Payment Repository

    Args:
        db: SQLiteAdapter instance
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # =========================================================================
    # payment
    # =========================================================================

    async def insert_payment(self, payment: Payment) -> None:
        await self.db.execute(
            """
            INSERT INTO payment (
                payment_id, unit_id, scout_account_id, amount, fee_amount,
                net_amount, method, status, square_payment_id, billing_charge_id,
                journal_entry_id, notes, created_by, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                payment.payment_id,
                payment.unit_id,
                payment.scout_account_id,
                str(payment.amount),
                str(payment.fee_amount),
                str(payment.net_amount),
                payment.method.value,
                payment.status.value,
                payment.square_payment_id,
                payment.billing_charge_id,
                payment.journal_entry_id,
                payment.notes,
                payment.created_by,
                to_iso(payment.created_at or now_utc()),
            ),
        )

    async def get_payment(self, payment_id: str) -> Payment | None:
        row = await self.db.fetch_dict(
            "SELECT * FROM payment WHERE payment_id = ?",
            (payment_id,),
        )
        return Payment.from_row(row) if row else None

    async def find_by_square_payment_id(
        self,
        unit_id: str,
        square_payment_id: str,
    ) -> Payment | None:
        row = await self.db.fetch_dict(
            """
            SELECT * FROM payment
            WHERE unit_id = ? AND square_payment_id = ? AND status != ?
            ORDER BY created_at
            """,
            (unit_id, square_payment_id, PaymentStatus.VOIDED.value),
        )
        return Payment.from_row(row) if row else None

    async def list_payments(
        self,
        unit_id: str,
        scout_account_id: str | None = None,
        limit: int = 100,
    ) -> list[Payment]:
        sql = "SELECT * FROM payment WHERE unit_id = ?"
        params: list[Any] = [unit_id]
        if scout_account_id is not None:
            sql += " AND scout_account_id = ?"
            params.append(scout_account_id)
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        rows = await self.db.fetch_dicts(sql, tuple(params))
        return [Payment.from_row(row) for row in rows]

    async def update_refund(
        self,
        payment_id: str,
        refunded_amount: Decimal,
        status: PaymentStatus,
    ) -> None:
        await self.db.execute(
            "UPDATE payment SET refunded_amount = ?, status = ? WHERE payment_id = ?",
            (str(refunded_amount), status.value, payment_id),
        )

    async def mark_voided(self, payment_id: str, reason: str) -> None:
        await self.db.execute(
            """
            UPDATE payment
            SET status = ?, void_reason = ?, voided_at = ?
            WHERE payment_id = ?
            """,
            (PaymentStatus.VOIDED.value, reason, to_iso(now_utc()), payment_id),
        )

    # =========================================================================
    # square_transaction
    # =========================================================================

    async def get_transaction(self, square_transaction_id: str) -> SquareTransaction | None:
        row = await self.db.fetch_dict(
            "SELECT * FROM square_transaction WHERE square_transaction_id = ?",
            (square_transaction_id,),
        )
        return SquareTransaction.from_row(row) if row else None

    async def get_transaction_by_payment_id(
        self,
        unit_id: str,
        square_payment_id: str,
    ) -> SquareTransaction | None:
        row = await self.db.fetch_dict(
            "SELECT * FROM square_transaction WHERE unit_id = ? AND square_payment_id = ?",
            (unit_id, square_payment_id),
        )
        return SquareTransaction.from_row(row) if row else None

    async def insert_transaction(
        self,
        unit_id: str,
        tx: ProcessorTransaction,
        state: ReconciliationState = ReconciliationState.UNLINKED,
        scout_account_id: str | None = None,
    ) -> str:
        square_transaction_id = str(uuid4())
        await self.db.execute(
            """
            INSERT INTO square_transaction (
                square_transaction_id, unit_id, square_payment_id,
                amount_minor, fee_minor, net_minor, currency, status,
                buyer_email, note, reconciliation_state, scout_account_id,
                square_created_at, synced_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                square_transaction_id,
                unit_id,
                tx.processor_payment_id,
                tx.amount_minor,
                tx.fee_minor,
                tx.net_minor,
                tx.currency,
                tx.status.value,
                tx.buyer_email,
                tx.note,
                state.value,
                scout_account_id,
                to_iso(tx.created_at) if tx.created_at else None,
                to_iso(now_utc()),
            ),
        )
        return square_transaction_id

    async def refresh_transaction(
        self,
        square_transaction_id: str,
        tx: ProcessorTransaction,
    ) -> None:
        """Update processor-owned fields (amounts, status, buyer)"""
        await self.db.execute(
            """
            UPDATE square_transaction
            SET amount_minor = ?, fee_minor = ?, net_minor = ?, status = ?,
                buyer_email = COALESCE(?, buyer_email), note = COALESCE(?, note),
                synced_at = ?
            WHERE square_transaction_id = ?
            """,
            (
                tx.amount_minor,
                tx.fee_minor,
                tx.net_minor,
                tx.status.value,
                tx.buyer_email,
                tx.note,
                to_iso(now_utc()),
                square_transaction_id,
            ),
        )

    async def set_link(
        self,
        square_transaction_id: str,
        state: ReconciliationState,
        scout_account_id: str | None,
    ) -> None:
        await self.db.execute(
            """
            UPDATE square_transaction
            SET reconciliation_state = ?, scout_account_id = ?
            WHERE square_transaction_id = ?
            """,
            (state.value, scout_account_id, square_transaction_id),
        )

    async def mark_reconciled(
        self,
        square_transaction_id: str,
        payment_id: str,
        scout_account_id: str,
        reconciled_by: str | None,
    ) -> None:
        await self.db.execute(
            """
            UPDATE square_transaction
            SET reconciliation_state = ?, is_reconciled = 1, payment_id = ?,
                scout_account_id = ?, reconciled_at = ?, reconciled_by = ?
            WHERE square_transaction_id = ?
            """,
            (
                ReconciliationState.RECONCILED.value,
                payment_id,
                scout_account_id,
                to_iso(now_utc()),
                reconciled_by,
                square_transaction_id,
            ),
        )

    async def list_transactions(
        self,
        unit_id: str,
        state: ReconciliationState | None = None,
    ) -> list[SquareTransaction]:
        sql = "SELECT * FROM square_transaction WHERE unit_id = ?"
        params: list[Any] = [unit_id]
        if state is not None:
            sql += " AND reconciliation_state = ?"
            params.append(state.value)
        sql += " ORDER BY square_created_at, synced_at"

        rows = await self.db.fetch_dicts(sql, tuple(params))
        return [SquareTransaction.from_row(row) for row in rows]
