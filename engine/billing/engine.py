"""
Billing Engine

Splits a unit expense into per-scout fair-share charges and books them as
one journal entry.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.entry_builder import JournalEntryBuilder, money_or_raise
from core.ledger.errors import AlreadyVoidError, InvalidAmountError, NotFoundError
from core.ledger.store import LedgerStore
from core.utils.money import split_fair_share, to_minor
from core.utils.timezone import today_utc
from engine.billing.repository import BillingCharge, BillingRecord, BillingRepository

logger = logging.getLogger(__name__)

FAIR_SHARE_PREFIX = "Fair Share: "


class BillingEngine:
    """Billing engine

    Args:
        db: SQLite adapter
        store: ledger store
        repository: billing repository
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerStore,
        repository: BillingRepository,
    ):
        self.db = db
        self.store = store
        self.repository = repository

    async def create_billing_record(
        self,
        unit_id: str,
        description: str,
        total_amount: Decimal | str,
        scout_account_ids: list[str],
        billing_date: date | None = None,
        created_by: str | None = None,
    ) -> str:
        """Bill a group of scouts for one expense

        The total is split to the cent (largest remainder, extra cents to
        the first scouts listed). Record, charges and journal entry are
        written in one transaction.

        Args:
            unit_id: unit
            description: what the money is for
            total_amount: amount to split (> 0)
            scout_account_ids: scouts to bill (non-empty, no duplicates)
            billing_date: defaults to today (UTC)
            created_by: caller profile id

        Returns:
            billing_record_id

        Raises:
            InvalidAmountError: bad amount, empty or duplicate scout list,
                or fewer cents than scouts
            NotFoundError: a scout account is missing or in another unit
        """
        description = (description or "").strip()
        if not description:
            raise InvalidAmountError("Billing description is required")
        if not scout_account_ids:
            raise InvalidAmountError("At least one scout is required")
        if len(set(scout_account_ids)) != len(scout_account_ids):
            raise InvalidAmountError("Each scout can be billed once per record")

        total = money_or_raise(total_amount, "total_amount")
        if to_minor(total) < len(scout_account_ids):
            raise InvalidAmountError(
                f"{total} cannot be split across {len(scout_account_ids)} scouts"
            )

        shares = split_fair_share(total, len(scout_account_ids))
        record_id = str(uuid4())
        record = BillingRecord(
            billing_record_id=record_id,
            unit_id=unit_id,
            description=description,
            total_amount=total,
            billing_date=billing_date or today_utc(),
            created_by=created_by,
            charges=[
                BillingCharge(
                    billing_charge_id=str(uuid4()),
                    billing_record_id=record_id,
                    scout_account_id=scout_id,
                    amount=share,
                )
                for scout_id, share in zip(scout_account_ids, shares)
            ],
        )

        entry = JournalEntryBuilder.charge(
            unit_id=unit_id,
            description=description,
            shares=[(c.scout_account_id, c.amount, description) for c in record.charges],
            reference=record_id,
            created_by=created_by,
        )
        record.journal_entry_id = entry.entry_id

        async def _write() -> str:
            await self.store.record_entry(entry)
            await self.repository.insert_record(record)
            return record_id

        await self.db.run_transaction(_write)

        logger.info(
            f"Billing record created: {description} {total} / {len(shares)} scouts",
            extra={
                "billing_record_id": record_id,
                "unit_id": unit_id,
                "entry_id": entry.entry_id,
            },
        )
        return record_id

    async def update_billing_description(
        self,
        billing_record_id: str,
        new_description: str,
    ) -> None:
        """Rename a non-void billing record and its journal entry

        Raises:
            InvalidAmountError: blank description
            NotFoundError: unknown record
            AlreadyVoidError: record is void
        """
        new_description = (new_description or "").strip()
        if not new_description:
            raise InvalidAmountError("Billing description is required")

        async def _write() -> None:
            record = await self.get_billing_record(billing_record_id)
            if record.is_void:
                raise AlreadyVoidError(f"Billing record is void: {billing_record_id}")

            await self.repository.update_description(billing_record_id, new_description)
            if record.journal_entry_id:
                await self.store.update_entry_description(
                    record.journal_entry_id, f"{FAIR_SHARE_PREFIX}{new_description}",
                )

        await self.db.run_transaction(_write)
        logger.info(
            "Billing description updated",
            extra={"billing_record_id": billing_record_id},
        )

    async def get_billing_record(self, billing_record_id: str) -> BillingRecord:
        record = await self.repository.get_record(billing_record_id)
        if record is None:
            raise NotFoundError("BillingRecord", billing_record_id)
        return record

    async def list_billing_records(
        self,
        unit_id: str,
        include_void: bool = True,
        limit: int = 100,
    ) -> list[BillingRecord]:
        return await self.repository.list_records(unit_id, include_void, limit)
