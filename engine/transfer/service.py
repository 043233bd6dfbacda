"""
Fund Transfer Service

Moves money between a scout's funds and billing balances, and books
fundraising credits into funds.
"""

import logging
from decimal import Decimal

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.entry_builder import JournalEntryBuilder, money_or_raise
from core.ledger.errors import InsufficientFundsError, OverpaymentError
from core.ledger.store import LedgerStore
from core.types import FundraiserType

logger = logging.getLogger(__name__)


class FundTransferService:
    """Fund transfer service

    Every bound is checked against balances read inside the write
    transaction, never against a value the caller displayed earlier.

    Args:
        db: SQLite adapter
        store: ledger store
    """

    def __init__(self, db: SQLiteAdapter, store: LedgerStore):
        self.db = db
        self.store = store

    async def transfer_funds_to_billing(
        self,
        scout_account_id: str,
        amount: Decimal | str,
        created_by: str | None = None,
    ) -> str:
        """Pay down billing from the scout's funds

        Args:
            scout_account_id: scout account
            amount: amount to move (> 0)
            created_by: caller profile id

        Returns:
            journal entry id

        Raises:
            InvalidAmountError: amount <= 0
            InsufficientFundsError: amount > funds balance
            OverpaymentError: amount > what the scout owes
            NotFoundError: unknown scout account
        """
        amount = money_or_raise(amount)

        async def _write() -> str:
            account = await self.store.get_scout_account(scout_account_id)
            if amount > account.funds_balance:
                raise InsufficientFundsError(
                    f"Transfer {amount} exceeds funds balance {account.funds_balance}"
                )
            if amount > account.amount_owed:
                raise OverpaymentError(
                    f"Transfer {amount} exceeds amount owed {account.amount_owed}"
                )

            entry = JournalEntryBuilder.funds_to_billing(
                account.unit_id, scout_account_id, amount, created_by=created_by,
            )
            return await self.store.record_entry(entry)

        entry_id = await self.db.run_transaction(_write)
        logger.info(
            f"Funds transferred to billing: {amount}",
            extra={"scout_account_id": scout_account_id, "entry_id": entry_id},
        )
        return entry_id

    async def credit_fundraising(
        self,
        scout_account_id: str,
        amount: Decimal | str,
        description: str,
        fundraiser_type: FundraiserType | str = FundraiserType.GENERAL,
        created_by: str | None = None,
    ) -> str:
        """Credit a scout's share of fundraiser income to their funds

        Returns:
            journal entry id
        """
        amount = money_or_raise(amount)
        fundraiser_type = FundraiserType(fundraiser_type)
        description = (description or "").strip() or fundraiser_type.value

        async def _write() -> str:
            account = await self.store.get_scout_account(scout_account_id)
            entry = JournalEntryBuilder.fundraising_credit(
                account.unit_id,
                scout_account_id,
                amount,
                description,
                fundraiser_type=fundraiser_type,
                created_by=created_by,
            )
            return await self.store.record_entry(entry)

        entry_id = await self.db.run_transaction(_write)
        logger.info(
            f"Fundraising credited: {amount} ({fundraiser_type.value})",
            extra={"scout_account_id": scout_account_id, "entry_id": entry_id},
        )
        return entry_id

    async def transfer_overpayment_to_funds(
        self,
        scout_account_id: str,
        created_by: str | None = None,
    ) -> str | None:
        """Move a positive billing balance (overpayment) into funds

        Returns:
            journal entry id, or None when there is nothing to move
        """
        async def _write() -> str | None:
            account = await self.store.get_scout_account(scout_account_id)
            if account.billing_balance <= 0:
                return None
            entry = JournalEntryBuilder.overpayment_to_funds(
                account.unit_id,
                scout_account_id,
                account.billing_balance,
                created_by=created_by,
            )
            return await self.store.record_entry(entry)

        entry_id = await self.db.run_transaction(_write)
        if entry_id is not None:
            logger.info(
                "Overpayment moved to funds",
                extra={"scout_account_id": scout_account_id, "entry_id": entry_id},
            )
        return entry_id
