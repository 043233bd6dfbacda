"""
Ledger Service

The ledger's only write surface. Each write checks the caller's
capability once, then delegates to the component that owns it.
Reads need no capability.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import ITransactionFeed
from adapters.models import ProcessorTransaction
from core.domain.permissions import Actor, can_mutate_ledger
from core.ledger.accounts import ScoutAccount, Unit
from core.ledger.entry_builder import JournalEntry, JournalLine
from core.ledger.errors import PermissionDeniedError
from core.ledger.store import LedgerStore
from core.ledger.types import EntryType
from core.types import FundraiserType, PaymentMethod
from core.utils.timezone import now_utc
from engine.billing.engine import BillingEngine
from engine.billing.repository import BillingRecord
from engine.payments.adapter import PaymentAdapter
from engine.payments.repository import Payment, PaymentRepository, SquareTransaction
from engine.projector.projector import BalanceDrift, BalanceProjector
from engine.reconciler.reconciler import Reconciler, SyncResult
from engine.transfer.service import FundTransferService
from engine.voiding.engine import VoidEngine

logger = logging.getLogger(__name__)


class LedgerService:
    """Ledger facade

    Args:
        db: SQLite adapter
        store: ledger core
        projector: balance projector
        billing: billing engine
        voiding: void engine
        payments: payment adapter
        reconciler: processor reconciler
        transfers: fund transfer service
        payment_repository: payment / processor row reads
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerStore,
        projector: BalanceProjector,
        billing: BillingEngine,
        voiding: VoidEngine,
        payments: PaymentAdapter,
        reconciler: Reconciler,
        transfers: FundTransferService,
        payment_repository: PaymentRepository,
    ):
        self.db = db
        self.store = store
        self.projector = projector
        self.billing = billing
        self.voiding = voiding
        self.payments = payments
        self.reconciler = reconciler
        self.transfers = transfers
        self.payment_repository = payment_repository

    def _require_write(self, actor: Actor, operation: str) -> None:
        if not can_mutate_ledger(actor.role):
            logger.warning(
                f"Ledger write refused: {operation}",
                extra={"profile_id": actor.profile_id, "role": str(actor.role)},
            )
            raise PermissionDeniedError(
                f"Role '{getattr(actor.role, 'value', actor.role)}' may not {operation}"
            )

    # =========================================================================
    # Accounts
    # =========================================================================

    async def create_unit(
        self,
        actor: Actor,
        name: str,
        fee_percent: Decimal | None = None,
        fee_fixed: Decimal | None = None,
    ) -> str:
        self._require_write(actor, "create units")
        return await self.store.create_unit(name, fee_percent, fee_fixed)

    async def get_unit(self, unit_id: str) -> Unit:
        return await self.store.get_unit(unit_id)

    async def create_scout_account(
        self,
        actor: Actor,
        unit_id: str,
        scout_name: str,
        email: str | None = None,
    ) -> str:
        self._require_write(actor, "create scout accounts")
        return await self.store.create_scout_account(unit_id, scout_name, email)

    async def get_scout_account(self, scout_account_id: str) -> ScoutAccount:
        return await self.store.get_scout_account(scout_account_id)

    async def list_scout_accounts(self, unit_id: str) -> list[ScoutAccount]:
        return await self.store.list_scout_accounts(unit_id)

    # =========================================================================
    # Ledger core
    # =========================================================================

    async def record_entry(
        self,
        actor: Actor,
        unit_id: str,
        description: str,
        entry_type: EntryType | str,
        lines: list[JournalLine],
        reference: str | None = None,
    ) -> str:
        """Record a hand-built balanced entry"""
        self._require_write(actor, "record journal entries")
        entry = JournalEntry(
            entry_id=str(uuid4()),
            unit_id=unit_id,
            ts=now_utc(),
            entry_type=EntryType(entry_type),
            description=description,
            lines=lines,
            reference=reference,
            created_by=actor.profile_id,
        )
        return await self.store.record_entry(entry)

    async def void_entry(self, actor: Actor, entry_id: str, reason: str) -> str:
        self._require_write(actor, "void journal entries")
        return await self.store.void_entry(entry_id, reason, actor.profile_id)

    async def get_entry(self, entry_id: str) -> JournalEntry | None:
        return await self.store.get_entry(entry_id)

    async def get_entries_for_account(
        self,
        scout_account_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JournalEntry]:
        return await self.store.get_entries_for_account(scout_account_id, limit, offset)

    # =========================================================================
    # Billing
    # =========================================================================

    async def create_billing_record(
        self,
        actor: Actor,
        unit_id: str,
        description: str,
        total_amount: Decimal | str,
        scout_account_ids: list[str],
        billing_date: date | None = None,
    ) -> str:
        self._require_write(actor, "create billing records")
        return await self.billing.create_billing_record(
            unit_id, description, total_amount, scout_account_ids, billing_date, actor.profile_id,
        )

    async def update_billing_description(
        self,
        actor: Actor,
        billing_record_id: str,
        new_description: str,
    ) -> None:
        self._require_write(actor, "edit billing records")
        await self.billing.update_billing_description(billing_record_id, new_description)

    async def get_billing_record(self, billing_record_id: str) -> BillingRecord:
        return await self.billing.get_billing_record(billing_record_id)

    async def list_billing_records(self, unit_id: str, include_void: bool = True) -> list[BillingRecord]:
        return await self.billing.list_billing_records(unit_id, include_void)

    # =========================================================================
    # Voiding
    # =========================================================================

    async def void_billing_record(self, actor: Actor, billing_record_id: str, reason: str) -> list[str]:
        self._require_write(actor, "void billing records")
        return await self.voiding.void_billing_record(billing_record_id, reason, actor.profile_id)

    async def void_billing_charge(self, actor: Actor, billing_charge_id: str, reason: str) -> str:
        self._require_write(actor, "void billing charges")
        return await self.voiding.void_billing_charge(billing_charge_id, reason, actor.profile_id)

    async def void_payment(self, actor: Actor, payment_id: str, reason: str) -> str:
        self._require_write(actor, "void payments")
        return await self.voiding.void_payment(payment_id, reason, actor.profile_id)

    # =========================================================================
    # Payments
    # =========================================================================

    async def record_payment(
        self,
        actor: Actor,
        scout_account_id: str,
        amount: Decimal | str,
        method: PaymentMethod | str,
        processor_ref: str | None = None,
        billing_charge_id: str | None = None,
        notes: str | None = None,
    ) -> str:
        self._require_write(actor, "record payments")
        return await self.payments.record_payment(
            scout_account_id,
            amount,
            method,
            processor_ref=processor_ref,
            billing_charge_id=billing_charge_id,
            notes=notes,
            created_by=actor.profile_id,
        )

    async def capture_card_payment(
        self,
        actor: Actor,
        scout_account_id: str,
        amount: Decimal | str,
        source_token: str,
        billing_charge_id: str | None = None,
        idempotency_key: str | None = None,
        note: str | None = None,
    ) -> str:
        self._require_write(actor, "take card payments")
        return await self.payments.capture_card_payment(
            scout_account_id,
            amount,
            source_token,
            billing_charge_id=billing_charge_id,
            created_by=actor.profile_id,
            idempotency_key=idempotency_key,
            note=note,
        )

    async def refund_payment(
        self,
        actor: Actor,
        payment_id: str,
        amount: Decimal | str,
        reason: str,
    ) -> str:
        self._require_write(actor, "refund payments")
        return await self.payments.refund_payment(payment_id, amount, reason, actor.profile_id)

    async def get_payment(self, payment_id: str) -> Payment:
        return await self.payments.get_payment(payment_id)

    async def list_payments(
        self,
        unit_id: str,
        scout_account_id: str | None = None,
        limit: int = 100,
    ) -> list[Payment]:
        return await self.payment_repository.list_payments(unit_id, scout_account_id, limit)

    # =========================================================================
    # Transfers
    # =========================================================================

    async def transfer_funds_to_billing(
        self,
        actor: Actor,
        scout_account_id: str,
        amount: Decimal | str,
    ) -> str:
        self._require_write(actor, "transfer funds")
        return await self.transfers.transfer_funds_to_billing(scout_account_id, amount, actor.profile_id)

    async def credit_fundraising(
        self,
        actor: Actor,
        scout_account_id: str,
        amount: Decimal | str,
        description: str,
        fundraiser_type: FundraiserType | str = FundraiserType.GENERAL,
    ) -> str:
        self._require_write(actor, "credit fundraising")
        return await self.transfers.credit_fundraising(
            scout_account_id, amount, description, fundraiser_type, actor.profile_id,
        )

    async def transfer_overpayment_to_funds(self, actor: Actor, scout_account_id: str) -> str | None:
        self._require_write(actor, "transfer funds")
        return await self.transfers.transfer_overpayment_to_funds(scout_account_id, actor.profile_id)

    # =========================================================================
    # Reconciliation
    # =========================================================================

    async def sync_transactions(
        self,
        actor: Actor,
        unit_id: str,
        records: list[ProcessorTransaction],
    ) -> SyncResult:
        self._require_write(actor, "sync processor transactions")
        return await self.reconciler.sync_transactions(unit_id, records)

    async def sync_from_feed(
        self,
        actor: Actor,
        unit_id: str,
        feed: ITransactionFeed,
        begin_time: datetime | None = None,
    ) -> SyncResult:
        self._require_write(actor, "sync processor transactions")
        return await self.reconciler.sync_from_feed(unit_id, feed, begin_time)

    async def link_transaction(self, actor: Actor, square_transaction_id: str, scout_account_id: str) -> None:
        self._require_write(actor, "link processor transactions")
        await self.reconciler.link_transaction(square_transaction_id, scout_account_id)

    async def unlink_transaction(self, actor: Actor, square_transaction_id: str) -> None:
        self._require_write(actor, "unlink processor transactions")
        await self.reconciler.unlink_transaction(square_transaction_id)

    async def reconcile_transaction(self, actor: Actor, square_transaction_id: str) -> str:
        self._require_write(actor, "reconcile processor transactions")
        return await self.reconciler.reconcile_transaction(square_transaction_id, actor.profile_id)

    async def list_transactions(self, unit_id: str) -> list[SquareTransaction]:
        return await self.payment_repository.list_transactions(unit_id)

    async def list_unlinked(self, unit_id: str) -> list[SquareTransaction]:
        return await self.reconciler.list_unlinked(unit_id)

    async def report_unlinked(self, unit_id: str) -> int:
        return await self.reconciler.report_unlinked(unit_id)

    # =========================================================================
    # Audit
    # =========================================================================

    async def verify_balances(self, unit_id: str | None = None) -> list[BalanceDrift]:
        return await self.projector.verify_all(unit_id)

    async def rebuild_balances(self, actor: Actor, unit_id: str | None = None) -> list[BalanceDrift]:
        self._require_write(actor, "rebuild balances")
        return await self.projector.rebuild_all(unit_id)

    async def get_trial_balance(self, unit_id: str) -> dict[str, Any]:
        return await self.store.get_trial_balance(unit_id)
