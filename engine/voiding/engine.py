"""
Void / Reversal Engine

Cancels billing records, single charges and manual payments by writing
compensating entries. Nothing is deleted; every void carries a reason.
"""

import logging

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.state_machines import PaymentStatusMachine
from core.ledger.entry_builder import JournalEntryBuilder
from core.ledger.errors import (
    AlreadyPaidError,
    AlreadyVoidError,
    HasPaidChargesError,
    InvalidVoidTargetError,
    NotFoundError,
    ProcessorPaymentNotVoidableError,
)
from core.ledger.store import LedgerStore, require_reason
from core.types import PaymentMethod, PaymentStatus
from engine.billing.repository import BillingCharge, BillingRecord, BillingRepository
from engine.payments.repository import PaymentRepository

logger = logging.getLogger(__name__)

ALL_CHARGES_VOIDED = "All charges voided"


class VoidEngine:
    """Void engine

    A record whose charges are all still active is voided by reversing its
    single journal entry. Once any charge has been voided on its own, the
    remaining charges are each cancelled with a compensating entry, so no
    amount is ever reversed twice.

    Args:
        db: SQLite adapter
        store: ledger store
        billing: billing repository
        payments: payment repository
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerStore,
        billing: BillingRepository,
        payments: PaymentRepository,
    ):
        self.db = db
        self.store = store
        self.billing = billing
        self.payments = payments

    async def void_billing_record(
        self,
        billing_record_id: str,
        reason: str,
        voided_by: str | None = None,
    ) -> list[str]:
        """Void a billing record and every active charge under it

        Returns:
            journal entry ids written (reversal or compensating entries)

        Raises:
            ReasonRequiredError: blank reason
            NotFoundError: unknown record
            AlreadyVoidError: record already void
            HasPaidChargesError: an active charge has been paid
        """
        reason = require_reason(reason)

        async def _write() -> list[str]:
            record = await self._get_record(billing_record_id)
            if record.is_void:
                raise AlreadyVoidError(f"Billing record already void: {billing_record_id}")

            paid = [c for c in record.active_charges if c.is_paid]
            if paid:
                raise HasPaidChargesError(
                    f"Billing record has {len(paid)} paid charge(s); refund the payments first"
                )

            entry_ids: list[str] = []
            untouched = all(c.is_active for c in record.charges)
            if untouched and record.journal_entry_id:
                reversal_id = await self.store.void_entry(
                    record.journal_entry_id, reason, voided_by, allow_owned=True,
                )
                entry_ids.append(reversal_id)
                for charge in record.charges:
                    await self.billing.mark_charge_void(
                        charge.billing_charge_id, reason, voided_by, reversal_id,
                    )
            else:
                for charge in record.active_charges:
                    entry_ids.append(await self._compensate_charge(record, charge, reason, voided_by))

            await self.billing.mark_record_void(billing_record_id, reason, voided_by)
            return entry_ids

        entry_ids = await self.db.run_transaction(_write)
        logger.info(
            "Billing record voided",
            extra={
                "billing_record_id": billing_record_id,
                "entry_ids": entry_ids,
                "reason": reason,
            },
        )
        return entry_ids

    async def void_billing_charge(
        self,
        billing_charge_id: str,
        reason: str,
        voided_by: str | None = None,
    ) -> str:
        """Void one scout's charge

        Voiding the last active charge also voids the record.

        Returns:
            compensating journal entry id

        Raises:
            ReasonRequiredError: blank reason
            NotFoundError: unknown charge
            AlreadyVoidError: charge or record already void
            AlreadyPaidError: charge has been paid
        """
        reason = require_reason(reason)

        async def _write() -> str:
            charge = await self.billing.get_charge(billing_charge_id)
            if charge is None:
                raise NotFoundError("BillingCharge", billing_charge_id)
            if charge.is_void:
                raise AlreadyVoidError(f"Billing charge already void: {billing_charge_id}")
            if charge.is_paid:
                raise AlreadyPaidError(
                    f"Billing charge has been paid; refund the payment first: {billing_charge_id}"
                )

            record = await self._get_record(charge.billing_record_id)
            if record.is_void:
                raise AlreadyVoidError(f"Billing record already void: {record.billing_record_id}")

            entry_id = await self._compensate_charge(record, charge, reason, voided_by)

            remaining = [
                c for c in record.active_charges
                if c.billing_charge_id != billing_charge_id
            ]
            if not remaining:
                await self.billing.mark_record_void(
                    record.billing_record_id, ALL_CHARGES_VOIDED, voided_by,
                )
            return entry_id

        entry_id = await self.db.run_transaction(_write)
        logger.info(
            "Billing charge voided",
            extra={
                "billing_charge_id": billing_charge_id,
                "entry_id": entry_id,
                "reason": reason,
            },
        )
        return entry_id

    async def void_payment(
        self,
        payment_id: str,
        reason: str,
        voided_by: str | None = None,
    ) -> str:
        """Void a cash or check payment (entered by mistake)

        Card payments went through the processor and must be refunded.

        Returns:
            reversal journal entry id

        Raises:
            ReasonRequiredError: blank reason
            NotFoundError: unknown payment
            ProcessorPaymentNotVoidableError: card payment
            AlreadyVoidError: payment already void
            InvalidVoidTargetError: payment has refunds on file
        """
        reason = require_reason(reason)

        async def _write() -> str:
            payment = await self.payments.get_payment(payment_id)
            if payment is None:
                raise NotFoundError("Payment", payment_id)
            if payment.method == PaymentMethod.CARD or payment.square_payment_id:
                raise ProcessorPaymentNotVoidableError(
                    f"Card payment {payment_id} must be refunded, not voided"
                )
            if payment.status == PaymentStatus.VOIDED:
                raise AlreadyVoidError(f"Payment already void: {payment_id}")
            if not PaymentStatusMachine(payment.status).can_transition(PaymentStatus.VOIDED):
                raise InvalidVoidTargetError(
                    f"Payment {payment_id} has refunds on file and cannot be voided"
                )
            if payment.journal_entry_id is None:
                raise InvalidVoidTargetError(f"Payment {payment_id} has no journal entry")

            reversal_id = await self.store.void_entry(
                payment.journal_entry_id, reason, voided_by, allow_owned=True,
            )
            await self.payments.mark_voided(payment_id, reason)
            if payment.billing_charge_id:
                await self.billing.set_charge_paid(payment.billing_charge_id, False)
            return reversal_id

        reversal_id = await self.db.run_transaction(_write)
        logger.info(
            "Payment voided",
            extra={"payment_id": payment_id, "entry_id": reversal_id, "reason": reason},
        )
        return reversal_id

    async def _get_record(self, billing_record_id: str) -> BillingRecord:
        record = await self.billing.get_record(billing_record_id)
        if record is None:
            raise NotFoundError("BillingRecord", billing_record_id)
        return record

    async def _compensate_charge(
        self,
        record: BillingRecord,
        charge: BillingCharge,
        reason: str,
        voided_by: str | None,
    ) -> str:
        account = await self.store.get_scout_account(charge.scout_account_id)
        entry = JournalEntryBuilder.charge_void(
            unit_id=record.unit_id,
            scout_account_id=charge.scout_account_id,
            amount=charge.amount,
            description=f"VOID: {record.description} - {account.scout_name}",
            reference=record.billing_record_id,
            created_by=voided_by,
        )
        entry_id = await self.store.record_entry(entry)
        await self.billing.mark_charge_void(charge.billing_charge_id, reason, voided_by, entry_id)
        return entry_id
