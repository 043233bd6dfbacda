"""
Payment Adapter

Records cash / check / card payments, captures cards through the
processor, and refunds payments. Every payment is one journal entry
crediting the scout's billing balance by the gross amount.
"""

import asyncio
import logging
from decimal import Decimal
from uuid import uuid4

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IPaymentGateway
from adapters.models import CaptureResult, ProcessorTransaction
from core.config.loader import FeePolicy
from core.domain.state_machines import PaymentStatusMachine, ReconciliationStateMachine, StateMachineError
from core.ledger.accounts import ScoutAccount
from core.ledger.entry_builder import JournalEntryBuilder, money_or_raise
from core.ledger.errors import (
    AlreadyPaidError,
    AlreadyVoidError,
    ExternalCaptureFailedError,
    InvalidAmountError,
    InvalidStateTransitionError,
    LedgerError,
    NotFoundError,
    RefundExceedsPaymentError,
)
from core.ledger.store import LedgerStore, require_reason
from core.types import PaymentMethod, PaymentStatus, ProcessorStatus, ReconciliationState
from core.utils.money import ZERO, to_minor
from core.utils.timezone import now_utc
from engine.billing.repository import BillingRepository
from engine.payments.fees import fee_for_method
from engine.payments.repository import Payment, PaymentRepository
from engine.transfer.service import FundTransferService

logger = logging.getLogger(__name__)


class PaymentAdapter:
    """Payment adapter

    Args:
        db: SQLite adapter
        store: ledger store
        payments: payment repository
        billing: billing repository (charge is_paid flags)
        default_fee_policy: used when the unit has no fee policy of its own
        gateway: card capture collaborator (None disables capture)
        transfers: fund transfer service (overpayment sweep)
        auto_transfer_overpayment: sweep billing credit into funds after each payment
        capture_timeout: seconds before an unconfirmed capture counts as failed
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerStore,
        payments: PaymentRepository,
        billing: BillingRepository,
        default_fee_policy: FeePolicy,
        gateway: IPaymentGateway | None = None,
        transfers: FundTransferService | None = None,
        auto_transfer_overpayment: bool = False,
        capture_timeout: float = 60.0,
    ):
        self.db = db
        self.store = store
        self.payments = payments
        self.billing = billing
        self.default_fee_policy = default_fee_policy
        self.gateway = gateway
        self.transfers = transfers
        self.auto_transfer_overpayment = auto_transfer_overpayment
        self.capture_timeout = capture_timeout

    # =========================================================================
    # Record
    # =========================================================================

    async def record_payment(
        self,
        scout_account_id: str,
        amount: Decimal | str,
        method: PaymentMethod | str,
        processor_ref: str | None = None,
        billing_charge_id: str | None = None,
        notes: str | None = None,
        created_by: str | None = None,
        fee_amount: Decimal | None = None,
    ) -> str:
        """Record a payment and credit the scout

        Card payments carry the unit's processing fee unless fee_amount
        (the processor-reported fee) is given. A processor reference that
        already has a payment returns that payment instead of a duplicate.

        Args:
            scout_account_id: paying scout
            amount: gross amount (> 0)
            method: cash, check or card
            processor_ref: processor payment id
            billing_charge_id: charge this payment settles
            notes: free text
            created_by: caller profile id
            fee_amount: fee override

        Returns:
            payment_id

        Raises:
            InvalidAmountError: bad amount or fee >= amount
            NotFoundError: unknown scout account or charge
            AlreadyVoidError / AlreadyPaidError: charge cannot take a payment
        """
        amount = money_or_raise(amount)
        method = PaymentMethod(method)

        async def _write() -> str:
            account = await self.store.get_scout_account(scout_account_id)

            if processor_ref:
                existing = await self.payments.find_by_square_payment_id(account.unit_id, processor_ref)
                if existing is not None:
                    logger.info(
                        "Processor payment already recorded",
                        extra={"processor_ref": processor_ref, "payment_id": existing.payment_id},
                    )
                    return existing.payment_id

            if billing_charge_id:
                await self._check_charge_payable(billing_charge_id, scout_account_id)

            if fee_amount is not None:
                fee = fee_amount
            else:
                policy = await self.store.get_unit_fee_policy(account.unit_id, self.default_fee_policy)
                fee = fee_for_method(amount, method, policy)
            if fee < ZERO or fee >= amount:
                raise InvalidAmountError(f"Fee {fee} must be between 0 and the amount {amount}")

            payment_id = str(uuid4())
            entry = JournalEntryBuilder.payment(
                unit_id=account.unit_id,
                scout_account_id=scout_account_id,
                amount=amount,
                fee=fee,
                description=f"Payment received ({method.value})",
                reference=processor_ref or payment_id,
                created_by=created_by,
            )
            await self.store.record_entry(entry)

            payment = Payment(
                payment_id=payment_id,
                unit_id=account.unit_id,
                scout_account_id=scout_account_id,
                amount=amount,
                fee_amount=fee,
                net_amount=amount - fee,
                method=method,
                status=PaymentStatus.COMPLETED,
                square_payment_id=processor_ref,
                billing_charge_id=billing_charge_id,
                journal_entry_id=entry.entry_id,
                notes=notes,
                created_by=created_by,
                created_at=now_utc(),
            )
            await self.payments.insert_payment(payment)

            if billing_charge_id:
                await self.billing.set_charge_paid(billing_charge_id, True)

            if processor_ref:
                await self._reconcile_processor_row(payment, created_by)

            if self.auto_transfer_overpayment and self.transfers is not None:
                await self.transfers.transfer_overpayment_to_funds(scout_account_id, created_by)

            return payment_id

        payment_id = await self.db.run_transaction(_write)
        logger.info(
            f"Payment recorded: {amount} {method.value}",
            extra={
                "payment_id": payment_id,
                "scout_account_id": scout_account_id,
                "processor_ref": processor_ref,
            },
        )
        return payment_id

    async def _check_charge_payable(self, billing_charge_id: str, scout_account_id: str) -> None:
        charge = await self.billing.get_charge(billing_charge_id)
        if charge is None or charge.scout_account_id != scout_account_id:
            raise NotFoundError("BillingCharge", billing_charge_id)
        if charge.is_void:
            raise AlreadyVoidError(f"Billing charge is void: {billing_charge_id}")
        if charge.is_paid:
            raise AlreadyPaidError(f"Billing charge already paid: {billing_charge_id}")

    async def _reconcile_processor_row(self, payment: Payment, reconciled_by: str | None) -> None:
        """Link (or create) the processor row for a payment and mark it reconciled"""
        if payment.square_payment_id is None:
            return
        row = await self.payments.get_transaction_by_payment_id(payment.unit_id, payment.square_payment_id)

        if row is None:
            amount_minor = to_minor(payment.amount)
            fee_minor = to_minor(payment.fee_amount)
            tx_id = await self.payments.insert_transaction(
                payment.unit_id,
                ProcessorTransaction(
                    processor_payment_id=payment.square_payment_id,
                    amount_minor=amount_minor,
                    fee_minor=fee_minor,
                    status=ProcessorStatus.COMPLETED,
                    note=payment.notes,
                    created_at=payment.created_at,
                ),
                state=ReconciliationState.LINKED,
                scout_account_id=payment.scout_account_id,
            )
            state = ReconciliationState.LINKED
        else:
            tx_id = row.square_transaction_id
            state = row.reconciliation_state

        machine = ReconciliationStateMachine(state, name=f"SquareTransaction {tx_id}")
        if machine.state == ReconciliationState.UNLINKED.value:
            machine.transition(ReconciliationState.LINKED)
            await self.payments.set_link(tx_id, ReconciliationState.LINKED, payment.scout_account_id)
        if machine.can_transition(ReconciliationState.RECONCILED):
            machine.transition(ReconciliationState.RECONCILED)
            await self.payments.mark_reconciled(
                tx_id, payment.payment_id, payment.scout_account_id, reconciled_by,
            )

    # =========================================================================
    # Card capture
    # =========================================================================

    async def capture_card_payment(
        self,
        scout_account_id: str,
        amount: Decimal | str,
        source_token: str,
        billing_charge_id: str | None = None,
        created_by: str | None = None,
        idempotency_key: str | None = None,
        note: str | None = None,
    ) -> str:
        """Charge a card, then record the payment

        The processor is called before any local transaction opens; nothing
        is written unless it confirms the capture. Failures are never retried.
        A confirmed capture whose charge was voided or paid meanwhile is
        recorded without the charge link; one that cannot be recorded at all
        is left as a LINKED processor row for reconciliation.

        Returns:
            payment_id

        Raises:
            ExternalCaptureFailedError: declined, errored or timed out
            LedgerError: captured but not recordable (processor row kept LINKED)
        """
        amount = money_or_raise(amount)
        account = await self.store.get_scout_account(scout_account_id)
        if billing_charge_id:
            await self._check_charge_payable(billing_charge_id, scout_account_id)

        if self.gateway is None:
            raise ExternalCaptureFailedError("No card processor is configured")
        if not source_token:
            raise ExternalCaptureFailedError("Card token is required")

        key = idempotency_key or str(uuid4())
        try:
            result: CaptureResult = await asyncio.wait_for(
                self.gateway.capture(
                    source_token,
                    to_minor(amount),
                    key,
                    note or f"Payment for {account.scout_name}",
                ),
                timeout=self.capture_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "Card capture timed out",
                extra={"scout_account_id": scout_account_id, "idempotency_key": key},
            )
            raise ExternalCaptureFailedError(
                "Card capture was not confirmed in time", processor_error="TIMEOUT",
            ) from e

        if not result.success or not result.processor_payment_id:
            logger.error(
                f"Card capture failed: {result.error_code}",
                extra={
                    "scout_account_id": scout_account_id,
                    "error_message": result.error_message,
                },
            )
            raise ExternalCaptureFailedError(
                result.error_message or "Card capture failed",
                processor_error=result.error_code,
            )

        processor_ref = result.processor_payment_id
        try:
            return await self.record_payment(
                scout_account_id=scout_account_id,
                amount=amount,
                method=PaymentMethod.CARD,
                processor_ref=processor_ref,
                billing_charge_id=billing_charge_id,
                notes=note,
                created_by=created_by,
                fee_amount=result.fee,
            )
        except LedgerError as e:
            if billing_charge_id is None:
                await self._park_capture(account, processor_ref, amount, result.fee, note, e)
                raise
            # charge was voided or paid during the capture
            logger.error(
                f"Captured card payment could not settle its charge: {e}",
                extra={
                    "processor_payment_id": processor_ref,
                    "billing_charge_id": billing_charge_id,
                },
            )

        try:
            return await self.record_payment(
                scout_account_id=scout_account_id,
                amount=amount,
                method=PaymentMethod.CARD,
                processor_ref=processor_ref,
                notes=note,
                created_by=created_by,
                fee_amount=result.fee,
            )
        except LedgerError as e:
            await self._park_capture(account, processor_ref, amount, result.fee, note, e)
            raise

    async def _park_capture(
        self,
        account: ScoutAccount,
        processor_ref: str,
        amount: Decimal,
        fee: Decimal | None,
        note: str | None,
        error: LedgerError,
    ) -> None:
        """Keep a captured card payment that could not be recorded

        The processor row is stored LINKED to the scout, so
        reconcile_transaction can create the Payment once the cause is fixed.
        """
        logger.error(
            f"Captured card payment left for reconciliation: {error}",
            extra={
                "processor_payment_id": processor_ref,
                "scout_account_id": account.scout_account_id,
                "error_code": error.code,
            },
        )

        async def _write() -> None:
            row = await self.payments.get_transaction_by_payment_id(account.unit_id, processor_ref)
            if row is not None:
                if row.reconciliation_state == ReconciliationState.UNLINKED:
                    await self.payments.set_link(
                        row.square_transaction_id, ReconciliationState.LINKED, account.scout_account_id,
                    )
                return

            if fee is None:
                policy = await self.store.get_unit_fee_policy(account.unit_id, self.default_fee_policy)
                fee_minor = to_minor(fee_for_method(amount, PaymentMethod.CARD, policy))
            else:
                fee_minor = to_minor(fee)
            await self.payments.insert_transaction(
                account.unit_id,
                ProcessorTransaction(
                    processor_payment_id=processor_ref,
                    amount_minor=to_minor(amount),
                    fee_minor=fee_minor,
                    status=ProcessorStatus.COMPLETED,
                    note=note,
                    created_at=now_utc(),
                ),
                state=ReconciliationState.LINKED,
                scout_account_id=account.scout_account_id,
            )

        await self.db.run_transaction(_write)

    # =========================================================================
    # Refund
    # =========================================================================

    async def refund_payment(
        self,
        payment_id: str,
        amount: Decimal | str,
        reason: str,
        refunded_by: str | None = None,
    ) -> str:
        """Refund part or all of a payment

        The scout owes the refunded amount again. A fully refunded payment
        releases its billing charge (no longer paid, so it can be voided).

        Returns:
            refund journal entry id

        Raises:
            ReasonRequiredError: blank reason
            NotFoundError: unknown payment
            AlreadyVoidError: payment was voided
            RefundExceedsPaymentError: amount > unrefunded remainder
        """
        reason = require_reason(reason)
        amount = money_or_raise(amount)

        async def _write() -> str:
            payment = await self.get_payment(payment_id)
            if payment.status == PaymentStatus.VOIDED:
                raise AlreadyVoidError(f"Payment is void: {payment_id}")
            if amount > payment.refundable_amount:
                raise RefundExceedsPaymentError(
                    f"Refund {amount} exceeds refundable {payment.refundable_amount}"
                )

            refunded = payment.refunded_amount + amount
            fully_refunded = refunded == payment.amount
            status = PaymentStatus.REFUNDED if fully_refunded else PaymentStatus.PARTIALLY_REFUNDED
            try:
                PaymentStatusMachine(payment.status, name=f"Payment {payment_id}").transition(status)
            except StateMachineError as e:
                raise InvalidStateTransitionError(str(e)) from e

            entry = JournalEntryBuilder.refund(
                unit_id=payment.unit_id,
                scout_account_id=payment.scout_account_id,
                amount=amount,
                description=f"Refund: {reason}",
                reference=payment_id,
                created_by=refunded_by,
            )
            entry_id = await self.store.record_entry(entry)
            await self.payments.update_refund(payment_id, refunded, status)
            if fully_refunded and payment.billing_charge_id:
                await self.billing.set_charge_paid(payment.billing_charge_id, False)
            return entry_id

        entry_id = await self.db.run_transaction(_write)
        logger.info(
            f"Payment refunded: {amount}",
            extra={"payment_id": payment_id, "entry_id": entry_id, "reason": reason},
        )
        return entry_id

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_payment(self, payment_id: str) -> Payment:
        payment = await self.payments.get_payment(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment
