"""
PaymentAdapter integration tests

Manual payments, card capture through the mock processor and refunds.
"""

from decimal import Decimal

import pytest

from core.ledger.errors import (
    AlreadyPaidError,
    ExternalCaptureFailedError,
    InvalidAmountError,
    RefundExceedsPaymentError,
)
from core.ledger.types import AccountCode
from core.types import PaymentMethod, PaymentStatus, ReconciliationState


def _lines_by_code(entry) -> dict[str, tuple[Decimal, Decimal]]:
    return {line.account_code: (line.debit, line.credit) for line in entry.lines}


class TestCardCapture:
    """capture_card_payment tests"""

    @pytest.mark.asyncio
    async def test_forty_dollar_card_payment(self, ledger, unit_id, scouts, treasurer, gateway) -> None:
        """$40 at 2.6% + $0.10: fee 1.14, net 38.86, billing +40"""
        before = (await ledger.get_scout_account(scouts[0])).billing_balance

        payment_id = await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "cnon:card-ok")

        payment = await ledger.get_payment(payment_id)
        assert payment.fee_amount == Decimal("1.14")
        assert payment.net_amount == Decimal("38.86")
        assert payment.method == PaymentMethod.CARD
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.square_payment_id.startswith("mock-pay-")

        after = (await ledger.get_scout_account(scouts[0])).billing_balance
        assert after - before == Decimal("40.00")

        entry = await ledger.get_entry(payment.journal_entry_id)
        lines = _lines_by_code(entry)
        assert lines[AccountCode.BANK] == (Decimal("38.86"), Decimal("0"))
        assert lines[AccountCode.PROCESSING_FEES] == (Decimal("1.14"), Decimal("0"))
        assert lines[AccountCode.SCOUT_BILLING] == (Decimal("0"), Decimal("40.00"))

        assert gateway.capture_count == 1
        assert gateway.state.captures[0].amount_minor == 4000

    @pytest.mark.asyncio
    async def test_capture_creates_reconciled_row(self, ledger, unit_id, scouts, treasurer) -> None:
        payment_id = await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "cnon:card-ok")

        rows = await ledger.list_transactions(unit_id)
        assert len(rows) == 1
        assert rows[0].reconciliation_state == ReconciliationState.RECONCILED
        assert rows[0].payment_id == payment_id
        assert rows[0].scout_account_id == scouts[0]
        assert await ledger.list_unlinked(unit_id) == []

    @pytest.mark.asyncio
    async def test_settles_charge(self, ledger, unit_id, scouts, treasurer) -> None:
        record_id = await ledger.create_billing_record(treasurer, unit_id, "Dues", "40.00", [scouts[0]])
        charge_id = (await ledger.get_billing_record(record_id)).charges[0].billing_charge_id

        await ledger.capture_card_payment(
            treasurer, scouts[0], "40.00", "cnon:card-ok", billing_charge_id=charge_id,
        )

        record = await ledger.get_billing_record(record_id)
        assert record.charges[0].is_paid is True
        assert (await ledger.get_scout_account(scouts[0])).billing_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_decline_writes_nothing(self, ledger, unit_id, scouts, treasurer, gateway) -> None:
        gateway.state.decline_next = True

        with pytest.raises(ExternalCaptureFailedError) as exc_info:
            await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "cnon:card-declined")

        assert exc_info.value.processor_error == "CARD_DECLINED"
        assert await ledger.list_payments(unit_id) == []
        assert await ledger.list_transactions(unit_id) == []
        assert (await ledger.get_scout_account(scouts[0])).billing_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_timeout_writes_nothing(self, ledger, unit_id, scouts, treasurer, gateway) -> None:
        gateway.state.delay_seconds = 0.5
        ledger.payments.capture_timeout = 0.05

        with pytest.raises(ExternalCaptureFailedError) as exc_info:
            await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "cnon:card-ok")

        assert exc_info.value.processor_error == "TIMEOUT"
        assert await ledger.list_payments(unit_id) == []

    @pytest.mark.asyncio
    async def test_missing_token(self, ledger, unit_id, scouts, treasurer, gateway) -> None:
        with pytest.raises(ExternalCaptureFailedError):
            await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "")

        assert gateway.capture_count == 0

    @pytest.mark.asyncio
    async def test_same_idempotency_key(self, ledger, unit_id, scouts, treasurer) -> None:
        """Processor returns the same payment id; only one Payment is written"""
        first = await ledger.capture_card_payment(
            treasurer, scouts[0], "40.00", "cnon:card-ok", idempotency_key="key-1",
        )
        second = await ledger.capture_card_payment(
            treasurer, scouts[0], "40.00", "cnon:card-ok", idempotency_key="key-1",
        )

        assert first == second
        assert len(await ledger.list_payments(unit_id)) == 1
        assert (await ledger.get_scout_account(scouts[0])).billing_balance == Decimal("40.00")

    @pytest.mark.asyncio
    async def test_unreported_fee_uses_unit_policy(self, ledger, unit_id, scouts, treasurer, gateway) -> None:
        gateway.state.report_fee = False

        payment_id = await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "cnon:card-ok")

        assert (await ledger.get_payment(payment_id)).fee_amount == Decimal("1.14")

    @pytest.mark.asyncio
    async def test_charge_voided_during_capture(
        self, ledger, unit_id, scouts, treasurer, gateway, monkeypatch,
    ) -> None:
        """Captured money is kept as an unlinked payment when its charge went away"""
        record_id = await ledger.create_billing_record(treasurer, unit_id, "Dues", "40.00", [scouts[0]])
        charge_id = (await ledger.get_billing_record(record_id)).charges[0].billing_charge_id
        capture = gateway.capture

        async def _capture_then_void(*args, **kwargs):
            result = await capture(*args, **kwargs)
            await ledger.void_billing_charge(treasurer, charge_id, "Trip cancelled")
            return result

        monkeypatch.setattr(gateway, "capture", _capture_then_void)

        payment_id = await ledger.capture_card_payment(
            treasurer, scouts[0], "40.00", "cnon:card-ok", billing_charge_id=charge_id,
        )

        payment = await ledger.get_payment(payment_id)
        assert payment.method == PaymentMethod.CARD
        assert payment.billing_charge_id is None
        charge = (await ledger.get_billing_record(record_id)).charges[0]
        assert charge.is_void is True
        assert charge.is_paid is False
        assert (await ledger.get_scout_account(scouts[0])).billing_balance == Decimal("40.00")
        rows = await ledger.list_transactions(unit_id)
        assert len(rows) == 1
        assert rows[0].payment_id == payment_id
        assert rows[0].reconciliation_state == ReconciliationState.RECONCILED

    @pytest.mark.asyncio
    async def test_unrecordable_capture_left_linked(self, ledger, unit_id, scouts, treasurer, gateway) -> None:
        """Processor fee above the amount: no Payment, but the processor row is kept"""
        gateway.state.fee_fixed_minor = 5000

        with pytest.raises(InvalidAmountError):
            await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "cnon:card-ok")

        assert gateway.capture_count == 1
        assert await ledger.list_payments(unit_id) == []
        rows = await ledger.list_transactions(unit_id)
        assert len(rows) == 1
        assert rows[0].reconciliation_state == ReconciliationState.LINKED
        assert rows[0].scout_account_id == scouts[0]
        assert rows[0].payment_id is None
        assert rows[0].amount_minor == 4000
        assert await ledger.list_unlinked(unit_id) == []


class TestRecordPayment:
    """record_payment tests"""

    @pytest.mark.asyncio
    async def test_cash_has_no_fee(self, ledger, unit_id, scouts, treasurer) -> None:
        payment_id = await ledger.record_payment(treasurer, scouts[0], "25.00", PaymentMethod.CASH)

        payment = await ledger.get_payment(payment_id)
        assert payment.fee_amount == Decimal("0")
        assert payment.net_amount == Decimal("25.00")
        entry = await ledger.get_entry(payment.journal_entry_id)
        assert AccountCode.PROCESSING_FEES not in _lines_by_code(entry)
        assert payment.created_by == treasurer.profile_id

    @pytest.mark.asyncio
    async def test_card_without_reference_uses_unit_policy(self, ledger, unit_id, scouts, treasurer) -> None:
        payment_id = await ledger.record_payment(treasurer, scouts[0], "40.00", PaymentMethod.CARD)

        payment = await ledger.get_payment(payment_id)
        assert payment.fee_amount == Decimal("1.14")
        assert payment.net_amount == Decimal("38.86")

    @pytest.mark.asyncio
    async def test_duplicate_processor_ref(self, ledger, unit_id, scouts, treasurer) -> None:
        first = await ledger.record_payment(
            treasurer, scouts[0], "40.00", PaymentMethod.CARD, processor_ref="sq-123",
        )
        second = await ledger.record_payment(
            treasurer, scouts[0], "40.00", PaymentMethod.CARD, processor_ref="sq-123",
        )

        assert first == second
        assert len(await ledger.list_payments(unit_id)) == 1
        rows = await ledger.list_transactions(unit_id)
        assert len(rows) == 1
        assert rows[0].is_reconciled is True
        assert rows[0].payment_id == first

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5.00", "abc", "10.005"])
    async def test_invalid_amount(self, ledger, unit_id, scouts, treasurer, amount) -> None:
        with pytest.raises(InvalidAmountError):
            await ledger.record_payment(treasurer, scouts[0], amount, PaymentMethod.CASH)

        assert await ledger.list_payments(unit_id) == []

    @pytest.mark.asyncio
    async def test_paid_charge_rejected(self, ledger, unit_id, scouts, treasurer) -> None:
        record_id = await ledger.create_billing_record(treasurer, unit_id, "Dues", "40.00", [scouts[0]])
        charge_id = (await ledger.get_billing_record(record_id)).charges[0].billing_charge_id
        await ledger.record_payment(treasurer, scouts[0], "40.00", "cash", billing_charge_id=charge_id)

        with pytest.raises(AlreadyPaidError):
            await ledger.record_payment(treasurer, scouts[0], "40.00", "cash", billing_charge_id=charge_id)

        assert len(await ledger.list_payments(unit_id)) == 1

    @pytest.mark.asyncio
    async def test_list_payments_by_scout(self, ledger, unit_id, scouts, treasurer) -> None:
        await ledger.record_payment(treasurer, scouts[0], "10.00", "cash")
        await ledger.record_payment(treasurer, scouts[1], "20.00", "check")

        payments = await ledger.list_payments(unit_id, scouts[1])

        assert [p.amount for p in payments] == [Decimal("20.00")]


class TestRefund:
    """refund_payment tests"""

    @pytest.mark.asyncio
    async def test_partial_refund(self, ledger, unit_id, scouts, treasurer) -> None:
        payment_id = await ledger.record_payment(treasurer, scouts[0], "40.00", "cash")

        entry_id = await ledger.refund_payment(treasurer, payment_id, "15.00", "Left campout early")

        payment = await ledger.get_payment(payment_id)
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED
        assert payment.refunded_amount == Decimal("15.00")
        assert payment.refundable_amount == Decimal("25.00")
        assert (await ledger.get_scout_account(scouts[0])).billing_balance == Decimal("25.00")

        entry = await ledger.get_entry(entry_id)
        assert entry.reference == payment_id
        lines = _lines_by_code(entry)
        assert lines[AccountCode.SCOUT_BILLING] == (Decimal("15.00"), Decimal("0"))
        assert lines[AccountCode.BANK] == (Decimal("0"), Decimal("15.00"))

    @pytest.mark.asyncio
    async def test_full_refund_releases_charge(self, ledger, unit_id, scouts, treasurer) -> None:
        record_id = await ledger.create_billing_record(treasurer, unit_id, "Dues", "40.00", [scouts[0]])
        charge_id = (await ledger.get_billing_record(record_id)).charges[0].billing_charge_id
        payment_id = await ledger.record_payment(
            treasurer, scouts[0], "40.00", "cash", billing_charge_id=charge_id,
        )

        await ledger.refund_payment(treasurer, payment_id, "40.00", "Event cancelled")

        payment = await ledger.get_payment(payment_id)
        assert payment.status == PaymentStatus.REFUNDED
        record = await ledger.get_billing_record(record_id)
        assert record.charges[0].is_paid is False
        # charge can now be voided
        await ledger.void_billing_record(treasurer, record_id, "Event cancelled")
        assert (await ledger.get_scout_account(scouts[0])).billing_balance == Decimal("0")
        assert await ledger.verify_balances(unit_id) == []

    @pytest.mark.asyncio
    async def test_refund_exceeds_payment(self, ledger, unit_id, scouts, treasurer) -> None:
        payment_id = await ledger.record_payment(treasurer, scouts[0], "40.00", "cash")
        await ledger.refund_payment(treasurer, payment_id, "30.00", "First refund")

        with pytest.raises(RefundExceedsPaymentError):
            await ledger.refund_payment(treasurer, payment_id, "10.01", "Second refund")

        payment = await ledger.get_payment(payment_id)
        assert payment.refunded_amount == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_card_payment_refund(self, ledger, unit_id, scouts, treasurer) -> None:
        payment_id = await ledger.capture_card_payment(treasurer, scouts[0], "40.00", "cnon:card-ok")

        await ledger.refund_payment(treasurer, payment_id, "40.00", "Duplicate charge")

        assert (await ledger.get_payment(payment_id)).status == PaymentStatus.REFUNDED
        assert (await ledger.get_scout_account(scouts[0])).billing_balance == Decimal("0")
