"""
MockPaymentGateway / MockTransactionFeed tests
"""

from datetime import timedelta

import pytest

from adapters.mock.payment_gateway import MockGatewayState, MockPaymentGateway, MockTransactionFeed
from core.types import ProcessorStatus
from core.utils.timezone import now_utc


class TestMockPaymentGateway:
    """MockPaymentGateway tests"""

    @pytest.mark.asyncio
    async def test_capture_success(self) -> None:
        gateway = MockPaymentGateway()

        result = await gateway.capture("cnon:ok", 4000, "key-1", note="Dues")

        assert result.success is True
        assert result.processor_payment_id.startswith("mock-pay-")
        assert result.amount_minor == 4000
        assert result.fee_minor == 114
        assert gateway.capture_count == 1
        assert gateway.state.captures[0].note == "Dues"

    @pytest.mark.asyncio
    async def test_decline_next_only_once(self) -> None:
        gateway = MockPaymentGateway()
        gateway.state.decline_next = True

        declined = await gateway.capture("cnon:ok", 4000, "key-1")
        accepted = await gateway.capture("cnon:ok", 4000, "key-2")

        assert declined.success is False
        assert declined.error_code == "CARD_DECLINED"
        assert accepted.success is True

    @pytest.mark.asyncio
    async def test_same_key_same_result(self) -> None:
        gateway = MockPaymentGateway()

        first = await gateway.capture("cnon:ok", 4000, "key-1")
        second = await gateway.capture("cnon:ok", 4000, "key-1")

        assert first.processor_payment_id == second.processor_payment_id
        assert gateway.capture_count == 2

    @pytest.mark.asyncio
    async def test_fee_not_reported(self) -> None:
        gateway = MockPaymentGateway(MockGatewayState(report_fee=False))

        result = await gateway.capture("cnon:ok", 4000, "key-1")

        assert result.fee_minor is None
        assert result.fee is None


class TestMockTransactionFeed:
    """MockTransactionFeed tests"""

    @pytest.mark.asyncio
    async def test_list_all(self) -> None:
        feed = MockTransactionFeed()
        feed.add("sq-1", 4000, 114, buyer_email="family1@example.com")
        feed.add("sq-2", 1000, 36, status=ProcessorStatus.PENDING)

        records = await feed.list_transactions()

        assert [r.processor_payment_id for r in records] == ["sq-1", "sq-2"]
        assert feed.calls == [None]

    @pytest.mark.asyncio
    async def test_begin_time_filter(self) -> None:
        feed = MockTransactionFeed()
        feed.add("sq-old", 4000, 114)

        records = await feed.list_transactions(now_utc() + timedelta(hours=1))

        assert records == []
