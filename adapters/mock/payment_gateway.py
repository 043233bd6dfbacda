"""
Mock card processor

In-memory capture gateway and transaction feed for tests.
Implements IPaymentGateway and ITransactionFeed.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from adapters.models import CaptureResult, ProcessorTransaction
from core.types import ProcessorStatus
from core.utils.timezone import now_utc


@dataclass
class CaptureCall:
    """One recorded capture request"""

    source_token: str
    amount_minor: int
    idempotency_key: str
    note: str | None


@dataclass
class MockGatewayState:
    """Simulation switches"""

    decline_next: bool = False
    decline_code: str = "CARD_DECLINED"
    delay_seconds: float = 0.0
    fee_percent: Decimal = Decimal("0.026")
    fee_fixed_minor: int = 10
    report_fee: bool = True
    captures: list[CaptureCall] = field(default_factory=list)


class MockPaymentGateway:
    """Mock capture gateway

    Example:
    ```python
    gateway = MockPaymentGateway()
    gateway.state.decline_next = True

    result = await gateway.capture("cnon:card-nonce-ok", 4000, "key-1")
    assert not result.success
    ```
    """

    def __init__(self, state: MockGatewayState | None = None):
        self.state = state or MockGatewayState()
        self._by_key: dict[str, CaptureResult] = {}

    def fee_for(self, amount_minor: int) -> int:
        fee = Decimal(amount_minor) * self.state.fee_percent + self.state.fee_fixed_minor
        return int(fee.to_integral_value(rounding=ROUND_HALF_UP))

    async def capture(
        self,
        source_token: str,
        amount_minor: int,
        idempotency_key: str,
        note: str | None = None,
    ) -> CaptureResult:
        self.state.captures.append(CaptureCall(source_token, amount_minor, idempotency_key, note))

        if self.state.delay_seconds:
            await asyncio.sleep(self.state.delay_seconds)

        if self.state.decline_next:
            self.state.decline_next = False
            return CaptureResult.failed(self.state.decline_code, "Card declined (mock)")

        # same key, same result (processor-side idempotency)
        if idempotency_key in self._by_key:
            return self._by_key[idempotency_key]

        result = CaptureResult(
            success=True,
            processor_payment_id=f"mock-pay-{uuid.uuid4().hex[:12]}",
            amount_minor=amount_minor,
            fee_minor=self.fee_for(amount_minor) if self.state.report_fee else None,
            status=ProcessorStatus.COMPLETED.value,
        )
        self._by_key[idempotency_key] = result
        return result

    @property
    def capture_count(self) -> int:
        return len(self.state.captures)


class MockTransactionFeed:
    """Mock processor feed

    Example:
    ```python
    feed = MockTransactionFeed()
    feed.add("sq-1", 4000, 114, buyer_email="parent@example.com")
    records = await feed.list_transactions()
    ```
    """

    def __init__(self, transactions: list[ProcessorTransaction] | None = None):
        self.transactions: list[ProcessorTransaction] = list(transactions or [])
        self.calls: list[datetime | None] = []

    def add(
        self,
        processor_payment_id: str,
        amount_minor: int,
        fee_minor: int,
        status: ProcessorStatus = ProcessorStatus.COMPLETED,
        buyer_email: str | None = None,
        note: str | None = None,
    ) -> ProcessorTransaction:
        tx = ProcessorTransaction(
            processor_payment_id=processor_payment_id,
            amount_minor=amount_minor,
            fee_minor=fee_minor,
            status=status,
            buyer_email=buyer_email,
            note=note,
            created_at=now_utc(),
        )
        self.transactions.append(tx)
        return tx

    async def list_transactions(
        self,
        begin_time: datetime | None = None,
    ) -> list[ProcessorTransaction]:
        self.calls.append(begin_time)
        if begin_time is None:
            return list(self.transactions)
        return [
            tx for tx in self.transactions
            if tx.created_at is None or tx.created_at >= begin_time
        ]
