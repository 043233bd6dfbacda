"""
Adapter data models

Processor API responses normalised into plain domain models.
Processor amounts stay in integer minor units (cents).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from core.types import ProcessorStatus
from core.utils.money import from_minor


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of a card capture

    Attributes:
        success: processor confirmed the capture
        processor_payment_id: processor's payment id (success only)
        amount_minor: captured amount in cents
        fee_minor: processor fee in cents (None when not reported yet)
        status: processor status string
        error_code: processor / transport error code (failure only)
        error_message: human-readable failure reason
    """

    success: bool
    processor_payment_id: str | None = None
    amount_minor: int = 0
    fee_minor: int | None = None
    status: str | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def failed(cls, error_code: str, error_message: str) -> "CaptureResult":
        return cls(success=False, error_code=error_code, error_message=error_message)

    @property
    def fee(self) -> Decimal | None:
        return from_minor(self.fee_minor) if self.fee_minor is not None else None


@dataclass(frozen=True)
class ProcessorTransaction:
    """Payment as reported by the processor's transaction feed

    Attributes:
        processor_payment_id: processor's payment id
        amount_minor: gross amount in cents
        fee_minor: processing fee in cents
        status: processor status
        buyer_email: payer email, when the processor has one
        note: payment note
        currency: ISO currency code
        created_at: processor timestamp
    """

    processor_payment_id: str
    amount_minor: int
    fee_minor: int
    status: ProcessorStatus
    buyer_email: str | None = None
    note: str | None = None
    currency: str = "USD"
    created_at: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def net_minor(self) -> int:
        return self.amount_minor - self.fee_minor

    @property
    def is_completed(self) -> bool:
        return self.status == ProcessorStatus.COMPLETED
