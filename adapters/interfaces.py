"""
Adapter interfaces

Protocols so the engine can be wired with real or mock collaborators.
Every implementation must follow these signatures.
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from adapters.models import CaptureResult, ProcessorTransaction


@runtime_checkable
class IPaymentGateway(Protocol):
    """Card capture collaborator

    Amounts are integer minor units (cents).
    A decline, an HTTP error or a timeout is returned as a failed
    CaptureResult; implementations never retry on their own.
    """

    async def capture(
        self,
        source_token: str,
        amount_minor: int,
        idempotency_key: str,
        note: str | None = None,
    ) -> CaptureResult:
        """Capture a tokenized card

        Args:
            source_token: card nonce / token from the processor's web SDK
            amount_minor: amount in cents
            idempotency_key: processor-side deduplication key
            note: free text shown on the processor dashboard

        Returns:
            CaptureResult (success flag, processor payment id, fee)
        """
        ...


@runtime_checkable
class ITransactionFeed(Protocol):
    """Processor transaction feed collaborator"""

    async def list_transactions(
        self,
        begin_time: datetime | None = None,
    ) -> list[ProcessorTransaction]:
        """Payments known to the processor

        Args:
            begin_time: only payments created at or after this time

        Returns:
            processor payments, oldest first
        """
        ...


@runtime_checkable
class INotifier(Protocol):
    """Operator notification interface (Slack etc.)"""

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """Send a notification

        Args:
            message: text
            level: INFO, WARNING, ERROR, CRITICAL
            extra: key/value details

        Returns:
            whether the notification was delivered
        """
        ...
