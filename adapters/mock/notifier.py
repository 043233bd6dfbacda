"""
Mock notifier

Records notifications for tests.
Implements INotifier.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from adapters.models import ProcessorTransaction
from core.utils.timezone import now_utc


@dataclass
class NotificationRecord:
    """One recorded notification"""

    message: str
    level: str
    extra: dict[str, Any] | None
    timestamp: datetime
    sent: bool


class MockNotifier:
    """Mock notifier

    Example:
    ```python
    notifier = MockNotifier()

    await notifier.send("test message", level="INFO")

    assert len(notifier.notifications) == 1
    assert notifier.notifications[0].message == "test message"
    ```
    """

    def __init__(self, should_fail: bool = False):
        """
        Args:
            should_fail: every send reports failure (error scenarios)
        """
        self.should_fail = should_fail
        self.notifications: list[NotificationRecord] = []

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        self.notifications.append(NotificationRecord(
            message=message,
            level=level,
            extra=extra,
            timestamp=now_utc(),
            sent=not self.should_fail,
        ))
        return not self.should_fail

    async def send_unlinked_report(
        self,
        unit_name: str,
        transactions: list[ProcessorTransaction],
    ) -> bool:
        return await self.send(
            message=f"{unit_name}: {len(transactions)} unlinked card payment(s)",
            level="WARNING",
            extra={
                "count": len(transactions),
                "payment_ids": [tx.processor_payment_id for tx in transactions],
            },
        )

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        self.notifications.clear()

    def get_by_level(self, level: str) -> list[NotificationRecord]:
        return [n for n in self.notifications if n.level == level]

    def get_warnings(self) -> list[NotificationRecord]:
        return self.get_by_level("WARNING")

    @property
    def last_notification(self) -> NotificationRecord | None:
        return self.notifications[-1] if self.notifications else None

    @property
    def message_count(self) -> int:
        return len(self.notifications)
