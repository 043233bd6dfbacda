"""
Slack notifications

Sends operator alerts through a Slack incoming webhook.
Implements INotifier.
"""

import logging
from typing import Any

import httpx

from adapters.models import ProcessorTransaction
from core.utils.money import from_minor
from core.utils.timezone import now_utc

logger = logging.getLogger(__name__)


LEVEL_EMOJI = {
    "INFO": ":white_check_mark:",
    "WARNING": ":warning:",
    "ERROR": ":x:",
    "CRITICAL": ":rotating_light:",
}

# Slack attachment color per level
LEVEL_COLOR = {
    "INFO": "#36A64F",
    "WARNING": "#FFA500",
    "ERROR": "#FF0000",
    "CRITICAL": "#8B0000",
}

# Unlinked transactions listed individually in one report
MAX_REPORT_ROWS = 20


class SlackNotifier:
    """Slack notifier

    Delivery failures are logged and reported as False, never raised:
    a notification must not break a ledger operation.

    Example:
    ```python
    notifier = SlackNotifier(webhook_url="https://hooks.slack.com/...")

    await notifier.send("Balance drift repaired", level="WARNING")
    await notifier.send_unlinked_report("Troop 42", unlinked)
    ```
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        username: str = "Unit Ledger",
        timeout: float = 10.0,
    ):
        """
        Args:
            webhook_url: Slack incoming webhook URL
            channel: channel override (defaults to the webhook's channel)
            username: sender name
            timeout: HTTP timeout (seconds)
        """
        if not webhook_url:
            raise ValueError("webhook_url is required")

        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.timeout = timeout

        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP client (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

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
            extra: shown as attachment fields

        Returns:
            whether Slack accepted it
        """
        emoji = LEVEL_EMOJI.get(level, ":bell:")
        color = LEVEL_COLOR.get(level, "#808080")

        payload: dict[str, Any] = {
            "username": self.username,
            "attachments": [
                {
                    "color": color,
                    "text": f"{emoji} *[{level}]* {message}",
                    "footer": f"Unit Ledger | {self._format_timestamp()}",
                }
            ],
        }

        if self.channel:
            payload["channel"] = self.channel

        if extra:
            payload["attachments"][0]["fields"] = [
                {"title": key, "value": str(value), "short": True}
                for key, value in extra.items()
            ]

        return await self._send_payload(payload)

    async def send_unlinked_report(
        self,
        unit_name: str,
        transactions: list[ProcessorTransaction],
    ) -> bool:
        """Summary of processor payments no scout could be matched to"""
        if not transactions:
            return True

        total_minor = sum(tx.amount_minor for tx in transactions)
        lines = [
            f"• {tx.processor_payment_id}  ${from_minor(tx.amount_minor)}  {tx.buyer_email or 'no email'}"
            for tx in transactions[:MAX_REPORT_ROWS]
        ]
        if len(transactions) > MAX_REPORT_ROWS:
            lines.append(f"… and {len(transactions) - MAX_REPORT_ROWS} more")

        payload: dict[str, Any] = {
            "username": self.username,
            "attachments": [
                {
                    "color": LEVEL_COLOR["WARNING"],
                    "title": f"{LEVEL_EMOJI['WARNING']} {unit_name}: {len(transactions)} unlinked card payment(s)",
                    "text": "\n".join(lines),
                    "fields": [
                        {"title": "Count", "value": str(len(transactions)), "short": True},
                        {"title": "Total", "value": f"${from_minor(total_minor)}", "short": True},
                    ],
                    "footer": f"Unit Ledger | {self._format_timestamp()}",
                }
            ],
        }

        if self.channel:
            payload["channel"] = self.channel

        return await self._send_payload(payload)

    async def _send_payload(self, payload: dict[str, Any]) -> bool:
        try:
            client = await self._get_client()
            response = await client.post(self.webhook_url, json=payload)

            if response.status_code == 200:
                logger.debug("Slack notification sent")
                return True

            logger.warning(
                "Slack notification rejected: status=%s, body=%s",
                response.status_code,
                response.text,
            )
            return False

        except httpx.TimeoutException:
            logger.error("Slack notification timed out")
            return False
        except httpx.HTTPError as e:
            logger.error("Slack notification HTTP error: %s", e)
            return False

    def _format_timestamp(self) -> str:
        return now_utc().strftime("%Y-%m-%d %H:%M:%S UTC")

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SlackNotifier":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
