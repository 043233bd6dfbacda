"""
Square Payments REST API client

Bearer token auth, Square-Version header, integer minor units.
Implements IPaymentGateway and ITransactionFeed.
"""

import logging
from datetime import datetime
from typing import Any

import httpx

from adapters.models import CaptureResult, ProcessorTransaction
from adapters.square.models import parse_capture, parse_errors, parse_payment
from core.constants import Defaults, SquareEndpoints
from core.utils.timezone import to_iso

logger = logging.getLogger(__name__)


class SquareApiError(Exception):
    """Square API error response (feed requests only)"""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"Square API Error [{status_code} {code}]: {message}")


class SquareRestClient:
    """Square Payments API client

    capture() never raises for processor or transport failures: a decline,
    an HTTP error or a timeout comes back as a failed CaptureResult and is
    never retried, so a card cannot be charged twice.

    Args:
        base_url: API base URL (sandbox or production)
        access_token: Square access token
        location_id: location payments are taken for
        timeout: request timeout (seconds)
        currency: ISO currency code
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        location_id: str,
        timeout: float = 30.0,
        currency: str = Defaults.CURRENCY,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.location_id = location_id
        self.timeout = timeout
        self.currency = currency

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

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Square-Version": SquareEndpoints.API_VERSION,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Single API request (no retry)

        Raises:
            SquareApiError: error response
            httpx.TimeoutException / httpx.RequestError: transport failure
        """
        client = await self._get_client()
        response = await client.request(
            method,
            f"{self.base_url}{path}",
            params=params,
            json=json_body,
            headers=self._headers(),
        )

        if response.status_code >= 400:
            try:
                code, detail = parse_errors(response.json())
            except ValueError:
                code, detail = "UNKNOWN", response.text
            raise SquareApiError(response.status_code, code, detail)

        return response.json()

    # -------------------------------------------------------------------------
    # IPaymentGateway
    # -------------------------------------------------------------------------

    async def capture(
        self,
        source_token: str,
        amount_minor: int,
        idempotency_key: str,
        note: str | None = None,
    ) -> CaptureResult:
        """Create and complete a card payment (POST /v2/payments)"""
        body: dict[str, Any] = {
            "source_id": source_token,
            "idempotency_key": idempotency_key,
            "amount_money": {"amount": amount_minor, "currency": self.currency},
            "location_id": self.location_id,
            "autocomplete": True,
        }
        if note:
            body["note"] = note[:500]

        try:
            data = await self._request("POST", "/v2/payments", json_body=body)
        except SquareApiError as e:
            logger.warning(
                "Square capture declined",
                extra={"code": e.code, "status_code": e.status_code, "amount_minor": amount_minor},
            )
            return CaptureResult.failed(e.code, e.message)
        except httpx.TimeoutException:
            logger.error(
                "Square capture timed out",
                extra={"idempotency_key": idempotency_key, "amount_minor": amount_minor},
            )
            return CaptureResult.failed("TIMEOUT", "Capture not confirmed before timeout")
        except httpx.RequestError as e:
            logger.error("Square capture request error", extra={"error": str(e)})
            return CaptureResult.failed("REQUEST_ERROR", str(e))

        result = parse_capture(data)
        if result.success:
            logger.info(
                "Square capture completed",
                extra={"processor_payment_id": result.processor_payment_id, "amount_minor": amount_minor},
            )
        return result

    # -------------------------------------------------------------------------
    # ITransactionFeed
    # -------------------------------------------------------------------------

    async def list_transactions(
        self,
        begin_time: datetime | None = None,
    ) -> list[ProcessorTransaction]:
        """All payments for the location since begin_time (follows cursors)"""
        params: dict[str, Any] = {
            "location_id": self.location_id,
            "sort_order": "ASC",
            "limit": 100,
        }
        if begin_time is not None:
            params["begin_time"] = to_iso(begin_time)

        transactions: list[ProcessorTransaction] = []
        while True:
            data = await self._request("GET", "/v2/payments", params=params)
            transactions.extend(parse_payment(item) for item in data.get("payments", []))

            cursor = data.get("cursor")
            if not cursor:
                break
            params["cursor"] = cursor

        logger.debug(f"Square feed returned {len(transactions)} payments")
        return transactions

    async def __aenter__(self) -> "SquareRestClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
