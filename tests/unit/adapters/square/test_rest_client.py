"""
Square REST client tests

httpx is mocked through _get_client; no network calls are made.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from adapters.square.rest_client import SquareApiError, SquareRestClient
from core.constants import SquareEndpoints


def _response(status_code: int, body) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = str(body)
    return response


def _payment(payment_id: str, status: str = "COMPLETED") -> dict:
    return {
        "id": payment_id,
        "amount_money": {"amount": 4000, "currency": "USD"},
        "processing_fee": [{"amount_money": {"amount": 114, "currency": "USD"}}],
        "status": status,
    }


@pytest.fixture
def client() -> SquareRestClient:
    return SquareRestClient(
        base_url=SquareEndpoints.SANDBOX_URL + "/",
        access_token="EAAA-token",
        location_id="L-TEST",
    )


class TestHeaders:
    def test_bearer_and_version(self, client: SquareRestClient) -> None:
        headers = client._headers()

        assert headers["Authorization"] == "Bearer EAAA-token"
        assert headers["Square-Version"] == SquareEndpoints.API_VERSION

    def test_base_url_trailing_slash_stripped(self, client: SquareRestClient) -> None:
        assert client.base_url == SquareEndpoints.SANDBOX_URL


class TestCapture:
    """SquareRestClient.capture() tests"""

    @pytest.mark.asyncio
    async def test_capture_success(self, client: SquareRestClient) -> None:
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.return_value = _response(200, {"payment": _payment("sq-1")})
            mock_get_client.return_value = mock_http

            result = await client.capture("cnon:ok", 4000, "key-1", note="Dues")

            assert result.success is True
            assert result.processor_payment_id == "sq-1"
            assert result.fee_minor == 114

            args = mock_http.request.call_args
            assert args.args == ("POST", f"{SquareEndpoints.SANDBOX_URL}/v2/payments")
            body = args.kwargs["json"]
            assert body["source_id"] == "cnon:ok"
            assert body["idempotency_key"] == "key-1"
            assert body["amount_money"] == {"amount": 4000, "currency": "USD"}
            assert body["location_id"] == "L-TEST"
            assert body["autocomplete"] is True
            assert body["note"] == "Dues"

    @pytest.mark.asyncio
    async def test_capture_declined(self, client: SquareRestClient) -> None:
        error_body = {"errors": [{"code": "CARD_DECLINED", "detail": "Card declined"}]}

        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.return_value = _response(402, error_body)
            mock_get_client.return_value = mock_http

            result = await client.capture("cnon:bad", 4000, "key-1")

            assert result.success is False
            assert result.error_code == "CARD_DECLINED"
            assert mock_http.request.call_count == 1

    @pytest.mark.asyncio
    async def test_capture_timeout_not_retried(self, client: SquareRestClient) -> None:
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.side_effect = httpx.TimeoutException("timeout")
            mock_get_client.return_value = mock_http

            result = await client.capture("cnon:ok", 4000, "key-1")

            assert result.success is False
            assert result.error_code == "TIMEOUT"
            assert mock_http.request.call_count == 1

    @pytest.mark.asyncio
    async def test_capture_request_error(self, client: SquareRestClient) -> None:
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.side_effect = httpx.ConnectError("refused")
            mock_get_client.return_value = mock_http

            result = await client.capture("cnon:ok", 4000, "key-1")

            assert result.success is False
            assert result.error_code == "REQUEST_ERROR"

    @pytest.mark.asyncio
    async def test_capture_pending_is_failure(self, client: SquareRestClient) -> None:
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.return_value = _response(200, {"payment": _payment("sq-1", "PENDING")})
            mock_get_client.return_value = mock_http

            result = await client.capture("cnon:ok", 4000, "key-1")

            assert result.success is False


class TestListTransactions:
    """SquareRestClient.list_transactions() tests"""

    @pytest.mark.asyncio
    async def test_follows_cursor(self, client: SquareRestClient) -> None:
        pages = [
            _response(200, {"payments": [_payment("sq-1")], "cursor": "next-page"}),
            _response(200, {"payments": [_payment("sq-2")]}),
        ]

        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.side_effect = pages
            mock_get_client.return_value = mock_http

            begin = datetime(2026, 2, 1, tzinfo=timezone.utc)
            records = await client.list_transactions(begin)

            assert [r.processor_payment_id for r in records] == ["sq-1", "sq-2"]
            assert mock_http.request.call_count == 2
            second_params = mock_http.request.call_args_list[1].kwargs["params"]
            assert second_params["cursor"] == "next-page"
            assert second_params["begin_time"] == "2026-02-01T00:00:00+00:00"
            assert second_params["location_id"] == "L-TEST"

    @pytest.mark.asyncio
    async def test_empty_feed(self, client: SquareRestClient) -> None:
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.return_value = _response(200, {})
            mock_get_client.return_value = mock_http

            assert await client.list_transactions() == []

    @pytest.mark.asyncio
    async def test_error_raises(self, client: SquareRestClient) -> None:
        body = {"errors": [{"code": "UNAUTHORIZED", "detail": "Bad token"}]}

        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.request.return_value = _response(401, body)
            mock_get_client.return_value = mock_http

            with pytest.raises(SquareApiError) as exc_info:
                await client.list_transactions()

            assert exc_info.value.status_code == 401
            assert exc_info.value.code == "UNAUTHORIZED"


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_closes(self) -> None:
        async with SquareRestClient(SquareEndpoints.SANDBOX_URL, "t", "l") as client:
            http = await client._get_client()
            assert http is await client._get_client()

        assert client._client is None
