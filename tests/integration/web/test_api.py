"""
HTTP API tests

Runs the FastAPI app (lifespan included) against a temporary database
with the mock processor and notifier.
"""

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from web.app import create_app

TREASURER = {"X-Actor-Id": "treasurer-1", "X-Actor-Role": "treasurer"}
PARENT = {"X-Actor-Id": "parent-1", "X-Actor-Role": "parent"}


@pytest.fixture
def client(settings, gateway, feed, notifier) -> Iterator[TestClient]:
    app = create_app(settings, gateway=gateway, feed=feed, notifier=notifier)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unit(client: TestClient) -> str:
    response = client.post(
        "/api/units",
        json={"name": "Troop 42", "fee_percent": "0.026", "fee_fixed": "0.10"},
        headers=TREASURER,
    )
    assert response.status_code == 201
    return response.json()["id"]


def _create_scout(client: TestClient, unit_id: str, name: str, email: str | None = None) -> str:
    response = client.post(
        "/api/scout-accounts",
        json={"unit_id": unit_id, "scout_name": name, "email": email},
        headers=TREASURER,
    )
    assert response.status_code == 201
    return response.json()["id"]


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["card_capture"] is True


class TestActorHeaders:
    """X-Actor-Id / X-Actor-Role handling"""

    def test_missing_headers(self, client: TestClient) -> None:
        response = client.post("/api/units", json={"name": "Troop 1"})

        assert response.status_code == 401

    def test_unknown_role(self, client: TestClient) -> None:
        response = client.post(
            "/api/units",
            json={"name": "Troop 1"},
            headers={"X-Actor-Id": "x", "X-Actor-Role": "superuser"},
        )

        assert response.status_code == 403

    def test_parent_refused(self, client: TestClient, unit: str) -> None:
        response = client.post(
            "/api/scout-accounts",
            json={"unit_id": unit, "scout_name": "Scout 1"},
            headers=PARENT,
        )

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    def test_reads_need_no_headers(self, client: TestClient, unit: str) -> None:
        response = client.get(f"/api/units/{unit}")

        assert response.status_code == 200
        assert response.json()["name"] == "Troop 42"
        assert response.json()["processing_fee_percent"] == "0.026"


class TestBillingFlow:
    """Bill, pay, void over HTTP"""

    def test_bill_and_void(self, client: TestClient, unit: str) -> None:
        scouts = [_create_scout(client, unit, f"Scout {i}") for i in range(1, 4)]

        response = client.post(
            "/api/billing",
            json={
                "unit_id": unit,
                "description": "Campout",
                "total_amount": "100.00",
                "scout_account_ids": scouts,
            },
            headers=TREASURER,
        )
        assert response.status_code == 201
        record_id = response.json()["id"]

        record = client.get(f"/api/billing/{record_id}").json()
        assert [c["amount"] for c in record["charges"]] == ["33.34", "33.33", "33.33"]
        account = client.get(f"/api/scout-accounts/{scouts[0]}").json()
        assert account["billing_balance"] == "-33.34"

        response = client.post(
            f"/api/billing/{record_id}/void",
            json={"reason": "Rained out"},
            headers=TREASURER,
        )
        assert response.status_code == 200
        assert len(response.json()["entry_ids"]) == 1

        response = client.post(
            f"/api/billing/{record_id}/void",
            json={"reason": "Again"},
            headers=TREASURER,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "already_void"

        assert client.get("/api/ledger/verify", params={"unit_id": unit}).json() == []

    def test_empty_reason(self, client: TestClient, unit: str) -> None:
        scout = _create_scout(client, unit, "Scout 1")
        record_id = client.post(
            "/api/billing",
            json={"unit_id": unit, "description": "Dues", "total_amount": "10.00", "scout_account_ids": [scout]},
            headers=TREASURER,
        ).json()["id"]

        response = client.post(f"/api/billing/{record_id}/void", json={"reason": " "}, headers=TREASURER)

        assert response.status_code == 422
        assert response.json()["error"] == "reason_required"

    def test_unknown_record(self, client: TestClient) -> None:
        response = client.get("/api/billing/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestPayments:
    def test_card_capture(self, client: TestClient, unit: str) -> None:
        scout = _create_scout(client, unit, "Scout 1")

        response = client.post(
            "/api/payments/card",
            json={"scout_account_id": scout, "amount": "40.00", "source_token": "cnon:card-ok"},
            headers=TREASURER,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["fee_amount"] == "1.14"
        assert body["net_amount"] == "38.86"
        assert body["method"] == "card"

    def test_card_declined(self, client: TestClient, unit: str, gateway) -> None:
        scout = _create_scout(client, unit, "Scout 1")
        gateway.state.decline_next = True

        response = client.post(
            "/api/payments/card",
            json={"scout_account_id": scout, "amount": "40.00", "source_token": "cnon:card-ok"},
            headers=TREASURER,
        )

        assert response.status_code == 502
        assert response.json()["error"] == "external_capture_failed"
        assert response.json()["processor_error"] == "CARD_DECLINED"
        assert client.get("/api/payments", params={"unit_id": unit}).json() == []

    def test_invalid_amount(self, client: TestClient, unit: str) -> None:
        scout = _create_scout(client, unit, "Scout 1")

        response = client.post(
            "/api/payments",
            json={"scout_account_id": scout, "amount": "-1.00", "method": "cash"},
            headers=TREASURER,
        )

        assert response.status_code == 422
        assert response.json()["error"] == "invalid_amount"

    def test_insufficient_funds(self, client: TestClient, unit: str) -> None:
        scout = _create_scout(client, unit, "Scout 1")

        response = client.post(
            "/api/transfers/funds-to-billing",
            json={"scout_account_id": scout, "amount": "1.00"},
            headers=TREASURER,
        )

        assert response.status_code == 422
        assert response.json()["error"] == "insufficient_funds"


class TestReconciliation:
    def test_sync_link_reconcile(self, client: TestClient, unit: str, feed) -> None:
        scout = _create_scout(client, unit, "Scout 1")
        feed.add("sq-1", 4000, 114)

        response = client.post("/api/reconciliation/sync", params={"unit_id": unit}, headers=TREASURER)
        assert response.status_code == 200
        tx_id = response.json()["transaction_ids"][0]

        response = client.post(f"/api/reconciliation/transactions/{tx_id}/reconcile", headers=TREASURER)
        assert response.status_code == 409

        response = client.post(
            f"/api/reconciliation/transactions/{tx_id}/link",
            json={"scout_account_id": scout},
            headers=TREASURER,
        )
        assert response.status_code == 204

        response = client.post(f"/api/reconciliation/transactions/{tx_id}/reconcile", headers=TREASURER)
        assert response.status_code == 200
        payment_id = response.json()["id"]

        payment = client.get(f"/api/payments/{payment_id}").json()
        assert payment["square_payment_id"] == "sq-1"
        rows = client.get("/api/reconciliation/transactions", params={"unit_id": unit}).json()
        assert rows[0]["reconciliation_state"] == "reconciled"
