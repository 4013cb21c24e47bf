"""Tests for the HTTP endpoints."""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from sendflow.api.deps import get_store
from sendflow.app import app
from sendflow.core.models import Bill
from sendflow.errors import RemoteCallFailure
from tests.conftest import RECIPIENT_ID, SENDER_ID


@pytest.fixture
def client(store):
    store.profiles[SENDER_ID].balance = Decimal("20000")
    store.bills["bill-1"] = Bill(id="bill-1", user_id=SENDER_ID, bill_name="ENEO", amount=Decimal("10000"))
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.store = None


def test_health(client) -> None:
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


def test_bill_payment_success(client, store) -> None:
    resp = client.post("/process-bill-payment", json={"user_id": SENDER_ID, "amount": 10000, "bill_id": "bill-1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["amount"] == 10000
    assert body["fee"] == 150
    assert body["total"] == 10150
    assert body["new_balance"] == 9850
    assert store.balance(SENDER_ID) == Decimal("9850")


def test_bill_paid_twice_is_conflict(client, store) -> None:
    payload = {"user_id": SENDER_ID, "amount": 5000, "bill_id": "bill-1"}
    assert client.post("/process-bill-payment", json=payload).status_code == 200

    resp = client.post("/process-bill-payment", json=payload)
    assert resp.status_code == 409
    assert resp.json() == {"success": False, "message": "Bill is already paid"}
    assert store.balance(SENDER_ID) == Decimal("14925")


def test_error_body_is_documented(client) -> None:
    schema = client.get("/openapi.json").json()
    responses = schema["paths"]["/process-bill-payment"]["post"]["responses"]
    assert responses["409"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorOut")


def test_bill_payment_with_settlement(client) -> None:
    resp = client.post(
        "/process-bill-payment",
        json={"user_id": SENDER_ID, "amount": "2000", "bill_type": "water", "recipient_phone": "+33 7 11 22 33 44"},
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["transfer_status"] == "pending"
    assert len(body["claim_code"]) == 6


def test_bill_payment_rollback_returns_500(client, store) -> None:
    store.fail("mark_bill_paid", RemoteCallFailure("update failed"))
    resp = client.post("/process-bill-payment", json={"user_id": SENDER_ID, "amount": 10000, "bill_id": "bill-1"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert "funds were returned" in body["message"]
    assert store.balance(SENDER_ID) == Decimal("20000")


@pytest.mark.parametrize(
    "payload, status",
    [
        ({"user_id": SENDER_ID, "amount": 10000, "bill_id": "missing"}, 404),
        ({"user_id": "ghost", "amount": 10000, "bill_type": "water"}, 404),
        ({"user_id": SENDER_ID, "amount": 19900, "bill_id": "bill-1"}, 400),
        ({"user_id": SENDER_ID, "amount": -3, "bill_type": "water"}, 400),
        ({"amount": 100, "bill_type": "water"}, 400),
        ({"user_id": SENDER_ID, "amount": 100}, 400),
    ],
)
def test_bill_payment_errors(client, payload, status) -> None:
    resp = client.post("/process-bill-payment", json=payload)
    assert resp.status_code == status
    assert resp.json()["success"] is False


def test_bill_payment_malformed_body(client) -> None:
    resp = client.post(
        "/process-bill-payment",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
def test_bill_payment_other_methods(client, method) -> None:
    resp = client.request(method, "/process-bill-payment")
    assert resp.status_code == 405
    assert resp.json()["success"] is False


def test_money_transfer_to_registered_recipient(client, store) -> None:
    resp = client.post(
        "/process-money-transfer",
        json={
            "sender_id": SENDER_ID,
            "recipient_identifier": "+237670000002",
            "transfer_amount": 1000,
            "sender_country": "Cameroon",
            "recipient_country": "Cameroon",
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert body["state"] == "COMPLETED"
    assert body["fee"] == 15
    assert body["recipient_id"] == RECIPIENT_ID
    assert store.balance(RECIPIENT_ID) == Decimal("1500")


def test_money_transfer_then_cancel_claim(client, store) -> None:
    resp = client.post(
        "/process-money-transfer",
        json={"sender_id": SENDER_ID, "recipient_identifier": "+33 7 11 22 33 44", "transfer_amount": 1000},
    )
    body = resp.json()
    assert body["status"] == "pending"
    assert store.balance(SENDER_ID) == Decimal("18985")

    resp = client.post(
        "/pending-transfers/cancel",
        json={"claim_code": body["claim_code"], "performed_by": SENDER_ID},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert store.balance(SENDER_ID) == Decimal("20000")

    resp = client.post(
        "/pending-transfers/cancel",
        json={"claim_code": body["claim_code"], "performed_by": SENDER_ID},
    )
    assert resp.status_code == 409


def test_claim_endpoint(client, store) -> None:
    resp = client.post(
        "/process-money-transfer",
        json={"sender_id": SENDER_ID, "recipient_identifier": "0670000099", "transfer_amount": 1000},
    )
    code = resp.json()["claim_code"]
    store.profiles[RECIPIENT_ID].phone = "+237 670 000 099"

    resp = client.post("/pending-transfers/claim", json={"claim_code": code, "recipient_id": RECIPIENT_ID})
    assert resp.status_code == 200
    assert resp.json()["new_balance"] == 1500

    resp = client.post("/pending-transfers/claim", json={"claim_code": "NOPE99", "recipient_id": RECIPIENT_ID})
    assert resp.status_code == 404


def test_fee_quote(client) -> None:
    resp = client.get("/fees/quote", params={"amount": "100000", "sender_country": "CM", "recipient_country": "GA",
                                            "user_type": "agent"})
    assert resp.status_code == 200
    assert resp.json()["fee"] == 6500
    assert resp.json()["agent_commission"] == 650

    assert client.get("/fees/quote", params={"amount": "10000", "kind": "bill"}).json()["fee"] == 150
    assert client.get("/fees/quote", params={"amount": "-1"}).status_code == 400


def test_missing_platform_configuration(monkeypatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.setenv("SENDFLOW_BACKEND", "supabase")
    app.dependency_overrides.clear()
    app.state.store = None

    resp = TestClient(app).post("/process-bill-payment", json={"user_id": SENDER_ID, "amount": 100, "bill_id": "b"})
    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "message": "Server configuration missing: SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required",
    }
