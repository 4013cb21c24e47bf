"""Tests for the Supabase (PostgREST) store using httpx.MockTransport."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from sendflow.core.models import TransferRecord
from sendflow.core.status import Status
from sendflow.errors import (
    AccountNotFoundError,
    BillAlreadyPaidError,
    BillNotFoundError,
    InsufficientFundsError,
    RemoteCallFailure,
)
from sendflow.store.supabase_store import SupabaseStore

URL = "https://project.supabase.co"
KEY = "service-role-key"


def _store(handler) -> SupabaseStore:
    return SupabaseStore(URL, KEY, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def test_increment_calls_rpc_with_service_role_headers() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=8985.0)

    store = _store(handler)
    assert await store.increment_balance("u1", Decimal("-1015"), "transfer_debit", "u1") == Decimal("8985.0")

    [request] = seen
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/rpc/secure_increment_balance"
    assert request.headers["apikey"] == KEY
    assert request.headers["authorization"] == f"Bearer {KEY}"
    assert json.loads(request.content) == {
        "target_user_id": "u1",
        "amount": -1015.0,
        "operation_type": "transfer_debit",
        "performed_by": "u1",
    }
    await store.close()


@pytest.mark.parametrize(
    "message, error",
    [
        ("Insufficient balance", InsufficientFundsError),
        ("User not found", AccountNotFoundError),
        ("permission denied for function", RemoteCallFailure),
    ],
)
async def test_rpc_errors_are_mapped(message, error) -> None:
    store = _store(lambda request: httpx.Response(400, json={"message": message, "code": "P0001"}))
    with pytest.raises(error):
        await store.increment_balance("u1", Decimal("-1"), "transfer_debit", None)


async def test_transport_error_is_remote_call_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(RemoteCallFailure):
        await _store(handler).get_profile("u1")


async def test_get_profile_parses_row() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/profiles"
        assert request.url.params["id"] == "eq.u1"
        return httpx.Response(
            200,
            json=[{"id": "u1", "full_name": "Awa", "phone": "+237670000001", "balance": 10000, "country": "Cameroon",
                   "created_at": "2026-10-01T08:00:00Z"}],
        )

    profile = await _store(handler).get_profile("u1")
    assert profile.balance == Decimal("10000")
    assert profile.created_at.tzinfo is not None


async def test_get_profile_missing() -> None:
    assert await _store(lambda request: httpx.Response(200, json=[])).get_profile("u1") is None


async def test_find_recipient_rpc() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/rpc/find_recipient"
        assert json.loads(request.content) == {"search_term": "+237670000002"}
        return httpx.Response(200, json=[{"id": "u2", "full_name": "Bello", "phone": "+237670000002"}])

    [profile] = await _store(handler).find_recipient("+237670000002")
    assert profile.id == "u2"


async def test_insert_transfer_asks_for_representation() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["prefer"] == "return=representation"
        body = json.loads(request.content)
        assert body["status"] == "completed"
        assert body["amount"] == 1000.0
        return httpx.Response(201, json=[{**body, "id": "t1", "created_at": "2026-10-17T10:00:00+00:00"}])

    record = await _store(handler).insert_transfer(
        TransferRecord(sender_id="u1", recipient_id="u2", amount=Decimal("1000"), fees=Decimal("15"),
                       currency="XAF", status=Status.COMPLETED)
    )
    assert record.id == "t1"
    assert record.created_at is not None


async def test_transition_is_conditional_on_current_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.params["status"] == "eq.pending"
        assert request.url.params["id"] == "eq.p1"
        body = json.loads(request.content)
        assert body["status"] == "completed"
        assert body["claimed_by"] == "u2"
        return httpx.Response(200, json=[])

    store = _store(handler)
    assert await store.transition_pending_transfer("p1", Status.PENDING, Status.COMPLETED, "u2") is None


async def test_pending_row_with_legacy_status() -> None:
    row = {"id": "p1", "sender_id": "u1", "recipient_phone": "+33", "amount": "1000", "fees": "15",
           "currency": "XAF", "claim_code": "ABC123", "status": "success"}
    pending = await _store(lambda request: httpx.Response(200, json=[row])).get_pending_transfer("ABC123")
    assert pending.status is Status.COMPLETED
    assert pending.total == Decimal("1015")


async def test_mark_bill_paid_without_match_is_not_found() -> None:
    with pytest.raises(BillNotFoundError):
        await _store(lambda request: httpx.Response(200, json=[])).mark_bill_paid("b1", datetime.now(timezone.utc))


async def test_mark_bill_paid_skips_paid_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            assert request.url.params["or"] == "(status.is.null,status.neq.paid)"
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"id": "b1", "user_id": "u1", "status": "paid"}])

    with pytest.raises(BillAlreadyPaidError):
        await _store(handler).mark_bill_paid("b1", datetime.now(timezone.utc))


async def test_sum_completed_transfers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["status"] == "eq.completed"
        return httpx.Response(200, json=[{"amount": 1000}, {"amount": "250.50"}])

    start = datetime.now(timezone.utc)
    assert await _store(handler).sum_completed_transfers("u1", start, start) == Decimal("1250.50")

