"""
Supabase adapter: PostgREST tables and RPCs over a shared httpx.AsyncClient.

Environment:
  SUPABASE_URL               project URL (https://<ref>.supabase.co)
  SUPABASE_SERVICE_ROLE_KEY  service role key (bypasses RLS; server side only)
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from sendflow.core.models import AuditEntry, Bill, PendingTransfer, Profile, TransferRecord
from sendflow.core.status import Status, parse_status, parse_status_or_none
from sendflow.errors import (
    AccountNotFoundError,
    BillAlreadyPaidError,
    BillNotFoundError,
    InsufficientFundsError,
    RemoteCallFailure,
)
from sendflow.logging_config import get_logger
from sendflow.store.base import LedgerStore

logger = get_logger("sendflow.store.supabase")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Status):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def _parse_dt(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def profile_from_row(row: Dict[str, Any]) -> Profile:
    return Profile(
        id=str(row["id"]),
        full_name=row.get("full_name"),
        phone=row.get("phone"),
        email=row.get("email"),
        country=row.get("country"),
        role=row.get("role"),
        balance=_to_decimal(row.get("balance")),
        created_at=_parse_dt(row.get("created_at")),
    )


def pending_from_row(row: Dict[str, Any]) -> PendingTransfer:
    return PendingTransfer(
        id=str(row["id"]),
        sender_id=str(row["sender_id"]),
        recipient_phone=row.get("recipient_phone") or "",
        recipient_email=row.get("recipient_email") or "",
        amount=_to_decimal(row.get("amount")) or Decimal("0"),
        fees=_to_decimal(row.get("fees")) or Decimal("0"),
        currency=row.get("currency") or "XAF",
        claim_code=row.get("claim_code") or "",
        status=parse_status(row.get("status")),
        claimed_by=row.get("claimed_by"),
        created_at=_parse_dt(row.get("created_at")),
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return " ".join(str(body.get(k) or "") for k in ("message", "details", "hint")).strip() or response.text
    return response.text


class SupabaseStore(LedgerStore):
    def __init__(
        self,
        url: str,
        service_role_key: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except Exception:
            logger.exception("Error closing httpx client")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Any] = None,
        payload: Optional[Any] = None,
        prefer: Optional[str] = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        content = json.dumps(payload, default=_json_default) if payload is not None else None
        try:
            resp = await self._client.request(method, url, params=params, content=content, headers=headers)
        except httpx.RequestError as e:
            logger.exception("Supabase %s %s unreachable: %s", method, path, e)
            raise RemoteCallFailure(f"Platform unreachable: {e.__class__.__name__}")

        logger.info("Supabase %s %s -> %s", method.upper(), path, resp.status_code)
        if resp.status_code >= 400:
            message = _error_message(resp)
            lowered = message.lower()
            if "insufficient" in lowered:
                raise InsufficientFundsError()
            if "user not found" in lowered or "profile not found" in lowered:
                raise AccountNotFoundError()
            logger.error("Supabase %s %s failed: %s %s", method, path, resp.status_code, message)
            raise RemoteCallFailure(f"Platform error {resp.status_code}: {message}")

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            raise RemoteCallFailure("Platform returned a non-JSON response")

    async def _select(self, table: str, params: List[tuple]) -> List[Dict[str, Any]]:
        rows = await self._request("GET", table, params=params)
        return rows or []

    async def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request("POST", table, payload=row, prefer="return=representation")
        if not rows:
            raise RemoteCallFailure(f"Insert into {table} returned no row")
        return rows[0] if isinstance(rows, list) else rows

    async def _rpc(self, function: str, args: Dict[str, Any]) -> Any:
        return await self._request("POST", f"rpc/{function}", payload=args)

    # -- profiles / ledger -------------------------------------------------

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        rows = await self._select("profiles", [("select", "*"), ("id", f"eq.{user_id}"), ("limit", "1")])
        return profile_from_row(rows[0]) if rows else None

    async def increment_balance(
        self,
        user_id: str,
        amount: Decimal,
        operation_type: str,
        performed_by: Optional[str],
    ) -> Decimal:
        result = await self._rpc(
            "secure_increment_balance",
            {
                "target_user_id": user_id,
                "amount": amount,
                "operation_type": operation_type,
                "performed_by": performed_by,
            },
        )
        if result is None:
            raise RemoteCallFailure("secure_increment_balance returned no balance")
        return Decimal(str(result))

    async def find_recipient(self, search_term: str) -> List[Profile]:
        rows = await self._rpc("find_recipient", {"search_term": search_term})
        return [profile_from_row(r) for r in (rows or [])]

    # -- transfers ---------------------------------------------------------

    async def insert_transfer(self, record: TransferRecord) -> TransferRecord:
        row = await self._insert("transfers", record.to_row())
        record.id = str(row.get("id")) if row.get("id") is not None else None
        record.created_at = _parse_dt(row.get("created_at"))
        return record

    async def sum_completed_transfers(self, sender_id: str, start: datetime, end: datetime) -> Decimal:
        rows = await self._select(
            "transfers",
            [
                ("select", "amount"),
                ("sender_id", f"eq.{sender_id}"),
                ("status", f"eq.{Status.COMPLETED.value}"),
                ("created_at", f"gte.{start.isoformat()}"),
                ("created_at", f"lt.{end.isoformat()}"),
            ],
        )
        return sum((Decimal(str(r.get("amount") or 0)) for r in rows), Decimal("0"))

    # -- pending transfers -------------------------------------------------

    async def insert_pending_transfer(self, pending: PendingTransfer) -> PendingTransfer:
        row = await self._insert("pending_transfers", pending.to_row())
        return pending_from_row({**pending.to_row(), **row})

    async def claim_code_exists(self, claim_code: str) -> bool:
        rows = await self._select(
            "pending_transfers",
            [("select", "id"), ("claim_code", f"eq.{claim_code}"), ("limit", "1")],
        )
        return bool(rows)

    async def get_pending_transfer(self, claim_code: str) -> Optional[PendingTransfer]:
        rows = await self._select(
            "pending_transfers",
            [("select", "*"), ("claim_code", f"eq.{claim_code}"), ("limit", "1")],
        )
        return pending_from_row(rows[0]) if rows else None

    async def transition_pending_transfer(
        self,
        pending_id: str,
        from_status: Status,
        to_status: Status,
        performed_by: Optional[str],
    ) -> Optional[PendingTransfer]:
        now = datetime.now(timezone.utc).isoformat()
        values: Dict[str, Any] = {"status": to_status.value, "updated_at": now}
        if to_status is Status.COMPLETED:
            values.update(claimed_by=performed_by, claimed_at=now)
        elif to_status is Status.CANCELLED:
            values.update(cancelled_by=performed_by, cancelled_at=now)
        rows = await self._request(
            "PATCH",
            "pending_transfers",
            params=[("id", f"eq.{pending_id}"), ("status", f"eq.{from_status.value}")],
            payload=values,
            prefer="return=representation",
        )
        return pending_from_row(rows[0]) if rows else None

    # -- bills -------------------------------------------------------------

    async def get_bill(self, bill_id: str) -> Optional[Bill]:
        rows = await self._select("automatic_bills", [("select", "*"), ("id", f"eq.{bill_id}"), ("limit", "1")])
        if not rows:
            return None
        row = rows[0]
        return Bill(
            id=str(row["id"]),
            user_id=row.get("user_id"),
            bill_name=row.get("bill_name"),
            amount=_to_decimal(row.get("amount")),
            status=parse_status_or_none(row.get("status")),
        )

    async def mark_bill_paid(self, bill_id: str, paid_at: datetime) -> None:
        rows = await self._request(
            "PATCH",
            "automatic_bills",
            params=[("id", f"eq.{bill_id}"), ("or", f"(status.is.null,status.neq.{Status.PAID.value})")],
            payload={"status": Status.PAID.value, "last_payment_date": paid_at, "payment_attempts": 0},
            prefer="return=representation",
        )
        if not rows:
            if await self.get_bill(bill_id) is not None:
                raise BillAlreadyPaidError()
            raise BillNotFoundError()

    async def insert_bill(
        self,
        user_id: str,
        bill_name: str,
        amount: Decimal,
        payment_number: str,
        meter_number: str,
        paid_at: datetime,
    ) -> Bill:
        row = await self._insert(
            "automatic_bills",
            {
                "user_id": user_id,
                "bill_name": bill_name,
                "amount": amount,
                "status": Status.PAID.value,
                "payment_number": payment_number,
                "meter_number": meter_number,
                "due_date": paid_at.date(),
                "recurrence": "once",
                "last_payment_date": paid_at,
            },
        )
        return Bill(id=str(row.get("id")), user_id=user_id, bill_name=bill_name, amount=amount, status=Status.PAID)

    async def insert_bill_payment_history(
        self,
        bill_id: Optional[str],
        user_id: str,
        amount: Decimal,
        fees: Decimal,
        balance_before: Optional[Decimal],
        balance_after: Decimal,
        paid_at: datetime,
    ) -> None:
        await self._insert(
            "bill_payment_history",
            {
                "bill_id": bill_id,
                "user_id": user_id,
                "amount": amount,
                "fees": fees,
                "status": Status.COMPLETED.value,
                "balance_before": balance_before,
                "balance_after": balance_after,
                "attempt_number": 1,
                "payment_date": paid_at,
            },
        )

    async def insert_merchant_payment(
        self,
        user_id: str,
        merchant_id: str,
        amount: Decimal,
        business_name: str,
        description: str,
    ) -> None:
        await self._insert(
            "merchant_payments",
            {
                "user_id": user_id,
                "merchant_id": merchant_id,
                "amount": amount,
                "business_name": business_name,
                "description": description,
                "status": Status.COMPLETED.value,
            },
        )

    async def insert_audit_log(self, entry: AuditEntry) -> None:
        await self._insert(
            "audit_logs",
            {
                "action": entry.action,
                "user_id": entry.user_id,
                "amount": entry.amount,
                "operation_type": entry.operation_type,
                "performed_by": entry.performed_by,
                "details": entry.details,
            },
        )
