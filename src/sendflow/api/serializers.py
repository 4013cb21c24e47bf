from typing import Any, Dict, Optional

from sendflow.core.bill_payment import BillPaymentOutcome
from sendflow.core.claims import ClaimResult
from sendflow.core.fees import FeeQuote
from sendflow.core.orchestrator import Settlement, TransferOutcome
from sendflow.core.status import Status


def _money(value) -> Optional[float]:
    return float(value) if value is not None else None


def serialize_quote(q: FeeQuote) -> Dict[str, Any]:
    return {
        "amount": _money(q.amount),
        "fee": _money(q.fee),
        "total": _money(q.total),
        "rate": float(q.rate),
        "platform_commission": _money(q.platform_commission),
        "agent_commission": _money(q.agent_commission),
        "domestic": q.domestic,
    }


def _settlement_message(s: Settlement) -> str:
    if s.status is Status.PENDING:
        return f"Recipient not registered; funds held under claim code {s.claim_code}"
    return f"Transfer to {s.recipient_name or s.recipient_id} completed"


def serialize_transfer(o: TransferOutcome) -> Dict[str, Any]:
    s = o.settlement
    return {
        "success": True,
        "status": s.status.value,
        "state": o.state.value,
        "reference": o.reference,
        "transfer_id": s.transfer_id,
        "pending_id": s.pending_id,
        "claim_code": s.claim_code,
        "recipient_id": s.recipient_id,
        "recipient_name": s.recipient_name,
        "amount": _money(o.amount),
        "fee": _money(o.fee),
        "total": _money(o.total),
        "new_balance": _money(o.new_balance),
        "message": _settlement_message(s),
    }


def serialize_bill_payment(o: BillPaymentOutcome) -> Dict[str, Any]:
    s = o.settlement
    message = "Bill payment successful"
    if s is not None:
        message = f"{message}. {_settlement_message(s)}"
    return {
        "success": True,
        "message": message,
        "reference": o.reference,
        "bill_id": o.bill_id,
        "amount": _money(o.amount),
        "fee": _money(o.fee),
        "total": _money(o.total),
        "new_balance": _money(o.new_balance),
        "transfer_status": s.status.value if s else None,
        "claim_code": s.claim_code if s else None,
        "recipient_id": s.recipient_id if s else None,
    }


def serialize_claim(r: ClaimResult) -> Dict[str, Any]:
    if r.status is Status.CANCELLED:
        message = "Pending transfer cancelled; sender refunded"
    else:
        message = "Pending transfer claimed"
    return {
        "success": True,
        "status": r.status.value,
        "pending_id": r.pending.id,
        "beneficiary_id": r.beneficiary_id,
        "amount": _money(r.amount),
        "new_balance": _money(r.new_balance),
        "transfer_id": r.transfer_id,
        "message": message,
    }
