"""
Domain records exchanged between the core and the store adapters.

Stores hand back these dataclasses regardless of backend so the core never
sees raw PostgREST payloads or ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from .status import Status


@dataclass
class Profile:
    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    role: Optional[str] = None
    balance: Optional[Decimal] = None
    created_at: Optional[datetime] = None


@dataclass
class TransferRecord:
    sender_id: str
    amount: Decimal
    fees: Decimal
    currency: str
    status: Status
    recipient_id: Optional[str] = None
    recipient_full_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    recipient_country: Optional[str] = None
    transfer_type: str = "transfer"
    claim_code: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "sender_id": self.sender_id,
            "recipient_id": self.recipient_id,
            "recipient_full_name": self.recipient_full_name,
            "recipient_phone": self.recipient_phone,
            "recipient_country": self.recipient_country,
            "amount": self.amount,
            "fees": self.fees,
            "currency": self.currency,
            "status": self.status.value,
            "transfer_type": self.transfer_type,
            "claim_code": self.claim_code,
        }


@dataclass
class PendingTransfer:
    sender_id: str
    recipient_phone: str
    amount: Decimal
    fees: Decimal
    currency: str
    claim_code: str
    status: Status = Status.PENDING
    recipient_email: str = ""
    id: Optional[str] = None
    claimed_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def total(self) -> Decimal:
        return self.amount + self.fees

    def to_row(self) -> Dict[str, Any]:
        return {
            "sender_id": self.sender_id,
            "recipient_phone": self.recipient_phone,
            "recipient_email": self.recipient_email,
            "amount": self.amount,
            "fees": self.fees,
            "currency": self.currency,
            "claim_code": self.claim_code,
            "status": self.status.value,
        }


@dataclass
class Bill:
    id: str
    user_id: Optional[str] = None
    bill_name: Optional[str] = None
    amount: Optional[Decimal] = None
    status: Optional[Status] = None


@dataclass
class AuditEntry:
    action: str
    user_id: Optional[str] = None
    amount: Optional[Decimal] = None
    operation_type: Optional[str] = None
    performed_by: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
