"""
LedgerStore port: everything the core needs from the hosted platform.

Adapters:
- SupabaseStore: PostgREST + RPC over httpx (production)
- SqlStore: SQLAlchemy async (local development, integration tests)

Contract shared by all adapters:
- increment_balance is the only balance write. It is atomic, rejects a result
  below zero with InsufficientFundsError, raises AccountNotFoundError for an
  unknown profile and records an audit trail entry.
- transition_pending_transfer is a conditional update; it returns None when
  the row is not in the expected status any more.
- Transport/platform failures surface as RemoteCallFailure.
"""

from __future__ import annotations

import abc
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sendflow.core.models import AuditEntry, Bill, PendingTransfer, Profile, TransferRecord
from sendflow.core.status import Status


class LedgerStore(abc.ABC):
    @abc.abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Profile]:
        ...

    @abc.abstractmethod
    async def increment_balance(
        self,
        user_id: str,
        amount: Decimal,
        operation_type: str,
        performed_by: Optional[str],
    ) -> Decimal:
        ...

    @abc.abstractmethod
    async def find_recipient(self, search_term: str) -> List[Profile]:
        """Candidate profiles for a phone or e-mail search term."""

    @abc.abstractmethod
    async def insert_transfer(self, record: TransferRecord) -> TransferRecord:
        ...

    @abc.abstractmethod
    async def sum_completed_transfers(self, sender_id: str, start: datetime, end: datetime) -> Decimal:
        ...

    @abc.abstractmethod
    async def insert_pending_transfer(self, pending: PendingTransfer) -> PendingTransfer:
        ...

    @abc.abstractmethod
    async def claim_code_exists(self, claim_code: str) -> bool:
        ...

    @abc.abstractmethod
    async def get_pending_transfer(self, claim_code: str) -> Optional[PendingTransfer]:
        ...

    @abc.abstractmethod
    async def transition_pending_transfer(
        self,
        pending_id: str,
        from_status: Status,
        to_status: Status,
        performed_by: Optional[str],
    ) -> Optional[PendingTransfer]:
        ...

    @abc.abstractmethod
    async def get_bill(self, bill_id: str) -> Optional[Bill]:
        ...

    @abc.abstractmethod
    async def mark_bill_paid(self, bill_id: str, paid_at: datetime) -> None:
        ...

    @abc.abstractmethod
    async def insert_bill(
        self,
        user_id: str,
        bill_name: str,
        amount: Decimal,
        payment_number: str,
        meter_number: str,
        paid_at: datetime,
    ) -> Bill:
        ...

    @abc.abstractmethod
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
        ...

    @abc.abstractmethod
    async def insert_merchant_payment(
        self,
        user_id: str,
        merchant_id: str,
        amount: Decimal,
        business_name: str,
        description: str,
    ) -> None:
        ...

    @abc.abstractmethod
    async def insert_audit_log(self, entry: AuditEntry) -> None:
        ...

    async def close(self) -> None:
        return None
