"""
SQLAlchemy adapter over the same tables the hosted platform exposes.

Used for local development and integration tests (sqlite+aiosqlite) or any
Postgres reachable through DATABASE_URL. Balance increments lock the profile
row with FOR UPDATE and write the audit row in the same transaction.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sendflow.core.models import AuditEntry, Bill, PendingTransfer, Profile, TransferRecord
from sendflow.core.status import Status, parse_status, parse_status_or_none
from sendflow.db import models
from sendflow.errors import (
    AccountNotFoundError,
    BillAlreadyPaidError,
    BillNotFoundError,
    ClaimCodeCollisionError,
    InsufficientFundsError,
    RemoteCallFailure,
    SendFlowError,
)
from sendflow.logging_config import get_logger
from sendflow.store.base import LedgerStore

logger = get_logger("sendflow.store.sql")

_MONEY = Decimal("0.01")
_NON_DIGITS = re.compile(r"\D")


def _profile(row: models.Profile) -> Profile:
    return Profile(
        id=row.id,
        full_name=row.full_name,
        phone=row.phone,
        email=row.email,
        country=row.country,
        role=row.role,
        balance=Decimal(row.balance) if row.balance is not None else None,
        created_at=row.created_at,
    )


def _pending(row: models.PendingTransfer) -> PendingTransfer:
    return PendingTransfer(
        id=row.id,
        sender_id=row.sender_id,
        recipient_phone=row.recipient_phone,
        recipient_email=row.recipient_email or "",
        amount=Decimal(row.amount),
        fees=Decimal(row.fees or 0),
        currency=row.currency,
        claim_code=row.claim_code,
        status=parse_status(row.status),
        claimed_by=row.claimed_by,
        created_at=row.created_at,
    )


def _bill(row: models.AutomaticBill) -> Bill:
    return Bill(
        id=row.id,
        user_id=row.user_id,
        bill_name=row.bill_name,
        amount=Decimal(row.amount) if row.amount is not None else None,
        status=parse_status_or_none(row.status),
    )


def _stripped_phone():
    # phone with spaces, '+' and '-' removed, computed in SQL
    return func.replace(func.replace(func.replace(models.Profile.phone, " ", ""), "+", ""), "-", "")


class SqlStore(LedgerStore):
    def __init__(self, session_factory, engine=None):
        self.session_factory = session_factory
        self.engine = engine

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

    async def _run(self, label: str, fn):
        """
        Run fn(session) inside one transaction; database errors become
        RemoteCallFailure, domain errors propagate unchanged.
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    return await fn(session)
        except SendFlowError:
            raise
        except SQLAlchemyError as e:
            logger.exception("SQL %s failed: %s", label, e)
            raise RemoteCallFailure(f"Database error during {label}")

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        async def _get(session):
            row = await session.get(models.Profile, user_id)
            return _profile(row) if row else None

        return await self._run("get_profile", _get)

    async def increment_balance(
        self,
        user_id: str,
        amount: Decimal,
        operation_type: str,
        performed_by: Optional[str],
    ) -> Decimal:
        async def _increment(session):
            res = await session.execute(
                select(models.Profile).where(models.Profile.id == user_id).with_for_update()
            )
            profile = res.scalars().first()
            if not profile:
                raise AccountNotFoundError()

            current = Decimal(profile.balance or 0)
            new_balance = (current + Decimal(amount)).quantize(_MONEY)
            if new_balance < 0:
                logger.warning(
                    "Increment rejected user=%s balance=%s delta=%s",
                    user_id,
                    current,
                    amount,
                )
                raise InsufficientFundsError()

            await session.execute(
                update(models.Profile)
                .where(models.Profile.id == user_id)
                .values(balance=new_balance, updated_at=func.now())
            )
            session.add(
                models.AuditLog(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    action="balance_increment",
                    amount=Decimal(amount),
                    operation_type=operation_type,
                    performed_by=performed_by,
                    balance_after=new_balance,
                    details={"balance_before": str(current)},
                )
            )
            return new_balance

        return await self._run("increment_balance", _increment)

    async def find_recipient(self, search_term: str) -> List[Profile]:
        term = (search_term or "").strip()
        digits = _NON_DIGITS.sub("", term)
        clauses = [models.Profile.phone == term]
        if "@" in term:
            clauses.append(func.lower(models.Profile.email) == term.lower())
        elif digits:
            clauses.append(_stripped_phone().like(f"%{digits[-8:]}%"))

        async def _find(session):
            res = await session.execute(select(models.Profile).where(or_(*clauses)).order_by(models.Profile.id))
            return [_profile(r) for r in res.scalars().all()]

        return await self._run("find_recipient", _find)

    async def insert_transfer(self, record: TransferRecord) -> TransferRecord:
        now = datetime.now(timezone.utc)

        async def _insert(session):
            row = models.Transfer(id=str(uuid.uuid4()), created_at=now, **record.to_row())
            session.add(row)
            await session.flush()
            return row.id

        record.id = await self._run("insert_transfer", _insert)
        record.created_at = now
        return record

    async def sum_completed_transfers(self, sender_id: str, start: datetime, end: datetime) -> Decimal:
        async def _sum(session):
            res = await session.execute(
                select(func.coalesce(func.sum(models.Transfer.amount), 0)).where(
                    models.Transfer.sender_id == sender_id,
                    models.Transfer.status == Status.COMPLETED.value,
                    models.Transfer.created_at >= start,
                    models.Transfer.created_at < end,
                )
            )
            return Decimal(str(res.scalar() or 0))

        return await self._run("sum_completed_transfers", _sum)

    async def insert_pending_transfer(self, pending: PendingTransfer) -> PendingTransfer:
        async def _insert(session):
            row = models.PendingTransfer(id=str(uuid.uuid4()), **pending.to_row())
            session.add(row)
            try:
                await session.flush()
            except IntegrityError:
                # unique claim_code
                raise ClaimCodeCollisionError()
            return row.id

        pending.id = await self._run("insert_pending_transfer", _insert)
        return pending

    async def claim_code_exists(self, claim_code: str) -> bool:
        async def _exists(session):
            res = await session.execute(
                select(models.PendingTransfer.id).where(models.PendingTransfer.claim_code == claim_code).limit(1)
            )
            return res.first() is not None

        return await self._run("claim_code_exists", _exists)

    async def get_pending_transfer(self, claim_code: str) -> Optional[PendingTransfer]:
        async def _get(session):
            res = await session.execute(
                select(models.PendingTransfer).where(models.PendingTransfer.claim_code == claim_code)
            )
            row = res.scalars().first()
            return _pending(row) if row else None

        return await self._run("get_pending_transfer", _get)

    async def transition_pending_transfer(
        self,
        pending_id: str,
        from_status: Status,
        to_status: Status,
        performed_by: Optional[str],
    ) -> Optional[PendingTransfer]:
        now = datetime.now(timezone.utc)
        values: Dict[str, Any] = {"status": to_status.value, "updated_at": now}
        if to_status is Status.COMPLETED:
            values.update(claimed_by=performed_by, claimed_at=now)
        elif to_status is Status.CANCELLED:
            values.update(cancelled_by=performed_by, cancelled_at=now)

        async def _transition(session):
            res = await session.execute(
                update(models.PendingTransfer)
                .where(
                    models.PendingTransfer.id == pending_id,
                    models.PendingTransfer.status == from_status.value,
                )
                .values(**values)
            )
            if res.rowcount != 1:
                return None
            row = await session.get(models.PendingTransfer, pending_id, populate_existing=True)
            return _pending(row)

        return await self._run("transition_pending_transfer", _transition)

    async def get_bill(self, bill_id: str) -> Optional[Bill]:
        async def _get(session):
            row = await session.get(models.AutomaticBill, bill_id)
            return _bill(row) if row else None

        return await self._run("get_bill", _get)

    async def mark_bill_paid(self, bill_id: str, paid_at: datetime) -> None:
        async def _mark(session):
            res = await session.execute(
                update(models.AutomaticBill)
                .where(
                    models.AutomaticBill.id == bill_id,
                    or_(
                        models.AutomaticBill.status.is_(None),
                        models.AutomaticBill.status != Status.PAID.value,
                    ),
                )
                .values(status=Status.PAID.value, last_payment_date=paid_at, payment_attempts=0)
            )
            if res.rowcount != 1:
                if await session.get(models.AutomaticBill, bill_id) is not None:
                    raise BillAlreadyPaidError()
                raise BillNotFoundError()

        await self._run("mark_bill_paid", _mark)

    async def insert_bill(
        self,
        user_id: str,
        bill_name: str,
        amount: Decimal,
        payment_number: str,
        meter_number: str,
        paid_at: datetime,
    ) -> Bill:
        async def _insert(session):
            row = models.AutomaticBill(
                id=str(uuid.uuid4()),
                user_id=user_id,
                bill_name=bill_name,
                amount=amount,
                status=Status.PAID.value,
                payment_number=payment_number,
                meter_number=meter_number,
                due_date=paid_at.date(),
                recurrence="once",
                last_payment_date=paid_at,
            )
            session.add(row)
            await session.flush()
            return _bill(row)

        return await self._run("insert_bill", _insert)

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
        async def _insert(session):
            session.add(
                models.BillPaymentHistory(
                    id=str(uuid.uuid4()),
                    bill_id=bill_id,
                    user_id=user_id,
                    amount=amount,
                    fees=fees,
                    status=Status.COMPLETED.value,
                    balance_before=balance_before,
                    balance_after=balance_after,
                    attempt_number=1,
                    payment_date=paid_at,
                )
            )

        await self._run("insert_bill_payment_history", _insert)

    async def insert_merchant_payment(
        self,
        user_id: str,
        merchant_id: str,
        amount: Decimal,
        business_name: str,
        description: str,
    ) -> None:
        async def _insert(session):
            session.add(
                models.MerchantPayment(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    merchant_id=merchant_id,
                    amount=amount,
                    business_name=business_name,
                    description=description,
                    status=Status.COMPLETED.value,
                )
            )

        await self._run("insert_merchant_payment", _insert)

    async def insert_audit_log(self, entry: AuditEntry) -> None:
        async def _insert(session):
            session.add(
                models.AuditLog(
                    id=str(uuid.uuid4()),
                    user_id=entry.user_id,
                    action=entry.action,
                    amount=entry.amount,
                    operation_type=entry.operation_type,
                    performed_by=entry.performed_by,
                    details=entry.details,
                )
            )

        await self._run("insert_audit_log", _insert)
