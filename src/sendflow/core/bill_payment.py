"""
Bill payment processing (the process-bill-payment endpoint).

balance check -> debit amount + fee -> mark bill paid (or record an ad-hoc
bill) -> optional instant settlement to a provider phone -> payment history.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from sendflow.core.fees import FeeQuote, calculate_bill_fee
from sendflow.core.orchestrator import Settlement, TransferOrchestrator
from sendflow.core.saga import Saga
from sendflow.core.states import StateTracker
from sendflow.core.status import Status
from sendflow.errors import (
    BillAlreadyPaidError,
    BillNotFoundError,
    RollbackFailure,
    TransferAborted,
    ValidationError,
)
from sendflow.logging_config import get_logger

logger = get_logger("sendflow.bill_payment")


@dataclass
class BillPaymentRequest:
    user_id: str
    amount: Any
    bill_id: Optional[str] = None
    bill_type: Optional[str] = None
    provider: Optional[str] = None
    account_number: Optional[str] = None
    recipient_phone: Optional[str] = None
    country_code: Optional[str] = None
    performed_by: Optional[str] = None


@dataclass
class BillPaymentOutcome:
    reference: str
    bill_id: Optional[str]
    quote: FeeQuote
    new_balance: Decimal
    settlement: Optional[Settlement] = None
    history_recorded: bool = True
    states: List[str] = field(default_factory=list)

    @property
    def amount(self) -> Decimal:
        return self.quote.amount

    @property
    def fee(self) -> Decimal:
        return self.quote.fee

    @property
    def total(self) -> Decimal:
        return self.quote.total


class BillPaymentProcessor:
    def __init__(self, orchestrator: TransferOrchestrator):
        self.orchestrator = orchestrator
        self.store = orchestrator.store

    async def process(self, request: BillPaymentRequest) -> BillPaymentOutcome:
        if not request.user_id:
            raise ValidationError("Missing required parameters: user_id")
        if not request.bill_id and not request.bill_type:
            raise ValidationError("Missing required parameters: bill_id or bill_type")
        quote = calculate_bill_fee(request.amount, self.orchestrator.fee_schedule)

        profile = await self.orchestrator.load_sender(request.user_id)
        if request.bill_id:
            bill = await self.store.get_bill(request.bill_id)
            # another user's bill is reported as missing
            if bill is None or (bill.user_id and bill.user_id != profile.id):
                raise BillNotFoundError()
            if bill.status is Status.PAID:
                raise BillAlreadyPaidError()
        self.orchestrator.ensure_funds(profile, quote.total)

        reference = uuid.uuid4().hex
        performed_by = request.performed_by or profile.id
        tracker = StateTracker(reference)
        saga = Saga("bill_payment", reference=reference)
        now = datetime.now(timezone.utc)
        logger.info(
            "Bill payment %s start user=%s bill=%s type=%s amount=%s fee=%s",
            reference,
            profile.id,
            request.bill_id,
            request.bill_type,
            quote.amount,
            quote.fee,
        )

        try:
            new_balance = await self.orchestrator.debit(
                saga, tracker, profile.id, quote.total, "bill_payment", performed_by
            )
            bill_id = await self._settle_bill(saga, request, profile.id, quote, now)

            settlement = None
            if request.recipient_phone and request.recipient_phone.strip():
                settlement = await self.orchestrator.settle(
                    saga,
                    tracker,
                    sender_id=profile.id,
                    identifier=request.recipient_phone.strip(),
                    country_code=request.country_code,
                    amount=quote.amount,
                    fee=quote.fee,
                    currency=self.orchestrator.currency,
                    performed_by=performed_by,
                    transfer_type="bill_payment",
                    merchant_name=request.provider,
                    merchant_description=f"Bill payment {request.bill_type or 'manual'} - fee {quote.fee}",
                )
        except TransferAborted as exc:
            await self.orchestrator.record_failure(tracker, exc, profile.id, quote.total, performed_by)
            # debit refunded after a concurrent payment marked the bill first
            if isinstance(exc.cause, BillAlreadyPaidError) and not isinstance(exc, RollbackFailure):
                raise exc.cause from exc
            raise

        history = await saga.run_step(
            "record_history",
            lambda: self._record_history(bill_id, profile, quote, new_balance, now),
            critical=False,
        )
        logger.info("Bill payment %s completed state=%s", reference, tracker.state.value)
        return BillPaymentOutcome(
            reference=reference,
            bill_id=bill_id,
            quote=quote,
            new_balance=new_balance,
            settlement=settlement,
            history_recorded=history is not None,
            states=tracker.states(),
        )

    async def _settle_bill(
        self,
        saga: Saga,
        request: BillPaymentRequest,
        user_id: str,
        quote: FeeQuote,
        now: datetime,
    ) -> Optional[str]:
        if request.bill_id:
            await saga.run_step("mark_bill_paid", lambda: self.store.mark_bill_paid(request.bill_id, now))
            return request.bill_id

        bill = await saga.run_step(
            "record_bill",
            lambda: self.store.insert_bill(
                user_id,
                f"{request.bill_type}_{request.provider or 'manual'}",
                quote.amount,
                request.recipient_phone or "",
                request.account_number or "",
                now,
            ),
        )
        return bill.id

    async def _record_history(self, bill_id, profile, quote: FeeQuote, new_balance: Decimal, now: datetime) -> bool:
        await self.store.insert_bill_payment_history(
            bill_id,
            profile.id,
            quote.amount,
            quote.fee,
            profile.balance,
            new_balance,
            now,
        )
        return True
