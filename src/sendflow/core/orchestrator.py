"""
Transfer Orchestrator.

    INITIATED -> DEBITED -> RESOLVED -> CREDITED -> COMPLETED
                         -> UNRESOLVED -> PENDING_CLAIM
    any post-debit state -> FAILED -> ROLLED_BACK | ROLLBACK_FAILED

Every identity/corridor value arrives on the request; nothing is read from
an ambient session. Checks that can fail without touching money (amount,
sender, limit, known balance) run before the debit. Everything after the
debit runs inside a Saga so a failure returns the funds structurally.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sendflow.core.claims import ClaimIssuer
from sendflow.core.fees import DEFAULT_FEE_SCHEDULE, FeeQuote, FeeSchedule, calculate_fee
from sendflow.core.ledger import LedgerAccessor
from sendflow.core.limits import MonthlyLimitGuard
from sendflow.core.models import AuditEntry, Profile, TransferRecord
from sendflow.core.resolver import RecipientResolver, Resolution
from sendflow.core.saga import Saga
from sendflow.core.states import StateTracker, TransferState
from sendflow.core.status import Status
from sendflow.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    RollbackFailure,
    TransferAborted,
    ValidationError,
)
from sendflow.logging_config import get_logger

logger = get_logger("sendflow.orchestrator")


@dataclass
class TransferRequest:
    sender_id: str
    recipient_identifier: str
    amount: Any
    sender_country: Optional[str] = None
    recipient_country: Optional[str] = None
    country_code: Optional[str] = None
    user_type: str = "user"
    performed_by: Optional[str] = None
    currency: Optional[str] = None


@dataclass
class Settlement:
    status: Status
    recipient_id: Optional[str] = None
    recipient_name: Optional[str] = None
    transfer_id: Optional[str] = None
    pending_id: Optional[str] = None
    claim_code: Optional[str] = None
    resolution_rule: Optional[str] = None
    ambiguous: bool = False


@dataclass
class TransferOutcome:
    reference: str
    state: TransferState
    quote: FeeQuote
    new_balance: Decimal
    settlement: Settlement
    states: List[str] = field(default_factory=list)
    commission_credited: bool = False

    @property
    def amount(self) -> Decimal:
        return self.quote.amount

    @property
    def fee(self) -> Decimal:
        return self.quote.fee

    @property
    def total(self) -> Decimal:
        return self.quote.total


class TransferOrchestrator:
    def __init__(
        self,
        store,
        *,
        fee_schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
        resolver: Optional[RecipientResolver] = None,
        claims: Optional[ClaimIssuer] = None,
        limits: Optional[MonthlyLimitGuard] = None,
        currency: str = "XAF",
        platform_account_id: Optional[str] = None,
    ):
        self.store = store
        self.ledger = LedgerAccessor(store)
        self.fee_schedule = fee_schedule
        self.resolver = resolver or RecipientResolver(store)
        self.claims = claims or ClaimIssuer(store)
        self.limits = limits
        self.currency = currency
        self.platform_account_id = platform_account_id

    async def load_sender(self, sender_id: str) -> Profile:
        if not sender_id:
            raise ValidationError("sender_id is required")
        sender = await self.store.get_profile(sender_id)
        if sender is None:
            raise AccountNotFoundError("Sender not found")
        return sender

    @staticmethod
    def ensure_funds(profile: Profile, total: Decimal) -> None:
        # the ledger re-checks atomically; this only avoids a doomed RPC
        if profile.balance is not None and Decimal(profile.balance) < total:
            logger.warning(
                "Insufficient funds user=%s balance=%s required=%s",
                profile.id,
                profile.balance,
                total,
            )
            raise InsufficientFundsError()

    async def transfer(self, request: TransferRequest) -> TransferOutcome:
        identifier = (request.recipient_identifier or "").strip()
        if not identifier:
            raise ValidationError("recipient_identifier is required")

        sender = await self.load_sender(request.sender_id)
        sender_country = request.sender_country or sender.country
        quote = calculate_fee(
            request.amount,
            sender_country,
            request.recipient_country,
            request.user_type,
            self.fee_schedule,
        )
        if self.limits is not None:
            await self.limits.ensure_can_transfer(sender.id, quote.amount)
        self.ensure_funds(sender, quote.total)

        reference = uuid.uuid4().hex
        performed_by = request.performed_by or sender.id
        currency = request.currency or self.currency
        tracker = StateTracker(reference)
        saga = Saga("transfer", reference=reference)
        logger.info(
            "Transfer %s start sender=%s to=%s amount=%s fee=%s total=%s",
            reference,
            sender.id,
            identifier,
            quote.amount,
            quote.fee,
            quote.total,
        )

        try:
            new_balance = await self.debit(saga, tracker, sender.id, quote.total, "transfer_debit", performed_by)
            settlement = await self.settle(
                saga,
                tracker,
                sender_id=sender.id,
                identifier=identifier,
                country_code=request.country_code,
                amount=quote.amount,
                fee=quote.fee,
                currency=currency,
                performed_by=performed_by,
                recipient_country=request.recipient_country,
            )
        except TransferAborted as exc:
            await self.record_failure(tracker, exc, sender.id, quote.total, performed_by)
            raise

        commission_credited = False
        if settlement.status is Status.COMPLETED:
            commission_credited = await self.credit_platform_commission(saga, quote, performed_by)

        logger.info("Transfer %s finished state=%s", reference, tracker.state.value)
        return TransferOutcome(
            reference=reference,
            state=tracker.state,
            quote=quote,
            new_balance=new_balance,
            settlement=settlement,
            states=tracker.states(),
            commission_credited=commission_credited,
        )

    async def debit(
        self,
        saga: Saga,
        tracker: StateTracker,
        user_id: str,
        total: Decimal,
        operation_type: str,
        performed_by: Optional[str],
    ) -> Decimal:
        new_balance = await saga.run_step(
            "debit_sender",
            lambda: self.ledger.debit(user_id, total, operation_type, performed_by),
            lambda: self.ledger.credit(user_id, total, f"{operation_type}_rollback", performed_by),
        )
        tracker.advance(TransferState.DEBITED)
        return new_balance

    async def settle(
        self,
        saga: Saga,
        tracker: StateTracker,
        *,
        sender_id: str,
        identifier: str,
        country_code: Optional[str],
        amount: Decimal,
        fee: Decimal,
        currency: str,
        performed_by: Optional[str],
        recipient_country: Optional[str] = None,
        transfer_type: str = "transfer",
        merchant_name: Optional[str] = None,
        merchant_description: Optional[str] = None,
    ) -> Settlement:
        """
        Resolve the recipient, then credit it or hold the funds under a claim
        code. Expects the sender to be debited already (state DEBITED).
        """
        resolution: Resolution = await saga.run_step(
            "resolve_recipient",
            lambda: self.resolver.resolve(identifier, country_code),
        )

        if not resolution.found:
            tracker.advance(TransferState.UNRESOLVED)
            pending = await saga.run_step(
                "issue_claim",
                lambda: self.claims.issue_claim(sender_id, identifier, amount, fee, currency),
            )
            tracker.advance(TransferState.PENDING_CLAIM)
            return Settlement(
                status=Status.PENDING,
                pending_id=pending.id,
                claim_code=pending.claim_code,
            )

        recipient = resolution.profile
        tracker.advance(TransferState.RESOLVED)
        await saga.run_step(
            "credit_recipient",
            lambda: self.ledger.credit(recipient.id, amount, f"{transfer_type}_credit", performed_by),
            lambda: self.ledger.debit(recipient.id, amount, f"{transfer_type}_reversal", performed_by),
        )
        tracker.advance(TransferState.CREDITED)

        record = await saga.run_step(
            "record_transfer",
            lambda: self.store.insert_transfer(
                TransferRecord(
                    sender_id=sender_id,
                    recipient_id=recipient.id,
                    recipient_full_name=recipient.full_name,
                    recipient_phone=recipient.phone or identifier,
                    recipient_country=recipient.country or recipient_country,
                    amount=amount,
                    fees=fee,
                    currency=currency,
                    status=Status.COMPLETED,
                    transfer_type=transfer_type,
                )
            ),
        )
        if merchant_name:
            await saga.run_step(
                "record_merchant_payment",
                lambda: self.store.insert_merchant_payment(
                    sender_id,
                    recipient.id,
                    amount,
                    merchant_name,
                    merchant_description or "",
                ),
                critical=False,
            )
        tracker.advance(TransferState.COMPLETED)
        return Settlement(
            status=Status.COMPLETED,
            recipient_id=recipient.id,
            recipient_name=recipient.full_name,
            transfer_id=record.id,
            resolution_rule=resolution.rule,
            ambiguous=resolution.ambiguous,
        )

    async def credit_platform_commission(self, saga: Saga, quote: FeeQuote, performed_by: Optional[str]) -> bool:
        if not self.platform_account_id or quote.platform_commission <= 0:
            return False
        result = await saga.run_step(
            "credit_platform_commission",
            lambda: self.ledger.credit(
                self.platform_account_id,
                quote.platform_commission,
                "platform_commission",
                performed_by,
            ),
            critical=False,
        )
        return result is not None

    async def record_failure(
        self,
        tracker: StateTracker,
        exc: TransferAborted,
        user_id: str,
        total: Decimal,
        performed_by: Optional[str],
    ) -> None:
        tracker.advance(TransferState.FAILED)
        if isinstance(exc, RollbackFailure):
            tracker.advance(TransferState.ROLLBACK_FAILED)
        else:
            tracker.advance(TransferState.ROLLED_BACK)
        exc.details["state"] = tracker.state.value
        exc.details["states"] = tracker.states()

        if not isinstance(exc, RollbackFailure):
            return
        details: Dict[str, Any] = {"reference": tracker.reference, "total": str(total)}
        if exc.report is not None:
            details["saga"] = exc.report.as_dict()
        try:
            await self.store.insert_audit_log(
                AuditEntry(
                    action="rollback_failed",
                    user_id=user_id,
                    amount=total,
                    operation_type="compensation",
                    performed_by=performed_by,
                    details=details,
                )
            )
        except Exception:
            logger.exception("Transfer %s: could not write rollback_failed audit entry", tracker.reference)
