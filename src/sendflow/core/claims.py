"""
Pending transfers for recipients without an account.

ClaimIssuer stores the held funds under a short claim code; ClaimService
pays them out when the recipient signs up (claim) or returns them to the
sender (cancel). Both payouts run as sagas: the balance moves first, then
the pending row is moved out of PENDING with a conditional update, so a
second claim of the same code loses the race and is compensated.
"""

import secrets
import string
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sendflow.core.ledger import LedgerAccessor
from sendflow.core.models import PendingTransfer, TransferRecord
from sendflow.core.resolver import is_email, phones_match
from sendflow.core.saga import Saga
from sendflow.core.status import Status
from sendflow.errors import (
    AccountNotFoundError,
    ClaimCodeCollisionError,
    ClaimNotFoundError,
    ClaimStateError,
    RollbackFailure,
    TransferAborted,
    ValidationError,
)
from sendflow.logging_config import get_logger

logger = get_logger("sendflow.claims")

CLAIM_CODE_ALPHABET = string.ascii_uppercase + string.digits
CLAIM_CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 5


def generate_claim_code(length: int = CLAIM_CODE_LENGTH) -> str:
    return "".join(secrets.choice(CLAIM_CODE_ALPHABET) for _ in range(length))


def normalize_claim_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def is_valid_claim_code(code: Optional[str]) -> bool:
    code = code or ""
    return len(code) == CLAIM_CODE_LENGTH and all(c in CLAIM_CODE_ALPHABET for c in code)


class ClaimIssuer:
    def __init__(self, store, *, max_attempts: int = MAX_CODE_ATTEMPTS, code_factory=generate_claim_code):
        self.store = store
        self.max_attempts = max_attempts
        self.code_factory = code_factory

    async def _unique_code(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            code = self.code_factory()
            if not await self.store.claim_code_exists(code):
                return code
            logger.warning("Claim code collision on attempt %s", attempt)
        raise ClaimCodeCollisionError()

    async def issue_claim(
        self,
        sender_id: str,
        recipient_phone: str,
        amount: Decimal,
        fee: Decimal,
        currency: str = "XAF",
    ) -> PendingTransfer:
        code = await self._unique_code()
        pending = PendingTransfer(
            sender_id=sender_id,
            recipient_phone=recipient_phone,
            recipient_email=recipient_phone.strip() if is_email(recipient_phone) else "",
            amount=amount,
            fees=fee,
            currency=currency,
            claim_code=code,
        )
        stored = await self.store.insert_pending_transfer(pending)
        logger.info(
            "Pending transfer issued id=%s sender=%s phone=%s amount=%s",
            stored.id,
            sender_id,
            recipient_phone,
            amount,
        )
        return stored


def _recipient_match(pending: PendingTransfer, recipient, country_code: Optional[str]) -> Optional[str]:
    if pending.recipient_email:
        if recipient.email and recipient.email.strip().casefold() == pending.recipient_email.casefold():
            return "email"
        return None
    return phones_match(pending.recipient_phone, recipient.phone, country_code)


def _reraise_lost_race(exc: TransferAborted) -> None:
    # payout compensated after another request moved the row first
    if isinstance(exc.cause, ClaimStateError) and not isinstance(exc, RollbackFailure):
        raise exc.cause from exc


@dataclass
class ClaimResult:
    pending: PendingTransfer
    status: Status
    beneficiary_id: str
    amount: Decimal
    new_balance: Decimal
    transfer_id: Optional[str] = None


class ClaimService:
    def __init__(self, store, ledger: Optional[LedgerAccessor] = None):
        self.store = store
        self.ledger = ledger or LedgerAccessor(store)

    async def _load_pending(self, claim_code: str) -> PendingTransfer:
        code = normalize_claim_code(claim_code)
        if not is_valid_claim_code(code):
            raise ValidationError("Invalid claim code")
        pending = await self.store.get_pending_transfer(code)
        if pending is None:
            raise ClaimNotFoundError()
        if pending.status is not Status.PENDING:
            raise ClaimStateError(f"Pending transfer is already {pending.status.value}")
        return pending

    async def _transition(self, pending: PendingTransfer, target: Status, performed_by: Optional[str]) -> PendingTransfer:
        updated = await self.store.transition_pending_transfer(pending.id, Status.PENDING, target, performed_by)
        if updated is None:
            raise ClaimStateError()
        return updated

    async def claim(
        self,
        claim_code: str,
        recipient_id: str,
        performed_by: Optional[str] = None,
        country_code: Optional[str] = None,
    ) -> ClaimResult:
        pending = await self._load_pending(claim_code)
        recipient = await self.store.get_profile(recipient_id)
        if recipient is None:
            raise AccountNotFoundError("Recipient account not found")

        rule = _recipient_match(pending, recipient, country_code)
        if rule is None:
            logger.warning(
                "Claim %s refused: %s does not match recipient %s",
                pending.id,
                pending.recipient_email or pending.recipient_phone,
                recipient_id,
            )
            if pending.recipient_email:
                raise ValidationError("Email does not match this pending transfer")
            raise ValidationError("Phone number does not match this pending transfer")

        performed_by = performed_by or recipient_id
        saga = Saga("claim", reference=pending.id)
        new_balance = await saga.run_step(
            "credit_recipient",
            lambda: self.ledger.credit(recipient_id, pending.amount, "pending_transfer_claim", performed_by),
            lambda: self.ledger.debit(recipient_id, pending.amount, "pending_transfer_claim_reversal", performed_by),
        )
        try:
            await saga.run_step(
                "mark_claimed",
                lambda: self._transition(pending, Status.COMPLETED, recipient_id),
            )
        except TransferAborted as exc:
            _reraise_lost_race(exc)
            raise
        record = await saga.run_step(
            "record_transfer",
            lambda: self.store.insert_transfer(
                TransferRecord(
                    sender_id=pending.sender_id,
                    recipient_id=recipient_id,
                    recipient_full_name=recipient.full_name,
                    recipient_phone=recipient.phone,
                    recipient_country=recipient.country,
                    amount=pending.amount,
                    fees=pending.fees,
                    currency=pending.currency,
                    status=Status.COMPLETED,
                    claim_code=pending.claim_code,
                )
            ),
            critical=False,
        )
        logger.info("Pending transfer %s claimed by %s (rule=%s)", pending.id, recipient_id, rule)
        return ClaimResult(
            pending=pending,
            status=Status.COMPLETED,
            beneficiary_id=recipient_id,
            amount=pending.amount,
            new_balance=new_balance,
            transfer_id=record.id if record else None,
        )

    async def cancel(self, claim_code: str, performed_by: str) -> ClaimResult:
        if not performed_by:
            raise ValidationError("performed_by is required")
        pending = await self._load_pending(claim_code)
        refund = pending.total

        saga = Saga("cancel_claim", reference=pending.id)
        new_balance = await saga.run_step(
            "refund_sender",
            lambda: self.ledger.credit(pending.sender_id, refund, "pending_transfer_refund", performed_by),
            lambda: self.ledger.debit(pending.sender_id, refund, "pending_transfer_refund_reversal", performed_by),
        )
        try:
            await saga.run_step(
                "mark_cancelled",
                lambda: self._transition(pending, Status.CANCELLED, performed_by),
            )
        except TransferAborted as exc:
            _reraise_lost_race(exc)
            raise
        logger.info("Pending transfer %s cancelled by %s; refunded %s", pending.id, performed_by, refund)
        return ClaimResult(
            pending=pending,
            status=Status.CANCELLED,
            beneficiary_id=pending.sender_id,
            amount=refund,
            new_balance=new_balance,
        )
