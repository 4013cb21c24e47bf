from sendflow.core.bill_payment import BillPaymentOutcome, BillPaymentProcessor, BillPaymentRequest
from sendflow.core.claims import ClaimIssuer, ClaimResult, ClaimService
from sendflow.core.fees import FeeQuote, FeeSchedule, calculate_bill_fee, calculate_fee
from sendflow.core.ledger import LedgerAccessor
from sendflow.core.orchestrator import TransferOrchestrator, TransferOutcome, TransferRequest
from sendflow.core.resolver import RecipientResolver, Resolution
from sendflow.core.status import Status

__all__ = [
    "BillPaymentOutcome",
    "BillPaymentProcessor",
    "BillPaymentRequest",
    "ClaimIssuer",
    "ClaimResult",
    "ClaimService",
    "FeeQuote",
    "FeeSchedule",
    "LedgerAccessor",
    "RecipientResolver",
    "Resolution",
    "Status",
    "TransferOrchestrator",
    "TransferOutcome",
    "TransferRequest",
    "calculate_bill_fee",
    "calculate_fee",
]
