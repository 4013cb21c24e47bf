"""
Error taxonomy for SendFlow money movement.

Every error carries a user-facing message and the HTTP status the API layer
should answer with. Errors raised before any balance mutation are plain
SendFlowError subclasses; errors raised after a debit went through are
TransferAborted / RollbackFailure and carry the saga report.
"""

from typing import Any, Optional


class SendFlowError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(SendFlowError):
    status_code = 400
    default_message = "Invalid request"


class TransferLimitExceededError(ValidationError):
    default_message = "Monthly transfer limit exceeded"


class InsufficientFundsError(SendFlowError):
    status_code = 400
    default_message = "Insufficient balance for this operation"


class AccountNotFoundError(SendFlowError):
    status_code = 404
    default_message = "User not found"


class BillNotFoundError(SendFlowError):
    status_code = 404
    default_message = "Bill not found"


class BillAlreadyPaidError(SendFlowError):
    status_code = 409
    default_message = "Bill is already paid"


class ClaimNotFoundError(SendFlowError):
    status_code = 404
    default_message = "Pending transfer not found"


class ClaimStateError(SendFlowError):
    status_code = 409
    default_message = "Pending transfer is no longer claimable"


class ConfigurationError(SendFlowError):
    status_code = 500
    default_message = "Server configuration missing"


class RemoteCallFailure(SendFlowError):
    status_code = 502
    default_message = "Remote platform call failed"


class ClaimCodeCollisionError(SendFlowError):
    status_code = 500
    default_message = "Could not allocate a unique claim code"


class TransferAborted(SendFlowError):
    """
    A step failed after money had moved and every compensation succeeded.
    The original error is available as ``cause`` (and ``__cause__``).
    """

    status_code = 500
    default_message = "Operation failed; funds were returned"
    state_name = "ROLLED_BACK"

    def __init__(self, message: Optional[str] = None, *, cause: Optional[BaseException] = None, report: Any = None):
        super().__init__(message)
        self.cause = cause
        self.report = report


class RollbackFailure(TransferAborted):
    """
    A compensation failed: the account is left in an inconsistent state and
    needs manual reconciliation. Nothing retries it.
    """

    default_message = "Operation failed and funds could not be returned automatically"
    state_name = "ROLLBACK_FAILED"
