"""
Balance Ledger Accessor: the single choke point for balance changes.
"""

from decimal import Decimal
from typing import Optional

from sendflow.errors import ValidationError
from sendflow.logging_config import get_logger

logger = get_logger("sendflow.ledger")


class LedgerAccessor:
    def __init__(self, store):
        self.store = store

    async def adjust_balance(
        self,
        user_id: str,
        delta: Decimal,
        operation_type: str,
        performed_by: Optional[str] = None,
    ) -> Decimal:
        """
        Apply a signed delta through the platform's atomic increment.
        Raises InsufficientFundsError when a debit would go below zero.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        delta = Decimal(delta)
        if delta == 0:
            raise ValidationError("Balance adjustment must be non-zero")

        logger.info(
            "Ledger %s user=%s delta=%s performed_by=%s",
            operation_type,
            user_id,
            delta,
            performed_by,
        )
        new_balance = await self.store.increment_balance(user_id, delta, operation_type, performed_by)
        logger.info("Ledger %s user=%s new_balance=%s", operation_type, user_id, new_balance)
        return new_balance

    async def debit(self, user_id: str, amount: Decimal, operation_type: str, performed_by: Optional[str] = None) -> Decimal:
        return await self.adjust_balance(user_id, -abs(Decimal(amount)), operation_type, performed_by)

    async def credit(self, user_id: str, amount: Decimal, operation_type: str, performed_by: Optional[str] = None) -> Decimal:
        return await self.adjust_balance(user_id, abs(Decimal(amount)), operation_type, performed_by)
