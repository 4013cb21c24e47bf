"""
Monthly outgoing transfer limit.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sendflow.errors import TransferLimitExceededError
from sendflow.logging_config import get_logger

logger = get_logger("sendflow.limits")

DEFAULT_MONTHLY_LIMIT = Decimal("2000000")


def month_window(now: datetime) -> Tuple[datetime, datetime]:
    """
    [first day of month, first day of next month) in UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class MonthlyLimitGuard:
    def __init__(self, store, monthly_limit: Decimal = DEFAULT_MONTHLY_LIMIT):
        self.store = store
        self.monthly_limit = Decimal(monthly_limit)

    @property
    def enabled(self) -> bool:
        return self.monthly_limit > 0

    async def remaining(self, sender_id: str, now: Optional[datetime] = None) -> Decimal:
        start, end = month_window(now or datetime.now(timezone.utc))
        sent = await self.store.sum_completed_transfers(sender_id, start, end)
        return max(Decimal("0"), self.monthly_limit - Decimal(sent))

    async def ensure_can_transfer(self, sender_id: str, amount: Decimal, now: Optional[datetime] = None) -> None:
        if not self.enabled:
            return
        remaining = await self.remaining(sender_id, now)
        if amount > remaining:
            logger.warning(
                "Monthly limit exceeded sender=%s amount=%s remaining=%s",
                sender_id,
                amount,
                remaining,
            )
            raise TransferLimitExceededError(
                f"Monthly transfer limit exceeded; remaining: {remaining}",
                remaining=remaining,
            )
