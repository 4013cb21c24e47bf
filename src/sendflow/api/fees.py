from typing import Optional

from fastapi import APIRouter, Depends

from sendflow.core.fees import FeeSchedule, calculate_bill_fee, calculate_fee
from .deps import get_fee_schedule
from .schemas import ERROR_RESPONSES, FeeQuoteOut
from .serializers import serialize_quote

router = APIRouter(prefix="/fees", tags=["fees"], responses=ERROR_RESPONSES)


@router.get("/quote", response_model=FeeQuoteOut)
async def quote_fee(
    amount: str,
    sender_country: Optional[str] = None,
    recipient_country: Optional[str] = None,
    user_type: str = "user",
    kind: str = "transfer",
    schedule: FeeSchedule = Depends(get_fee_schedule),
):
    """
    Fee preview; kind=bill uses the bill payment rate.
    """
    if kind == "bill":
        return serialize_quote(calculate_bill_fee(amount, schedule))
    return serialize_quote(calculate_fee(amount, sender_country, recipient_country, user_type, schedule))
