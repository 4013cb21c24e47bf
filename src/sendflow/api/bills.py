from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sendflow.core.bill_payment import BillPaymentProcessor, BillPaymentRequest
from sendflow.logging_config import get_logger
from .deps import get_bill_processor
from .schemas import ERROR_RESPONSES, BillPaymentIn, BillPaymentOut
from .serializers import serialize_bill_payment

logger = get_logger("sendflow.api.bills")

router = APIRouter(tags=["bills"], responses=ERROR_RESPONSES)


@router.post("/process-bill-payment", response_model=BillPaymentOut)
async def process_bill_payment(
    payload: BillPaymentIn,
    processor: BillPaymentProcessor = Depends(get_bill_processor),
):
    """
    Pay a stored bill (bill_id) or an ad-hoc one (bill_type), debiting
    amount + fee, optionally settling the amount to recipient_phone.
    """
    outcome = await processor.process(
        BillPaymentRequest(
            user_id=payload.user_id,
            amount=payload.amount,
            bill_id=payload.bill_id,
            bill_type=payload.bill_type,
            provider=payload.provider,
            account_number=payload.account_number,
            recipient_phone=payload.recipient_phone,
            country_code=payload.country_code,
            performed_by=payload.performed_by,
        )
    )
    return serialize_bill_payment(outcome)


@router.api_route("/process-bill-payment", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def bill_payment_method_not_allowed():
    return JSONResponse(status_code=405, content={"success": False, "message": "Method not allowed"})
