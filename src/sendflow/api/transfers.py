from fastapi import APIRouter, Depends

from sendflow.core.orchestrator import TransferOrchestrator, TransferRequest
from sendflow.logging_config import get_logger
from .deps import get_orchestrator
from .schemas import ERROR_RESPONSES, TransferIn, TransferOut
from .serializers import serialize_transfer

logger = get_logger("sendflow.api.transfers")

router = APIRouter(tags=["transfers"], responses=ERROR_RESPONSES)


@router.post("/process-money-transfer", response_model=TransferOut)
async def process_money_transfer(
    payload: TransferIn,
    orchestrator: TransferOrchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.transfer(
        TransferRequest(
            sender_id=payload.sender_id,
            recipient_identifier=payload.recipient_identifier,
            amount=payload.transfer_amount,
            sender_country=payload.sender_country,
            recipient_country=payload.recipient_country,
            country_code=payload.country_code,
            user_type=payload.user_type,
            performed_by=payload.performed_by,
            currency=payload.currency,
        )
    )
    logger.info("Transfer %s -> %s", outcome.reference, outcome.settlement.status.value)
    return serialize_transfer(outcome)
