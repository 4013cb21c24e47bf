from fastapi import APIRouter, Depends

from sendflow.core.claims import ClaimService
from .deps import get_claim_service
from .schemas import ERROR_RESPONSES, CancelIn, ClaimIn, ClaimOut
from .serializers import serialize_claim

router = APIRouter(prefix="/pending-transfers", tags=["pending-transfers"], responses=ERROR_RESPONSES)


@router.post("/claim", response_model=ClaimOut)
async def claim_pending_transfer(payload: ClaimIn, service: ClaimService = Depends(get_claim_service)):
    result = await service.claim(
        payload.claim_code,
        payload.recipient_id,
        performed_by=payload.performed_by,
        country_code=payload.country_code,
    )
    return serialize_claim(result)


@router.post("/cancel", response_model=ClaimOut)
async def cancel_pending_transfer(payload: CancelIn, service: ClaimService = Depends(get_claim_service)):
    result = await service.cancel(payload.claim_code, payload.performed_by)
    return serialize_claim(result)
