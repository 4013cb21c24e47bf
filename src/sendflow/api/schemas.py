from typing import Any, Optional

from pydantic import BaseModel, Field


class BillPaymentIn(BaseModel):
    user_id: Optional[str] = Field(None, example="5b7c0a0e-3f4e-4a41-9d1e-6c1f0c6a2b11")
    amount: Any = Field(None, example=10000)
    bill_id: Optional[str] = None
    bill_type: Optional[str] = Field(None, example="electricity")
    provider: Optional[str] = Field(None, example="ENEO")
    account_number: Optional[str] = None
    recipient_phone: Optional[str] = None
    country_code: Optional[str] = Field(None, example="+237")
    performed_by: Optional[str] = None


class TransferIn(BaseModel):
    sender_id: Optional[str] = None
    recipient_identifier: Optional[str] = Field(None, example="+237 6 70 00 00 01")
    transfer_amount: Any = Field(None, example=1000)
    sender_country: Optional[str] = Field(None, example="Cameroon")
    recipient_country: Optional[str] = Field(None, example="Cameroon")
    country_code: Optional[str] = None
    user_type: str = "user"
    performed_by: Optional[str] = None
    currency: Optional[str] = None


class ClaimIn(BaseModel):
    claim_code: str = Field(..., example="K7P2QX")
    recipient_id: str
    performed_by: Optional[str] = None
    country_code: Optional[str] = None


class CancelIn(BaseModel):
    claim_code: str = Field(..., example="K7P2QX")
    performed_by: str


class ErrorOut(BaseModel):
    success: bool = False
    message: str


ERROR_RESPONSES = {code: {"model": ErrorOut} for code in (400, 404, 409, 500, 502)}


class FeeQuoteOut(BaseModel):
    amount: float
    fee: float
    total: float
    rate: float
    platform_commission: float
    agent_commission: float
    domestic: bool


class TransferOut(BaseModel):
    success: bool
    status: str
    state: str
    reference: str
    transfer_id: Optional[str] = None
    pending_id: Optional[str] = None
    claim_code: Optional[str] = None
    recipient_id: Optional[str] = None
    recipient_name: Optional[str] = None
    amount: float
    fee: float
    total: float
    new_balance: float
    message: str


class BillPaymentOut(BaseModel):
    success: bool
    message: str
    reference: str
    bill_id: Optional[str] = None
    amount: float
    fee: float
    total: float
    new_balance: float
    transfer_status: Optional[str] = None
    claim_code: Optional[str] = None
    recipient_id: Optional[str] = None


class ClaimOut(BaseModel):
    success: bool
    status: str
    pending_id: Optional[str] = None
    beneficiary_id: str
    amount: float
    new_balance: float
    transfer_id: Optional[str] = None
    message: str
