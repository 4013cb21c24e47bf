# sendflow/db/models.py
import uuid

import sqlalchemy as sa
from sqlalchemy import JSON, TIMESTAMP, Column, Date, ForeignKey, Integer, Numeric, String

from sendflow.db.session import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    full_name = Column(String(255))
    phone = Column(String(32), index=True)
    email = Column(String(255), index=True)
    country = Column(String(64))
    role = Column(String(20), default="user")
    balance = Column(Numeric(15, 2), nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())


class Transfer(Base):
    __tablename__ = "transfers"

    id = Column(String(36), primary_key=True, default=_uuid)
    sender_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    recipient_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    recipient_full_name = Column(String(255))
    recipient_phone = Column(String(32))
    recipient_country = Column(String(64))
    amount = Column(Numeric(15, 2), nullable=False)
    fees = Column(Numeric(15, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="XAF")
    status = Column(String(20), nullable=False)
    transfer_type = Column(String(30), default="transfer")
    claim_code = Column(String(6))
    created_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())


class PendingTransfer(Base):
    __tablename__ = "pending_transfers"

    id = Column(String(36), primary_key=True, default=_uuid)
    sender_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    recipient_phone = Column(String(32), nullable=False)
    recipient_email = Column(String(255), default="")
    amount = Column(Numeric(15, 2), nullable=False)
    fees = Column(Numeric(15, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="XAF")
    claim_code = Column(String(6), nullable=False, unique=True)
    status = Column(String(20), nullable=False)
    claimed_by = Column(String(36), nullable=True)
    claimed_at = Column(TIMESTAMP(timezone=True))
    cancelled_by = Column(String(36), nullable=True)
    cancelled_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())


class AutomaticBill(Base):
    __tablename__ = "automatic_bills"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    bill_name = Column(String(255))
    amount = Column(Numeric(15, 2))
    status = Column(String(20))
    payment_number = Column(String(32))
    meter_number = Column(String(64))
    due_date = Column(Date)
    recurrence = Column(String(20), default="once")
    last_payment_date = Column(TIMESTAMP(timezone=True))
    payment_attempts = Column(Integer, default=0)
    created_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())


class BillPaymentHistory(Base):
    __tablename__ = "bill_payment_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    bill_id = Column(String(36), ForeignKey("automatic_bills.id"), nullable=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    amount = Column(Numeric(15, 2))
    fees = Column(Numeric(15, 2))
    status = Column(String(20))
    balance_before = Column(Numeric(15, 2))
    balance_after = Column(Numeric(15, 2))
    attempt_number = Column(Integer, default=1)
    payment_date = Column(TIMESTAMP(timezone=True))


class MerchantPayment(Base):
    __tablename__ = "merchant_payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    merchant_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    amount = Column(Numeric(15, 2))
    business_name = Column(String(255))
    description = Column(String)
    status = Column(String(20))
    created_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    amount = Column(Numeric(15, 2))
    operation_type = Column(String(50))
    performed_by = Column(String(36))
    balance_after = Column(Numeric(15, 2))
    details = Column(JSON)
    created_at = Column(TIMESTAMP(timezone=True), server_default=sa.func.now())
