"""
Fee calculation for transfers and bill payments.

Pure functions; the schedule is a frozen dataclass so callers can pass a
configured one without touching module state.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from sendflow.errors import ValidationError

# XAF has no minor unit
FEE_QUANT = Decimal("1")
MONEY_QUANT = Decimal("0.01")

USER_TYPE_AGENT = "agent"


@dataclass(frozen=True)
class FeeSchedule:
    domestic_rate: Decimal = Decimal("0.015")
    international_rate: Decimal = Decimal("0.065")
    international_reduced_rate: Decimal = Decimal("0.05")
    international_threshold: Decimal = Decimal("800000")
    agent_share: Decimal = Decimal("0.10")
    bill_payment_rate: Decimal = Decimal("0.015")


DEFAULT_FEE_SCHEDULE = FeeSchedule()


@dataclass(frozen=True)
class FeeQuote:
    amount: Decimal
    fee: Decimal
    rate: Decimal
    platform_commission: Decimal
    agent_commission: Decimal = Decimal("0")
    domestic: bool = True

    @property
    def total(self) -> Decimal:
        return self.amount + self.fee


def parse_amount(value: object) -> Decimal:
    """
    Coerce a request amount to a positive Decimal or raise ValidationError.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError("Amount is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("Invalid amount")
    if not amount.is_finite():
        raise ValidationError("Invalid amount")
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    return amount.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def _round_fee(value: Decimal) -> Decimal:
    return value.quantize(FEE_QUANT, rounding=ROUND_HALF_UP)


def _norm_country(country: Optional[str]) -> str:
    return " ".join((country or "").split()).casefold()


def is_domestic(sender_country: Optional[str], recipient_country: Optional[str]) -> bool:
    # an unknown recipient country is treated as the sender's corridor
    recipient = _norm_country(recipient_country)
    if not recipient:
        return True
    return _norm_country(sender_country) == recipient


def calculate_fee(
    amount: object,
    sender_country: Optional[str],
    recipient_country: Optional[str],
    user_type: str = "user",
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> FeeQuote:
    value = parse_amount(amount)
    domestic = is_domestic(sender_country, recipient_country)

    if domestic:
        rate = schedule.domestic_rate
    elif value < schedule.international_threshold:
        rate = schedule.international_rate
    else:
        rate = schedule.international_reduced_rate

    fee = _round_fee(value * rate)
    agent_commission = Decimal("0")
    if not domestic and (user_type or "").strip().lower() == USER_TYPE_AGENT:
        agent_commission = _round_fee(fee * schedule.agent_share)

    return FeeQuote(
        amount=value,
        fee=fee,
        rate=rate,
        platform_commission=fee - agent_commission,
        agent_commission=agent_commission,
        domestic=domestic,
    )


def calculate_bill_fee(amount: object, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> FeeQuote:
    value = parse_amount(amount)
    fee = _round_fee(value * schedule.bill_payment_rate)
    return FeeQuote(
        amount=value,
        fee=fee,
        rate=schedule.bill_payment_rate,
        platform_commission=fee,
    )


def schedule_from_settings(settings) -> FeeSchedule:
    return FeeSchedule(
        domestic_rate=settings.fee_domestic_rate,
        international_rate=settings.fee_international_rate,
        international_reduced_rate=settings.fee_international_reduced_rate,
        international_threshold=settings.fee_international_threshold,
        agent_share=settings.fee_agent_share,
        bill_payment_rate=settings.bill_payment_fee_rate,
    )
