"""Tests for the fee calculator."""

from __future__ import annotations

from decimal import Decimal

import pytest

from sendflow.core.fees import (
    FeeSchedule,
    calculate_bill_fee,
    calculate_fee,
    is_domestic,
    parse_amount,
)
from sendflow.errors import ValidationError


def test_domestic_fee_is_one_and_a_half_percent() -> None:
    quote = calculate_fee(1000, "Cameroon", "Cameroon")
    assert quote.fee == Decimal("15")
    assert quote.total == Decimal("1015")
    assert quote.platform_commission == Decimal("15")
    assert quote.agent_commission == Decimal("0")
    assert quote.domestic is True


def test_corridor_comparison_ignores_case_and_spacing() -> None:
    assert is_domestic("Cameroon", "  cameroon ")
    assert is_domestic("Cameroon", None)
    assert not is_domestic("Cameroon", "Gabon")


def test_international_rates_switch_at_threshold() -> None:
    below = calculate_fee(100000, "Cameroon", "Gabon")
    assert below.rate == Decimal("0.065")
    assert below.fee == Decimal("6500")

    at = calculate_fee(800000, "Cameroon", "Gabon")
    assert at.rate == Decimal("0.05")
    assert at.fee == Decimal("40000")


def test_agent_keeps_share_of_international_fee() -> None:
    quote = calculate_fee(100000, "Cameroon", "Gabon", user_type="agent")
    assert quote.fee == Decimal("6500")
    assert quote.agent_commission == Decimal("650")
    assert quote.platform_commission == Decimal("5850")
    assert quote.platform_commission + quote.agent_commission == quote.fee


def test_agent_has_no_commission_on_domestic_corridor() -> None:
    quote = calculate_fee(100000, "Cameroon", "Cameroon", user_type="agent")
    assert quote.agent_commission == Decimal("0")


def test_fee_rounds_half_up_to_whole_units() -> None:
    # 1.5% of 1030 = 15.45 -> 15 ; 1.5% of 1100 = 16.5 -> 17
    assert calculate_fee(1030, "CM", "CM").fee == Decimal("15")
    assert calculate_fee(1100, "CM", "CM").fee == Decimal("17")


def test_fee_is_deterministic() -> None:
    assert calculate_fee("2500", "CM", "GA") == calculate_fee(Decimal("2500"), "CM", "GA")


@pytest.mark.parametrize("bad", [0, -5, "abc", None, True, "NaN", "Infinity", ""])
def test_invalid_amounts_are_rejected(bad) -> None:
    with pytest.raises(ValidationError):
        calculate_fee(bad, "CM", "CM")


def test_parse_amount_accepts_numeric_strings() -> None:
    assert parse_amount(" 1000.5 ") == Decimal("1000.50")


def test_bill_fee() -> None:
    quote = calculate_bill_fee(10000)
    assert quote.fee == Decimal("150")
    assert quote.total == Decimal("10150")


def test_custom_schedule() -> None:
    schedule = FeeSchedule(domestic_rate=Decimal("0.01"))
    assert calculate_fee(1000, "CM", "CM", schedule=schedule).fee == Decimal("10")
