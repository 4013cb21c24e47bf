"""Tests for recipient resolution."""

from __future__ import annotations

import pytest

from sendflow.core.models import Profile
from sendflow.core.resolver import RecipientResolver, normalize_phone, phones_match
from sendflow.errors import ValidationError
from tests.fakes import FakeStore


def _resolver(*profiles: Profile) -> RecipientResolver:
    return RecipientResolver(FakeStore(profiles=list(profiles)))


def test_normalize_phone_keeps_digits_only() -> None:
    assert normalize_phone("+237 (670) 00-00-01") == "237670000001"
    assert normalize_phone(None) == ""


def test_exact_match_wins_over_suffix() -> None:
    resolver = _resolver(
        Profile(id="b", phone="670000001"),
        Profile(id="a", phone="+237670000001"),
    )
    resolution = resolver.rank("+237670000001", list(resolver.store.profiles.values()))
    assert resolution.found
    assert resolution.profile.id == "a"
    assert resolution.rule == "exact"
    assert resolution.ambiguous is False


def test_last9_matches_differently_formatted_numbers() -> None:
    resolver = _resolver(Profile(id="a", phone="+237 670 000 001"))
    resolution = resolver.rank("00237670000001", list(resolver.store.profiles.values()))
    assert resolution.rule == "last9"
    assert resolution.profile.id == "a"


def test_country_code_strips_prefix_and_leading_zero() -> None:
    resolver = _resolver(Profile(id="a", phone="0612345"))
    resolution = resolver.rank("+33612345", list(resolver.store.profiles.values()), country_code="+33")
    assert resolution.rule == "country_code"


def test_suffix_is_last_resort() -> None:
    resolver = _resolver(Profile(id="a", phone="1234567"))
    resolution = resolver.rank("991234567", list(resolver.store.profiles.values()))
    assert resolution.rule == "suffix"


def test_short_fragment_never_selects_an_account() -> None:
    resolver = _resolver(Profile(id="a", phone="+237670000001"), Profile(id="b", phone="+237670000021"))
    for fragment in ("1", "001", "000001"):
        assert not resolver.rank(fragment, list(resolver.store.profiles.values())).found
    assert phones_match("001", "+237670000001") is None


def test_email_identifier_matches_case_insensitively() -> None:
    resolver = _resolver(Profile(id="a", phone="+237670000001", email="Awa@Example.com"))
    resolution = resolver.rank("awa@example.com", list(resolver.store.profiles.values()))
    assert resolution.rule == "email"
    assert resolution.profile.id == "a"


def test_email_with_digits_never_matches_a_phone() -> None:
    resolver = _resolver(Profile(id="a", phone="12345678"))
    resolution = resolver.rank("user12345678@example.com", list(resolver.store.profiles.values()))
    assert not resolution.found


def test_ambiguous_match_is_flagged_and_deterministic() -> None:
    candidates = [
        Profile(id="z", phone="+237 670 000 001"),
        Profile(id="m", phone="237-670-000-001"),
    ]
    resolver = _resolver(*candidates)
    first = resolver.rank("670000001", candidates)
    second = resolver.rank("670000001", list(reversed(candidates)))
    assert first.ambiguous is True
    assert first.matched_ids == ["m", "z"]
    assert first.profile.id == second.profile.id == "m"


def test_no_match() -> None:
    resolver = _resolver(Profile(id="a", phone="+237670000001"))
    resolution = resolver.rank("+33 7 11 22 33 44", list(resolver.store.profiles.values()))
    assert not resolution.found
    assert resolution.rule is None
    assert resolution.candidates == 1


async def test_resolve_queries_store() -> None:
    resolver = _resolver(Profile(id="a", full_name="Awa", phone="+237670000001"))
    resolution = await resolver.resolve(" +237670000001 ")
    assert resolution.profile.full_name == "Awa"


async def test_resolve_requires_identifier() -> None:
    with pytest.raises(ValidationError):
        await _resolver().resolve("   ")


def test_phones_match() -> None:
    assert phones_match("+237670000001", "+237670000001") == "exact"
    assert phones_match("+237 670 000 001", "670000001") == "last9"
    assert phones_match("+237670000001", "+237670000002") is None
    assert phones_match(None, "123") is None
