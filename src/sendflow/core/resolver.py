"""
Recipient Resolver.

Phone numbers are stored in whatever format the sign-up form accepted, so
lookups run through a ranked list of match strategies. The first strategy
that matches any candidate wins; candidates are ordered by id so the same
input always picks the same account. The rule that fired is logged and
returned with the resolution.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from sendflow.core.models import Profile
from sendflow.errors import ValidationError
from sendflow.logging_config import get_logger

logger = get_logger("sendflow.resolver")

_NON_DIGITS = re.compile(r"\D")
# shortest number the suffix rule will accept
MIN_SUFFIX_DIGITS = 7


def normalize_phone(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", value or "")


def is_email(value: Optional[str]) -> bool:
    return "@" in (value or "")


@dataclass(frozen=True)
class PhoneQuery:
    raw: str
    digits: str
    country_digits: str = ""

    @classmethod
    def build(cls, raw: str, country_code: Optional[str] = None) -> "PhoneQuery":
        raw = (raw or "").strip()
        # e-mail identifiers never take part in phone matching
        digits = "" if is_email(raw) else normalize_phone(raw)
        return cls(raw=raw, digits=digits, country_digits=normalize_phone(country_code))


def _strip_country(digits: str, country_digits: str) -> str:
    if country_digits and digits.startswith(country_digits):
        digits = digits[len(country_digits):]
    return digits.lstrip("0")


def _match_email(query: PhoneQuery, candidate: Profile) -> bool:
    if not is_email(query.raw) or not candidate.email:
        return False
    return candidate.email.strip().casefold() == query.raw.casefold()


def _match_exact(query: PhoneQuery, candidate: Profile) -> bool:
    return bool(candidate.phone) and candidate.phone.strip() == query.raw


def _last_digits_matcher(n: int) -> Callable[[PhoneQuery, Profile], bool]:
    def _match(query: PhoneQuery, candidate: Profile) -> bool:
        stored = normalize_phone(candidate.phone)
        if len(query.digits) < n or len(stored) < n:
            return False
        return query.digits[-n:] == stored[-n:]

    return _match


def _match_country_code(query: PhoneQuery, candidate: Profile) -> bool:
    if not query.country_digits:
        return False
    a = _strip_country(query.digits, query.country_digits)
    b = _strip_country(normalize_phone(candidate.phone), query.country_digits)
    return bool(a) and a == b


def _ends_with_either(a: str, b: str) -> bool:
    if min(len(a), len(b)) < MIN_SUFFIX_DIGITS:
        return False
    return a.endswith(b) or b.endswith(a)


def _match_suffix(query: PhoneQuery, candidate: Profile) -> bool:
    stored = normalize_phone(candidate.phone)
    if _ends_with_either(query.digits, stored):
        return True
    if query.country_digits:
        return _ends_with_either(
            _strip_country(query.digits, query.country_digits),
            _strip_country(stored, query.country_digits),
        )
    return False


@dataclass(frozen=True)
class MatchStrategy:
    name: str
    matches: Callable[[PhoneQuery, Profile], bool]


DEFAULT_STRATEGIES: Sequence[MatchStrategy] = (
    MatchStrategy("email", _match_email),
    MatchStrategy("exact", _match_exact),
    MatchStrategy("last9", _last_digits_matcher(9)),
    MatchStrategy("last8", _last_digits_matcher(8)),
    MatchStrategy("country_code", _match_country_code),
    MatchStrategy("suffix", _match_suffix),
)


@dataclass
class Resolution:
    profile: Optional[Profile] = None
    rule: Optional[str] = None
    ambiguous: bool = False
    matched_ids: List[str] = field(default_factory=list)
    candidates: int = 0

    @property
    def found(self) -> bool:
        return self.profile is not None


def phones_match(
    a: Optional[str],
    b: Optional[str],
    country_code: Optional[str] = None,
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> Optional[str]:
    """
    Name of the first strategy under which two phone numbers match, or None.
    """
    if not a or not b:
        return None
    query = PhoneQuery.build(a, country_code)
    candidate = Profile(id="", phone=b)
    for strategy in strategies:
        if strategy.name == "email":
            continue
        if strategy.matches(query, candidate):
            return strategy.name
    return None


class RecipientResolver:
    def __init__(self, store, strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES):
        self.store = store
        self.strategies = tuple(strategies)

    def rank(self, identifier: str, candidates: Sequence[Profile], country_code: Optional[str] = None) -> Resolution:
        query = PhoneQuery.build(identifier, country_code)
        ordered = sorted(candidates, key=lambda p: str(p.id))
        for strategy in self.strategies:
            matched = [p for p in ordered if strategy.matches(query, p)]
            if not matched:
                continue
            distinct_ids = list(dict.fromkeys(str(p.id) for p in matched))
            resolution = Resolution(
                profile=matched[0],
                rule=strategy.name,
                ambiguous=len(distinct_ids) > 1,
                matched_ids=distinct_ids,
                candidates=len(ordered),
            )
            if resolution.ambiguous:
                logger.warning(
                    "Ambiguous recipient identifier=%s rule=%s matched=%s; using %s",
                    identifier,
                    strategy.name,
                    distinct_ids,
                    matched[0].id,
                )
            logger.info(
                "Recipient resolved identifier=%s rule=%s recipient=%s",
                identifier,
                strategy.name,
                matched[0].id,
            )
            return resolution

        logger.info("Recipient not found identifier=%s candidates=%s", identifier, len(ordered))
        return Resolution(candidates=len(ordered))

    async def resolve(self, phone_or_email: str, country_code: Optional[str] = None) -> Resolution:
        identifier = (phone_or_email or "").strip()
        if not identifier:
            raise ValidationError("Recipient phone or email is required")
        candidates = await self.store.find_recipient(identifier)
        return self.rank(identifier, candidates, country_code)
