"""Shared status vocabulary for every ledger-touching row.

Invariants:
  - Values are persisted; they must remain stable.
  - Pending rows only ever move to COMPLETED or CANCELLED.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Status(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"
    FAILED = "failed"
    # bills only
    PAID = "paid"


# Spellings found in older rows.
_LEGACY_ALIASES = {
    "success": Status.COMPLETED,
    "successful": Status.COMPLETED,
    "canceled": Status.CANCELLED,
    "error": Status.FAILED,
}

ALLOWED_STATUS_TRANSITIONS: dict[Status, set[Status]] = {
    Status.PENDING: {Status.COMPLETED, Status.CANCELLED},
    Status.COMPLETED: {Status.ARCHIVED},
    Status.CANCELLED: {Status.ARCHIVED},
    Status.FAILED: {Status.ARCHIVED},
    Status.PAID: {Status.ARCHIVED},
    Status.ARCHIVED: set(),
}


def parse_status(value: Optional[str]) -> Status:
    if isinstance(value, Status):
        return value
    raw = (value or "").strip().lower()
    if raw in _LEGACY_ALIASES:
        return _LEGACY_ALIASES[raw]
    try:
        return Status(raw)
    except ValueError:
        raise ValueError(f"Unknown status: {value!r}")


def can_transition(current: Status, target: Status) -> bool:
    return target in ALLOWED_STATUS_TRANSITIONS.get(current, set())


def parse_status_or_none(value: Optional[str]) -> Optional[Status]:
    """
    Lenient variant for rows whose status column carries values outside the
    ledger vocabulary (e.g. bills marked "active" by the scheduler).
    """
    try:
        return parse_status(value) if value else None
    except ValueError:
        return None
