"""Transfer state machine.

Responsibilities:
  - Define the lifecycle states of one orchestrated transfer.
  - Reject transitions that are not in the graph.

Invariants:
  - COMPLETED, PENDING_CLAIM, ROLLED_BACK and ROLLBACK_FAILED are terminal.
  - FAILED is only reachable after the debit went through.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from sendflow.logging_config import get_logger

logger = get_logger("sendflow.states")


class TransferState(Enum):
    INITIATED = "INITIATED"
    DEBITED = "DEBITED"
    RESOLVED = "RESOLVED"
    UNRESOLVED = "UNRESOLVED"
    CREDITED = "CREDITED"
    COMPLETED = "COMPLETED"
    PENDING_CLAIM = "PENDING_CLAIM"
    FAILED = "FAILED"
    ROLLED_BACK = "ROLLED_BACK"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"


ALLOWED_TRANSITIONS: dict[TransferState, set[TransferState]] = {
    TransferState.INITIATED: {TransferState.DEBITED},
    TransferState.DEBITED: {TransferState.RESOLVED, TransferState.UNRESOLVED, TransferState.FAILED},
    TransferState.RESOLVED: {TransferState.CREDITED, TransferState.FAILED},
    TransferState.CREDITED: {TransferState.COMPLETED, TransferState.FAILED},
    TransferState.UNRESOLVED: {TransferState.PENDING_CLAIM, TransferState.FAILED},
    TransferState.FAILED: {TransferState.ROLLED_BACK, TransferState.ROLLBACK_FAILED},
    TransferState.COMPLETED: set(),
    TransferState.PENDING_CLAIM: set(),
    TransferState.ROLLED_BACK: set(),
    TransferState.ROLLBACK_FAILED: set(),
}

TERMINAL_STATES = frozenset(s for s, nxt in ALLOWED_TRANSITIONS.items() if not nxt)


class IllegalTransition(RuntimeError):
    pass


@dataclass
class StateTracker:
    reference: str
    state: TransferState = TransferState.INITIATED
    history: list[tuple[TransferState, datetime]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.history.append((self.state, datetime.now(timezone.utc)))

    def advance(self, target: TransferState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.state.value} -> {target.value} is not allowed")
        logger.info("Transfer %s: %s -> %s", self.reference, self.state.value, target.value)
        self.state = target
        self.history.append((target, datetime.now(timezone.utc)))

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def states(self) -> list[str]:
        return [s.value for s, _ in self.history]
