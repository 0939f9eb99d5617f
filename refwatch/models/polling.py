"""Poll loop state model — deterministic transitions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from refwatch.models.snapshot import ChangeEvent


class PollState(str, Enum):
    """States of a single watcher's poll loop."""

    TAKING_SNAPSHOT = "taking_snapshot"
    COMPARING = "comparing"
    WAITING = "waiting"
    REPORT_CHANGE = "report_change"
    CANCELLED = "cancelled"


# Valid state transitions, enforced by RevisionPoller.
# A kill seen at the iteration boundary cancels before the next fetch.
# Terminal states (REPORT_CHANGE, CANCELLED) have no outgoing transitions.
VALID_POLL_TRANSITIONS: dict[PollState, set[PollState]] = {
    PollState.TAKING_SNAPSHOT: {PollState.COMPARING, PollState.WAITING, PollState.CANCELLED},
    PollState.COMPARING: {PollState.REPORT_CHANGE, PollState.WAITING},
    PollState.WAITING: {PollState.TAKING_SNAPSHOT, PollState.CANCELLED},
    PollState.REPORT_CHANGE: set(),  # terminal
    PollState.CANCELLED: set(),  # terminal
}


class WakeReason(str, Enum):
    """Which of the competing wake sources ended a wait."""

    KILLED = "killed"
    NOTIFIED = "notified"
    TIMEOUT = "timeout"


class PollOutcome(BaseModel):
    """How a poll loop ended."""

    model_config = ConfigDict(frozen=True)

    final_state: PollState
    change: ChangeEvent | None = None
    polls: int = 0

    @property
    def cancelled(self) -> bool:
        return self.final_state == PollState.CANCELLED
