"""Step result model shared by every pipeline step."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

# History key under which the trigger step keeps its last-seen snapshot.
LAST_SEEN_REVISIONS_KEY = "_git-last-seen-revisions"


class StepStatus(str, Enum):
    """Outcome of a step, as seen by the host pipeline."""

    SUCCESS = "success"
    FAILURE = "failure"
    WAITING = "waiting"
    KILLED = "killed"


class StepResult(BaseModel):
    """What a step hands back to the pipeline.

    ``details`` carries arbitrary step-specific values.  Whatever ends up in
    it is recorded in step history and visible to later runs.
    """

    model_config = ConfigDict(frozen=True)

    status: StepStatus
    out: str = ""
    details: dict[str, Any] = {}

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS

    def get(self, key: str, default: Any = None) -> Any:
        return self.details.get(key, default)

    def with_details(self, **details: Any) -> StepResult:
        return self.model_copy(update={"details": {**self.details, **details}})


def success(**details: Any) -> StepResult:
    return StepResult(status=StepStatus.SUCCESS, details=details)


def failure(message: str, **details: Any) -> StepResult:
    """A failure carrying a human-readable explanation in ``out``."""
    return StepResult(status=StepStatus.FAILURE, out=message, details=details)
