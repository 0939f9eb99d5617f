"""Per-step execution context handed to every pipeline step.

The context is the step's only window onto the host pipeline: the kill
switch it must honour, the result channel it reports progress and persisted
values through, the notification bus, the step history of earlier runs, and
the git configuration to use.
"""

from __future__ import annotations

import functools
import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from refwatch.core.cancellation import KillSwitch
from refwatch.core.notification_bus import NotificationBus
from refwatch.core.step_history import StepHistory
from refwatch.models.git import GitConfig
from refwatch.models.results import StepResult

logger = logging.getLogger(__name__)

ResultListener = Callable[[str, Any], None]
F = TypeVar("F", bound=Callable[..., StepResult])


class DuplicateResultKeyError(ValueError):
    """Raised when a history-relevant result key is reported twice."""


class ResultChannel:
    """Collects ``(key, value)`` reports from a running step.

    Keys starting with ``_`` are history-relevant and may be reported only
    once per step run; everything else (``status``, ``out``) is a progress
    update where the latest value wins.  Listeners see every report.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._listeners: list[ResultListener] = []
        self._lock = threading.Lock()

    def report(self, key: str, value: Any) -> None:
        with self._lock:
            if key.startswith("_") and key in self._values:
                raise DuplicateResultKeyError(f"Result key {key!r} was already reported")
            self._values[key] = value
            listeners = list(self._listeners)
        for listener in listeners:
            listener(key, value)

    def add_listener(self, listener: ResultListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def values(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._values)


class StepOutput:
    """Line-oriented output buffer of a step, mirrored to the result channel."""

    def __init__(self, result_channel: ResultChannel | None = None) -> None:
        self._lines: list[str] = []
        self._result_channel = result_channel

    def println(self, *parts: object) -> None:
        line = " ".join(str(p) for p in parts)
        self._lines.append(line)
        if self._result_channel is not None:
            self._result_channel.report("out", self.text)

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)


class StepContext:
    """Everything a step may touch outside its own arguments.

    Parameters
    ----------
    step_id:
        Stable identifier of the step within the pipeline.  History lookups
        are scoped to it, so it must not change between runs.
    run_id:
        Identifier of this particular execution.  Generated when omitted.
    """

    def __init__(
        self,
        step_id: str,
        *,
        run_id: str | None = None,
        history: StepHistory | None = None,
        bus: NotificationBus | None = None,
        git_config: GitConfig | None = None,
        kill_switch: KillSwitch | None = None,
        result_channel: ResultChannel | None = None,
    ) -> None:
        self.step_id = step_id
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"rw-{ts}-{uuid.uuid4().hex[:3]}"
        self.history = history
        self.bus = bus or NotificationBus()
        self.git_config = git_config or GitConfig()
        self.kill_switch = kill_switch or KillSwitch()
        self.result_channel = result_channel or ResultChannel()
        self.output = StepOutput(self.result_channel)

    @property
    def is_killed(self) -> bool:
        return self.kill_switch.is_killed

    def println(self, *parts: object) -> None:
        self.output.println(*parts)

    def most_recent_result_with(self, key: str) -> dict[str, Any] | None:
        """Details of the newest earlier run of this step that recorded ``key``."""
        if self.history is None:
            return None
        entry = self.history.most_recent_with(self.step_id, key)
        return entry.details if entry is not None else None


def _find_context(args: tuple[Any, ...], kwargs: dict[str, Any]) -> StepContext:
    ctx = kwargs.get("ctx")
    if isinstance(ctx, StepContext):
        return ctx
    for arg in args:
        if isinstance(arg, StepContext):
            return arg
    raise TypeError("step was called without a StepContext")


def captures_output(step: F) -> F:
    """Prepend everything the step printed to the returned result's ``out``."""

    @functools.wraps(step)
    def wrapper(*args: Any, **kwargs: Any) -> StepResult:
        ctx = _find_context(args, kwargs)
        result = step(*args, **kwargs)
        printed = ctx.output.text
        if not printed:
            return result
        out = "\n".join(part for part in (printed, result.out) if part)
        return result.model_copy(update={"out": out})

    return wrapper  # type: ignore[return-value]
