"""Step executor — runs pipeline steps against a shared history and bus.

The executor stands in for the host pipeline: it builds each step's context,
runs the step, folds history-relevant values the step reported through its
result channel into the result, and records the outcome in step history.
A running step can be killed by its step id from any thread.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from refwatch.core.cancellation import KillSwitch
from refwatch.core.notification_bus import NotificationBus
from refwatch.core.step_context import ResultChannel, StepContext
from refwatch.core.step_history import StepHistory
from refwatch.models.git import GitConfig
from refwatch.models.results import StepResult, failure

logger = logging.getLogger(__name__)

StepFn = Callable[[StepContext], StepResult]


class StepExecutor:
    """Runs steps and records their results.

    Parameters
    ----------
    history:
        Where finished results are recorded.  ``None`` keeps nothing, so
        steps start from scratch on every run.
    bus:
        Notification bus shared by every step this executor runs.
    git_config:
        Default git configuration handed to each step context.
    """

    def __init__(
        self,
        history: StepHistory | None = None,
        bus: NotificationBus | None = None,
        git_config: GitConfig | None = None,
    ) -> None:
        self.history = history
        self.bus = bus or NotificationBus()
        self.git_config = git_config or GitConfig()
        self._running: dict[str, StepContext] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Context creation
    # ------------------------------------------------------------------

    def new_context(self, step_id: str, *, run_id: str | None = None) -> StepContext:
        return StepContext(
            step_id,
            run_id=run_id,
            history=self.history,
            bus=self.bus,
            git_config=self.git_config,
            kill_switch=KillSwitch(),
            result_channel=ResultChannel(),
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(
        self, step_id: str, step: StepFn, *, ctx: StepContext | None = None
    ) -> StepResult:
        """Run ``step`` to completion and record its result.

        Exceptions raised by the step become ``failure`` results carrying the
        step's output and the error message; they are logged, not re-raised.
        """
        ctx = ctx or self.new_context(step_id)
        with self._lock:
            self._running[step_id] = ctx

        logger.info("Running step %s (%s)", step_id, ctx.run_id)
        try:
            result = step(ctx)
        except Exception as exc:
            logger.exception("Step %s failed with an exception", step_id)
            printed = ctx.output.text
            message = f"{type(exc).__name__}: {exc}"
            result = failure("\n".join(p for p in (printed, message) if p))
        finally:
            with self._lock:
                if self._running.get(step_id) is ctx:
                    del self._running[step_id]

        result = self._merge_reported(ctx, result)
        if self.history is not None:
            self.history.append(ctx.run_id, step_id, result)
        logger.info("Step %s finished: %s", step_id, result.status.value)
        return result

    @staticmethod
    def _merge_reported(ctx: StepContext, result: StepResult) -> StepResult:
        # Values reported under "_" keys are authoritative over the returned details.
        reported = {
            key: value
            for key, value in ctx.result_channel.values().items()
            if key.startswith("_")
        }
        if not reported:
            return result
        return result.with_details(**reported)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def kill(self, step_id: str) -> bool:
        """Flip the kill switch of a running step.  Returns whether one was running."""
        with self._lock:
            ctx = self._running.get(step_id)
        if ctx is None:
            return False
        logger.info("Killing step %s (%s)", step_id, ctx.run_id)
        ctx.kill_switch.kill()
        return True

    def running_steps(self) -> list[str]:
        with self._lock:
            return list(self._running)
