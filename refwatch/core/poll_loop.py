"""Poll loop — waits for a remote's revisions to move.

Each iteration checks the kill switch, takes a snapshot of the remote and
compares it to the last one seen.  Between polls the loop sleeps until the
first of three wake sources fires: the kill bridge, a poll notification for
this remote, or the poll interval elapsing.  Every state change is validated
against ``VALID_POLL_TRANSITIONS``.
"""

from __future__ import annotations

import logging

from refwatch.core.cancellation import CancellationBridge, open_bridge
from refwatch.core.channels import Channel, select
from refwatch.core.differ import find_changed_revision
from refwatch.core.notification_bus import Subscription
from refwatch.core.step_context import StepContext
from refwatch.models.git import GitConfig
from refwatch.models.polling import (
    VALID_POLL_TRANSITIONS,
    PollOutcome,
    PollState,
    WakeReason,
)
from refwatch.models.refspec import RefPredicate
from refwatch.models.snapshot import ChangeEvent, RevisionSnapshot
from refwatch.vcs.client import GitClient
from refwatch.vcs.ssh import SshConfigurationClashError

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when the poll loop attempts a transition the table forbids."""


def current_revisions_or_none(
    ctx: StepContext,
    client: GitClient,
    remote: str,
    ref_pred: RefPredicate,
    git_config: GitConfig,
    *,
    ref_label: str = "",
) -> RevisionSnapshot | None:
    """Snapshot the remote, or ``None`` if it cannot be read right now.

    Read failures are logged and printed, never raised; a misconfigured SSH
    transport is not a transient failure and propagates.
    """
    try:
        return client.list_remote_revisions(remote, ref_pred, git_config)
    except SshConfigurationClashError:
        raise
    except Exception as exc:
        logger.warning(
            "Could not get current revision for ref %s on %s",
            ref_label,
            remote,
            exc_info=exc,
        )
        ctx.println(f"could not get current revision for ref {ref_label} on {remote} : {exc}")
        return None


class RevisionPoller:
    """Polls one remote until a watched ref moves or the step is killed.

    Parameters
    ----------
    ctx:
        Context of the step running the loop.  Its kill switch ends the loop;
        progress is printed and reported through it.
    remote:
        Remote URL, as understood by the git client.
    ref_pred:
        Which refs on the remote count.
    notifications:
        Subscription delivering out-of-schedule poll requests for ``remote``.
        ``None`` waits on the timer and kill switch only.
    ref_label:
        Human-readable description of ``ref_pred`` used in output.
    """

    def __init__(
        self,
        ctx: StepContext,
        remote: str,
        ref_pred: RefPredicate,
        *,
        client: GitClient,
        git_config: GitConfig,
        ms_between_polls: int,
        notifications: Subscription | None = None,
        ref_label: str = "",
    ) -> None:
        if ms_between_polls < 0:
            raise ValueError("ms_between_polls must not be negative")
        self._ctx = ctx
        self._remote = remote
        self._ref_pred = ref_pred
        self._client = client
        self._git_config = git_config
        self._ms_between_polls = ms_between_polls
        self._notifications = notifications
        self._ref_label = ref_label or "<matching refs>"
        self._state = PollState.TAKING_SNAPSHOT
        self._polls = 0

    @property
    def state(self) -> PollState:
        return self._state

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self, last_seen: RevisionSnapshot | None) -> PollOutcome:
        """Block until a change is found or the step is killed."""
        self._ctx.println(f"Last seen revisions: {last_seen}. Waiting for new commit...")
        bridge = open_bridge(self._ctx.kill_switch)
        try:
            return self._loop(last_seen, bridge)
        finally:
            bridge.close()

    def _loop(
        self, last_seen: RevisionSnapshot | None, bridge: CancellationBridge
    ) -> PollOutcome:
        current: RevisionSnapshot | None = None
        change: ChangeEvent | None = None
        while True:
            if self._state == PollState.TAKING_SNAPSHOT:
                if self._ctx.is_killed:
                    self._transition(PollState.CANCELLED)
                    continue
                current = self._fetch()
                self._polls += 1
                if current is None:
                    self._transition(PollState.WAITING)
                else:
                    self._transition(PollState.COMPARING)

            elif self._state == PollState.COMPARING:
                if current is not None and current != last_seen:
                    change = self._describe_change(last_seen, current)
                    self._transition(PollState.REPORT_CHANGE)
                else:
                    self._transition(PollState.WAITING)

            elif self._state == PollState.WAITING:
                self._ctx.result_channel.report("status", "waiting")
                reason = self._wait(bridge)
                if reason == WakeReason.KILLED:
                    self._transition(PollState.CANCELLED)
                else:
                    if reason == WakeReason.NOTIFIED:
                        self._ctx.println("Received notification. Polling out of schedule")
                    self._transition(PollState.TAKING_SNAPSHOT)

            elif self._state == PollState.REPORT_CHANGE:
                return PollOutcome(
                    final_state=self._state,
                    change=change,
                    polls=self._polls,
                )

            else:
                logger.info("Poll loop for %s cancelled after %d polls", self._remote, self._polls)
                return PollOutcome(
                    final_state=PollState.CANCELLED,
                    polls=self._polls,
                )

    # ------------------------------------------------------------------
    # Steps of an iteration
    # ------------------------------------------------------------------

    def _fetch(self) -> RevisionSnapshot | None:
        return current_revisions_or_none(
            self._ctx,
            self._client,
            self._remote,
            self._ref_pred,
            self._git_config,
            ref_label=self._ref_label,
        )

    def _wait(self, bridge: CancellationBridge) -> WakeReason:
        channels: list[Channel] = [bridge.channel]
        if self._notifications is not None and not self._notifications.closed:
            channels.append(self._notifications.channel)
        # Kill is listed first so it wins over a simultaneous notification.
        ready, _ = select(channels, self._ms_between_polls / 1000)
        if ready is None:
            return WakeReason.TIMEOUT
        if ready is bridge.channel:
            return WakeReason.KILLED
        return WakeReason.NOTIFIED

    def _describe_change(
        self, last_seen: RevisionSnapshot | None, current: RevisionSnapshot
    ) -> ChangeEvent:
        changed = find_changed_revision(last_seen, current)
        self._ctx.println(f"Found new commit: {changed.revision} on {changed.changed_ref}")
        return ChangeEvent(
            changed_ref=changed.changed_ref,
            revision=changed.revision,
            old_revision=changed.old_revision,
            changed_remote=self._remote,
            all_revisions=current,
        )

    def _transition(self, target: PollState) -> None:
        allowed = VALID_POLL_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition poll loop from {self._state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        logger.debug("Poll loop %s: %s -> %s", self._remote, self._state.value, target.value)
        self._state = target
