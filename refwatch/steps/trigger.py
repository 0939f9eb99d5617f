"""The trigger step: wait until a watched ref on a remote moves.

``wait_for_git`` is meant to be the first step of a pipeline.  It remembers
the revisions it last reported in step history, so a restarted pipeline does
not fire again for a commit it has already built.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from refwatch.config import settings
from refwatch.core.notification_bus import only_matching_remote
from refwatch.core.poll_loop import RevisionPoller, current_revisions_or_none
from refwatch.core.step_context import StepContext, captures_output
from refwatch.models.git import merge_git_config
from refwatch.models.refspec import (
    CustomRef,
    ExactRef,
    PatternRef,
    RefSpec,
    to_ref_predicate,
    to_ref_spec,
)
from refwatch.models.results import (
    LAST_SEEN_REVISIONS_KEY,
    StepResult,
    StepStatus,
    success,
)
from refwatch.models.snapshot import RevisionSnapshot
from refwatch.vcs.client import GitClient, GitPythonClient

logger = logging.getLogger(__name__)


def describe_ref(spec: RefSpec) -> str:
    if isinstance(spec, ExactRef):
        return spec.name
    if isinstance(spec, PatternRef):
        return spec.pattern.pattern
    if not isinstance(spec, CustomRef):
        raise TypeError(f"Unsupported ref specification: {spec!r}")
    return getattr(spec.predicate, "__name__", "<custom predicate>")


def last_seen_from_history(ctx: StepContext) -> RevisionSnapshot | None:
    details = ctx.most_recent_result_with(LAST_SEEN_REVISIONS_KEY)
    if details is None or details.get(LAST_SEEN_REVISIONS_KEY) is None:
        return None
    return RevisionSnapshot.of(details[LAST_SEEN_REVISIONS_KEY])


@captures_output
def wait_for_git(
    ctx: StepContext,
    remote: str,
    *,
    ref: str | re.Pattern[str] | RefSpec | Callable[[str], bool] | None = None,
    ms_between_polls: int | None = None,
    client: GitClient | None = None,
    **git_overrides: Any,
) -> StepResult:
    """Wait for the head of a ref on ``remote`` to change.

    Parameters
    ----------
    ctx:
        The step context.  Its kill switch ends the wait with status
        ``killed``; its history supplies the revisions seen by earlier runs.
    remote:
        URL of the remote to watch.
    ref:
        A ref name such as ``refs/heads/master``, a compiled regex matched
        against full ref names, or a predicate on ref names.  Defaults to
        ``settings.default_ref``.
    ms_between_polls:
        Delay between scheduled polls.  Defaults to
        ``settings.ms_between_polls``.  Notifications for ``remote`` cut a
        wait short.
    git_overrides:
        ``GitConfig`` fields (``timeout``, ``ssh``) overriding the context's
        git config for this step.

    Returns
    -------
    StepResult
        ``success`` with ``changed_ref``, ``changed_remote``, ``revision``,
        ``old_revision`` and ``all_revisions`` when a change was found,
        ``killed`` otherwise.  Both carry the revisions to remember under
        ``_git-last-seen-revisions``.
    """
    spec = to_ref_spec(settings.default_ref if ref is None else ref)
    ref_pred = to_ref_predicate(spec)
    ref_label = describe_ref(spec)
    interval = settings.ms_between_polls if ms_between_polls is None else ms_between_polls
    git_config = merge_git_config(ctx.git_config, git_overrides)
    client = client or GitPythonClient()

    initial = last_seen_from_history(ctx)
    if initial is None:
        initial = current_revisions_or_none(
            ctx, client, remote, ref_pred, git_config, ref_label=ref_label
        )

    subscription = only_matching_remote(ctx.bus, remote)
    try:
        poller = RevisionPoller(
            ctx,
            remote,
            ref_pred,
            client=client,
            git_config=git_config,
            ms_between_polls=interval,
            notifications=subscription,
            ref_label=ref_label,
        )
        outcome = poller.run(initial)
    finally:
        ctx.bus.unsubscribe(subscription)

    to_persist = outcome.change.all_revisions if outcome.change is not None else initial
    persisted = to_persist.to_dict() if to_persist is not None else None
    ctx.result_channel.report(LAST_SEEN_REVISIONS_KEY, persisted)

    if outcome.change is None:
        logger.info("Stopped watching %s after %d polls", remote, outcome.polls)
        return StepResult(
            status=StepStatus.KILLED,
            details={LAST_SEEN_REVISIONS_KEY: persisted},
        )

    logger.info(
        "Change on %s: %s %s -> %s",
        remote,
        outcome.change.changed_ref,
        outcome.change.old_revision,
        outcome.change.revision,
    )
    return success(**outcome.change.to_details(), **{LAST_SEEN_REVISIONS_KEY: persisted})
