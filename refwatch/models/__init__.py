"""refwatch data models — all Pydantic v2, all frozen (immutable)."""

from refwatch.models.git import Commit, GitConfig, SshConfig, merge_git_config
from refwatch.models.notifications import GIT_REMOTE_POLL_TOPIC, NotificationEvent
from refwatch.models.polling import (
    VALID_POLL_TRANSITIONS,
    PollOutcome,
    PollState,
    WakeReason,
)
from refwatch.models.refspec import (
    CustomRef,
    ExactRef,
    PatternRef,
    RefPredicate,
    RefSpec,
    match_ref,
    match_ref_by_regex,
    to_ref_predicate,
    to_ref_spec,
)
from refwatch.models.results import (
    LAST_SEEN_REVISIONS_KEY,
    StepResult,
    StepStatus,
    failure,
    success,
)
from refwatch.models.snapshot import ChangeDescriptor, ChangeEvent, RevisionSnapshot

__all__ = [
    # snapshots
    "RevisionSnapshot",
    "ChangeDescriptor",
    "ChangeEvent",
    # refs
    "RefPredicate",
    "RefSpec",
    "ExactRef",
    "PatternRef",
    "CustomRef",
    "match_ref",
    "match_ref_by_regex",
    "to_ref_spec",
    "to_ref_predicate",
    # results
    "LAST_SEEN_REVISIONS_KEY",
    "StepStatus",
    "StepResult",
    "success",
    "failure",
    # notifications
    "GIT_REMOTE_POLL_TOPIC",
    "NotificationEvent",
    # polling
    "PollState",
    "VALID_POLL_TRANSITIONS",
    "WakeReason",
    "PollOutcome",
    # git
    "GitConfig",
    "SshConfig",
    "Commit",
    "merge_git_config",
]
