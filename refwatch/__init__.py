"""refwatch — trigger pipelines when refs on a git remote move.

A ``wait_for_git`` step polls a remote, waits between polls for a timer,
an out-of-schedule notification or a kill, and reports the first ref that
moved.  The revisions it last reported are kept in step history so restarts
do not re-trigger.
"""

__version__ = "0.1.0"

from refwatch.core.executor import StepExecutor
from refwatch.core.notification_bus import NotificationBus, notify_git
from refwatch.core.step_context import StepContext
from refwatch.models.refspec import match_ref, match_ref_by_regex
from refwatch.steps import clone, list_changes, tag_version, wait_for_git
from refwatch.vcs.ssh import init_ssh

__all__ = [
    "__version__",
    "StepExecutor",
    "StepContext",
    "NotificationBus",
    "notify_git",
    "match_ref",
    "match_ref_by_regex",
    "wait_for_git",
    "clone",
    "list_changes",
    "tag_version",
    "init_ssh",
]
