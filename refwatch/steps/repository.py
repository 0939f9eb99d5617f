"""Steps that work on a local clone: clone, list changes, tag a version."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from refwatch.core.step_context import StepContext, captures_output
from refwatch.models.git import Commit, merge_git_config
from refwatch.models.results import StepResult, StepStatus, failure, success
from refwatch.vcs.client import GitClient, GitPythonClient

logger = logging.getLogger(__name__)

NO_CWD_MSG = "No working directory (:cwd) defined. Did you clone the repository?"
NO_GIT_DIR_MSG = "No .git directory found in working directory. Did you clone the repository?"


def iso_format(timestamp: datetime) -> str:
    """``2016-03-01 21:13:37 +0100``, in the timestamp's own offset."""
    return timestamp.strftime("%Y-%m-%d %H:%M:%S %z")


def format_commit(commit: Commit) -> str:
    return f"{commit.hash} | {iso_format(commit.timestamp)} | {commit.author} | {commit.msg}"


def no_git_repo(cwd: str | Path) -> bool:
    return not (Path(cwd) / ".git").exists()


def _output_commits(ctx: StepContext, commits: list[Commit]) -> StepResult:
    for commit in commits:
        ctx.println(format_commit(commit))
    return success(commits=[c.model_dump(mode="json") for c in commits])


@captures_output
def clone(
    ctx: StepContext,
    repo: str,
    ref: str | None,
    cwd: str | Path,
    *,
    client: GitClient | None = None,
    **git_overrides: Any,
) -> StepResult:
    """Clone ``repo`` into ``cwd`` and check out ``ref`` (default ``master``).

    The ref is looked up as a remote-tracking branch first (``origin/<ref>``),
    then as given, so branch names, tags and revisions all work.
    """
    ref = ref or "master"
    client = client or GitPythonClient()
    git_config = merge_git_config(ctx.git_config, git_overrides)

    ctx.println(f"Cloning {ref} of {repo}")
    client.clone_repo(repo, Path(cwd), git_config)
    existing_ref = client.find_ref(Path(cwd), ref)
    if existing_ref is None:
        ctx.println("Failure: Could not find ref", ref)
        return StepResult(status=StepStatus.FAILURE)
    client.checkout_ref(Path(cwd), existing_ref)
    return success()


@captures_output
def list_changes(
    args: Mapping[str, Any], ctx: StepContext, *, client: GitClient | None = None
) -> StepResult:
    """Print the commits between ``old_revision`` and ``revision`` in ``cwd``.

    ``args`` is the merged output of earlier steps, typically a trigger result
    plus the working directory of a clone.  Without both revisions only the
    current ``HEAD`` is shown.
    """
    old_revision = args.get("old_revision")
    new_revision = args.get("revision")
    cwd = args.get("cwd")

    if cwd is None:
        return failure(NO_CWD_MSG)
    if no_git_repo(cwd):
        return failure(NO_GIT_DIR_MSG)

    client = client or GitPythonClient()
    if old_revision is None or new_revision is None:
        ctx.println("No old or current revision found.")
        ctx.println("Current HEAD:")
        return _output_commits(ctx, [client.get_single_commit(Path(cwd), "HEAD")])
    return _output_commits(ctx, client.commits_between(Path(cwd), old_revision, new_revision))


@captures_output
def tag_version(
    ctx: StepContext,
    cwd: str | Path | None,
    repo: str | None,
    revision: str | None,
    tag: str | None,
    *,
    client: GitClient | None = None,
    **git_overrides: Any,
) -> StepResult:
    """Tag ``revision`` (default ``HEAD``) in ``cwd`` and push to ``repo``.

    All branches and all tags are pushed.
    """
    revision = revision or "HEAD"
    if cwd is None:
        return failure(NO_CWD_MSG)
    if no_git_repo(cwd):
        return failure(NO_GIT_DIR_MSG)
    if not tag:
        return failure("No tag name was given.")
    if not repo:
        return failure("No remote repository was given.")

    client = client or GitPythonClient()
    git_config = merge_git_config(ctx.git_config, git_overrides)
    client.tag_revision(Path(cwd), revision, tag)
    client.push(Path(cwd), repo, git_config)
    return success(tag=tag, revision=revision)
