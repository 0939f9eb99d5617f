"""Git client — the thin, swappable boundary to version control.

``GitClient`` is the protocol the steps and the poll loop depend on;
``GitPythonClient`` implements it with GitPython.  Tests substitute fakes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import git
from git import GitCommandError, Repo
from git.objects.commit import Commit as GitCommit

from refwatch.models.git import Commit, GitConfig
from refwatch.models.refspec import RefPredicate
from refwatch.models.snapshot import RevisionSnapshot
from refwatch.vcs.ssh import transport_env

logger = logging.getLogger(__name__)


class ConnectivityError(RuntimeError):
    """Raised when a remote cannot be reached or refuses to answer."""


@runtime_checkable
class GitClient(Protocol):
    """Operations the pipeline steps need from version control."""

    def list_remote_revisions(
        self, remote: str, ref_pred: RefPredicate, git_config: GitConfig
    ) -> RevisionSnapshot:
        """Snapshot of the remote's heads and tags accepted by ``ref_pred``.

        Raises ``ConnectivityError`` when the remote cannot be read.
        """
        ...

    def clone_repo(self, repo: str, cwd: Path, git_config: GitConfig) -> None: ...

    def find_ref(self, cwd: Path, ref: str) -> str | None:
        """Resolve ``origin/<ref>`` or ``<ref>`` in a clone, ``None`` if neither exists."""
        ...

    def checkout_ref(self, cwd: Path, ref: str) -> None: ...

    def commits_between(self, cwd: Path, from_revision: str, to_revision: str) -> list[Commit]:
        """Commits reachable from ``to_revision`` but not ``from_revision``, oldest first."""
        ...

    def get_single_commit(self, cwd: Path, revision: str) -> Commit: ...

    def tag_revision(self, cwd: Path, revision: str, tag: str) -> None: ...

    def push(self, cwd: Path, remote: str, git_config: GitConfig) -> None: ...


def parse_ls_remote(output: str) -> dict[str, str]:
    """Parse ``git ls-remote`` output into ``ref -> revision``.

    Peeled tag lines (``refs/tags/x^{}``) are skipped; the tag ref itself
    keeps the revision the remote advertises for it.
    """
    revisions: dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        revision, _, ref = line.partition("\t")
        if not ref or ref.endswith("^{}"):
            continue
        revisions[ref.strip()] = revision.strip()
    return revisions


def _to_commit(commit: GitCommit) -> Commit:
    return Commit(
        hash=commit.hexsha,
        msg=commit.summary if isinstance(commit.summary, str) else commit.summary.decode(),
        author=f"{commit.author.name} <{commit.author.email}>",
        timestamp=commit.committed_datetime,
    )


class GitPythonClient:
    """``GitClient`` backed by GitPython and the ``git`` executable."""

    def list_remote_revisions(
        self, remote: str, ref_pred: RefPredicate, git_config: GitConfig
    ) -> RevisionSnapshot:
        env = transport_env(remote, git_config)
        try:
            output = git.Git().ls_remote(
                "--heads",
                "--tags",
                remote,
                env=env,
                kill_after_timeout=git_config.timeout,
            )
        except GitCommandError as exc:
            raise ConnectivityError(
                f"could not list refs on {remote}: {exc.stderr.strip() if exc.stderr else exc}"
            ) from exc
        revisions = {
            ref: rev for ref, rev in parse_ls_remote(output).items() if ref_pred(ref)
        }
        return RevisionSnapshot.of(revisions)

    def clone_repo(self, repo: str, cwd: Path, git_config: GitConfig) -> None:
        logger.info("Cloning %s into %s", repo, cwd)
        Repo.clone_from(repo, str(cwd), env=transport_env(repo, git_config))

    def find_ref(self, cwd: Path, ref: str) -> str | None:
        repo = Repo(str(cwd))
        for candidate in (f"origin/{ref}", ref):
            try:
                repo.git.rev_parse("--verify", "--quiet", f"{candidate}^{{commit}}")
            except GitCommandError:
                continue
            return candidate
        return None

    def checkout_ref(self, cwd: Path, ref: str) -> None:
        logger.info("Checking out %s in %s", ref, cwd)
        Repo(str(cwd)).git.checkout(ref)

    def commits_between(self, cwd: Path, from_revision: str, to_revision: str) -> list[Commit]:
        repo = Repo(str(cwd))
        commits = list(repo.iter_commits(f"{from_revision}..{to_revision}"))
        return [_to_commit(c) for c in reversed(commits)]

    def get_single_commit(self, cwd: Path, revision: str) -> Commit:
        return _to_commit(Repo(str(cwd)).commit(revision))

    def tag_revision(self, cwd: Path, revision: str, tag: str) -> None:
        logger.info("Tagging %s with %s", revision, tag)
        repo = Repo(str(cwd))
        repo.create_tag(tag, ref=repo.commit(revision))

    def push(self, cwd: Path, remote: str, git_config: GitConfig) -> None:
        env = transport_env(remote, git_config)
        logger.info("Pushing branches and tags to %s", remote)
        repo = Repo(str(cwd))
        repo.git.push(remote, "--all", env=env)
        repo.git.push(remote, "--tags", env=env)
