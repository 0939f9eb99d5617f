"""Shared test fixtures for refwatch."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from git import Actor, Repo

from refwatch.core.cancellation import KillSwitch
from refwatch.core.notification_bus import NotificationBus
from refwatch.core.step_context import ResultChannel, StepContext
from refwatch.core.step_history import StepHistory
from refwatch.models.git import Commit, GitConfig
from refwatch.models.refspec import RefPredicate
from refwatch.models.snapshot import RevisionSnapshot
from refwatch.vcs import ssh

AUTHOR = Actor("Jane Doe", "jane@example.com")
# 2016-03-01 21:13:37 +0100
BASE_EPOCH = 1456863217


# ---------------------------------------------------------------------------
# Fake git client
# ---------------------------------------------------------------------------


class FakeGitClient:
    """Scripted ``GitClient`` for driving the poll loop.

    Each ``list_remote_revisions`` call consumes the next scripted response;
    the last one repeats once the script runs out.  A response is a
    ``ref -> revision`` dict (filtered through the caller's predicate) or an
    exception instance to raise.
    """

    def __init__(self, responses: list[dict[str, str] | Exception]) -> None:
        if not responses:
            raise ValueError("at least one scripted response is required")
        self._responses = list(responses)
        self._lock = threading.Lock()
        self.calls = 0
        self.remotes: list[str] = []
        self.git_configs: list[GitConfig] = []
        self._call_events: dict[int, threading.Event] = {}

    def list_remote_revisions(
        self, remote: str, ref_pred: RefPredicate, git_config: GitConfig
    ) -> RevisionSnapshot:
        with self._lock:
            index = min(self.calls, len(self._responses) - 1)
            self.calls += 1
            self.remotes.append(remote)
            self.git_configs.append(git_config)
            response = self._responses[index]
            events = [e for n, e in self._call_events.items() if self.calls >= n]
        for event in events:
            event.set()
        if isinstance(response, Exception):
            raise response
        return RevisionSnapshot.of({r: v for r, v in response.items() if ref_pred(r)})

    def wait_for_calls(self, count: int, timeout: float = 5.0) -> bool:
        with self._lock:
            if self.calls >= count:
                return True
            event = self._call_events.setdefault(count, threading.Event())
        return event.wait(timeout)

    # Local operations are not scripted.
    def clone_repo(self, repo: str, cwd: Path, git_config: GitConfig) -> None:
        raise AssertionError("clone_repo is not expected here")

    def find_ref(self, cwd: Path, ref: str) -> str | None:
        raise AssertionError("find_ref is not expected here")

    def checkout_ref(self, cwd: Path, ref: str) -> None:
        raise AssertionError("checkout_ref is not expected here")

    def commits_between(self, cwd: Path, from_revision: str, to_revision: str) -> list[Commit]:
        raise AssertionError("commits_between is not expected here")

    def get_single_commit(self, cwd: Path, revision: str) -> Commit:
        raise AssertionError("get_single_commit is not expected here")

    def tag_revision(self, cwd: Path, revision: str, tag: str) -> None:
        raise AssertionError("tag_revision is not expected here")

    def push(self, cwd: Path, remote: str, git_config: GitConfig) -> None:
        raise AssertionError("push is not expected here")


@pytest.fixture
def make_fake_client() -> Callable[..., FakeGitClient]:
    """Factory fixture: ``make_fake_client({MASTER: REV_A}, ConnectivityError(...), ...)``."""

    def _factory(*responses: dict[str, str] | Exception) -> FakeGitClient:
        return FakeGitClient(list(responses))

    return _factory


# ---------------------------------------------------------------------------
# Host pipeline pieces
# ---------------------------------------------------------------------------


@pytest.fixture
def history(tmp_path: Path) -> StepHistory:
    """Provide a fresh StepHistory backed by a temp SQLite database."""
    return StepHistory(tmp_path / "history.db")


@pytest.fixture
def bus() -> NotificationBus:
    return NotificationBus()


@pytest.fixture
def kill_switch() -> KillSwitch:
    return KillSwitch()


@pytest.fixture
def make_ctx(
    history: StepHistory, bus: NotificationBus
) -> Callable[..., StepContext]:
    """Factory fixture: a StepContext sharing the test history and bus."""

    def _factory(step_id: str = "wait-for-git", **overrides: Any) -> StepContext:
        defaults: dict[str, Any] = {
            "run_id": "rw-test-run-001",
            "history": history,
            "bus": bus,
            "kill_switch": KillSwitch(),
            "result_channel": ResultChannel(),
        }
        defaults.update(overrides)
        return StepContext(step_id, **defaults)

    return _factory


@pytest.fixture
def ctx(make_ctx: Callable[..., StepContext]) -> StepContext:
    """Convenience: a ready-made StepContext with test defaults."""
    return make_ctx()


@pytest.fixture
def waiting_signal() -> Callable[[StepContext], threading.Event]:
    """Return an Event set once the step reports ``status=waiting``."""

    def _attach(step_ctx: StepContext) -> threading.Event:
        event = threading.Event()

        def _listener(key: str, value: Any) -> None:
            if key == "status" and value == "waiting":
                event.set()

        step_ctx.result_channel.add_listener(_listener)
        return event

    return _attach


@pytest.fixture(autouse=True)
def _reset_global_ssh() -> Iterator[None]:
    ssh.reset_init_ssh()
    yield
    ssh.reset_init_ssh()


# ---------------------------------------------------------------------------
# Local git repositories
# ---------------------------------------------------------------------------


def commit_file(repo: Repo, name: str, content: str, message: str, offset_s: int = 0) -> str:
    """Write ``name`` into the work tree and commit it.  Returns the hexsha."""
    path = Path(repo.working_tree_dir) / name
    path.write_text(content)
    repo.index.add([name])
    date = f"{BASE_EPOCH + offset_s} +0100"
    commit = repo.index.commit(
        message,
        author=AUTHOR,
        committer=AUTHOR,
        author_date=date,
        commit_date=date,
    )
    return commit.hexsha


@pytest.fixture
def add_commit() -> Callable[..., str]:
    """Expose ``commit_file`` to test modules."""
    return commit_file


@pytest.fixture
def origin_repo(tmp_path: Path) -> Repo:
    """A non-bare repository on ``master`` with three commits and tag ``v1``.

    The tag points at the second commit.
    """
    repo = Repo.init(tmp_path / "origin")
    commit_file(repo, "README.md", "hello\n", "initial commit")
    repo.git.branch("-M", "master")
    commit_file(repo, "README.md", "hello again\n", "second commit", offset_s=60)
    repo.create_tag("v1")
    commit_file(repo, "CHANGES.md", "- third\n", "third commit", offset_s=120)
    return repo
