"""Unit tests for the GitPython-backed client, run against local repositories."""

from __future__ import annotations

from pathlib import Path

import pytest
from git import Repo

from refwatch.models.git import GitConfig
from refwatch.models.refspec import match_ref, match_ref_by_regex
from refwatch.vcs.client import ConnectivityError, GitClient, GitPythonClient, parse_ls_remote

pytestmark = pytest.mark.git

LS_REMOTE_OUTPUT = (
    "1111111111111111111111111111111111111111\tHEAD\n"
    "2222222222222222222222222222222222222222\trefs/heads/master\n"
    "3333333333333333333333333333333333333333\trefs/tags/v1.0\n"
    "4444444444444444444444444444444444444444\trefs/tags/v1.0^{}\n"
)


class TestParseLsRemote:
    def test_skips_peeled_tags(self):
        assert parse_ls_remote(LS_REMOTE_OUTPUT) == {
            "HEAD": "1" * 40,
            "refs/heads/master": "2" * 40,
            "refs/tags/v1.0": "3" * 40,
        }

    def test_ignores_blank_and_malformed_lines(self):
        assert parse_ls_remote("\n\nnot-a-ref-line\n") == {}


class TestListRemoteRevisions:
    def test_heads_and_tags(self, origin_repo: Repo):
        client = GitPythonClient()
        snapshot = client.list_remote_revisions(
            origin_repo.working_tree_dir, lambda ref: True, GitConfig()
        )
        assert snapshot.get("refs/heads/master") == origin_repo.head.commit.hexsha
        assert snapshot.get("refs/tags/v1") == origin_repo.tags["v1"].commit.hexsha
        assert "HEAD" not in snapshot

    def test_predicate_filters_refs(self, origin_repo: Repo):
        client = GitPythonClient()
        snapshot = client.list_remote_revisions(
            origin_repo.working_tree_dir, match_ref("refs/heads/master"), GitConfig()
        )
        assert snapshot.to_dict() == {"refs/heads/master": origin_repo.head.commit.hexsha}

    def test_sees_new_commit(self, origin_repo: Repo, add_commit):
        client = GitPythonClient()
        remote = origin_repo.working_tree_dir
        pred = match_ref_by_regex(r"refs/heads/.*")
        before = client.list_remote_revisions(remote, pred, GitConfig())
        sha = add_commit(origin_repo, "NEW.md", "x\n", "fourth commit", offset_s=180)
        after = client.list_remote_revisions(remote, pred, GitConfig())
        assert before != after
        assert after.get("refs/heads/master") == sha

    def test_unreachable_remote(self, tmp_path: Path):
        with pytest.raises(ConnectivityError):
            GitPythonClient().list_remote_revisions(
                str(tmp_path / "missing"), lambda ref: True, GitConfig()
            )

    def test_satisfies_protocol(self):
        assert isinstance(GitPythonClient(), GitClient)


class TestLocalOperations:
    def test_commits_between_oldest_first(self, origin_repo: Repo):
        client = GitPythonClient()
        cwd = Path(origin_repo.working_tree_dir)
        first = origin_repo.commit("HEAD~2").hexsha
        commits = client.commits_between(cwd, first, "HEAD")
        assert [c.msg for c in commits] == ["second commit", "third commit"]
        assert commits[0].author == "Jane Doe <jane@example.com>"

    def test_get_single_commit(self, origin_repo: Repo):
        commit = GitPythonClient().get_single_commit(Path(origin_repo.working_tree_dir), "HEAD")
        assert commit.hash == origin_repo.head.commit.hexsha
        assert commit.msg == "third commit"
        assert commit.timestamp.utcoffset().total_seconds() == 3600

    def test_find_ref_prefers_remote_tracking(self, origin_repo: Repo, tmp_path: Path):
        client = GitPythonClient()
        cwd = tmp_path / "clone"
        client.clone_repo(origin_repo.working_tree_dir, cwd, GitConfig())
        assert client.find_ref(cwd, "master") == "origin/master"
        assert client.find_ref(cwd, "v1") == "v1"
        assert client.find_ref(cwd, "does-not-exist") is None

    def test_tag_revision(self, origin_repo: Repo):
        cwd = Path(origin_repo.working_tree_dir)
        GitPythonClient().tag_revision(cwd, "HEAD~1", "v0.9")
        assert origin_repo.tags["v0.9"].commit == origin_repo.commit("HEAD~1")
