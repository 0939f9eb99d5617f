"""Unit tests for the snapshot differ."""

from __future__ import annotations

import pytest

from refwatch.core.differ import find_changed_revision, new_entries
from refwatch.models.snapshot import RevisionSnapshot

MASTER = "refs/heads/master"
DEVELOP = "refs/heads/develop"
REV_A = "a" * 40
REV_B = "b" * 40
REV_C = "c" * 40


class TestNewEntries:
    def test_moved_ref_is_new(self):
        old = RevisionSnapshot.of({MASTER: REV_A})
        new = RevisionSnapshot.of({MASTER: REV_B})
        assert new_entries(old, new) == {MASTER: REV_B}

    def test_added_ref_is_new(self):
        old = RevisionSnapshot.of({MASTER: REV_A})
        new = RevisionSnapshot.of({MASTER: REV_A, DEVELOP: REV_C})
        assert new_entries(old, new) == {DEVELOP: REV_C}

    def test_everything_is_new_without_old(self):
        new = RevisionSnapshot.of({MASTER: REV_A})
        assert new_entries(None, new) == {MASTER: REV_A}

    def test_removed_ref_is_not_an_entry(self):
        old = RevisionSnapshot.of({MASTER: REV_A, DEVELOP: REV_C})
        new = RevisionSnapshot.of({MASTER: REV_A})
        assert new_entries(old, new) == {}


class TestFindChangedRevision:
    """The differ picks exactly one moved ref and describes it."""

    def test_single_moved_ref(self):
        change = find_changed_revision(
            RevisionSnapshot.of({MASTER: REV_A}), RevisionSnapshot.of({MASTER: REV_B})
        )
        assert change.changed_ref == MASTER
        assert change.revision == REV_B
        assert change.old_revision == REV_A

    def test_new_ref_has_no_old_revision(self):
        change = find_changed_revision(
            RevisionSnapshot.of({MASTER: REV_A}),
            RevisionSnapshot.of({MASTER: REV_A, DEVELOP: REV_C}),
        )
        assert change.changed_ref == DEVELOP
        assert change.revision == REV_C
        assert change.old_revision is None

    def test_no_previous_snapshot(self):
        change = find_changed_revision(None, RevisionSnapshot.of({MASTER: REV_A}))
        assert change.changed_ref == MASTER
        assert change.old_revision is None

    def test_several_moves_report_one_deterministically(self):
        old = RevisionSnapshot.of({MASTER: REV_A, DEVELOP: REV_A})
        new = RevisionSnapshot.of({MASTER: REV_B, DEVELOP: REV_C})
        first = find_changed_revision(old, new)
        second = find_changed_revision(old, new)
        assert first == second
        assert first.changed_ref in (MASTER, DEVELOP)
        assert first.revision == new.get(first.changed_ref)

    def test_removal_only_reports_removed_ref(self):
        old = RevisionSnapshot.of({MASTER: REV_A, DEVELOP: REV_C})
        new = RevisionSnapshot.of({MASTER: REV_A})
        change = find_changed_revision(old, new)
        assert change.changed_ref == DEVELOP
        assert change.revision is None
        assert change.old_revision == REV_C

    def test_identical_snapshots_are_rejected(self):
        snap = RevisionSnapshot.of({MASTER: REV_A})
        with pytest.raises(ValueError):
            find_changed_revision(snap, RevisionSnapshot.of({MASTER: REV_A}))
