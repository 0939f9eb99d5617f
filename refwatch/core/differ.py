"""Snapshot differ — which ref moved between two snapshots."""

from __future__ import annotations

from refwatch.models.snapshot import ChangeDescriptor, RevisionSnapshot


def new_entries(
    old: RevisionSnapshot | None, new: RevisionSnapshot
) -> dict[str, str]:
    """Entries of ``new`` that are absent from ``old`` or carry another revision."""
    previous = old.revisions if old is not None else {}
    return {
        ref: rev for ref, rev in new.revisions.items() if previous.get(ref) != rev
    }


def find_changed_revision(
    old: RevisionSnapshot | None, new: RevisionSnapshot
) -> ChangeDescriptor:
    """Pick one changed ref and describe its move.

    When several refs moved at once only one is reported; which one is not
    part of the contract (currently the lexically smallest).  If the only
    difference is refs that disappeared, the first removed ref is reported
    with ``revision=None``.

    Callers must only diff snapshots that differ.
    """
    added_or_moved = new_entries(old, new)
    if added_or_moved:
        changed_ref = min(added_or_moved)
        return ChangeDescriptor(
            changed_ref=changed_ref,
            revision=new.get(changed_ref),
            old_revision=old.get(changed_ref) if old is not None else None,
        )

    removed = sorted(set(old.revisions) - set(new.revisions)) if old is not None else []
    if not removed:
        raise ValueError("snapshots are identical; there is no change to describe")
    changed_ref = removed[0]
    return ChangeDescriptor(
        changed_ref=changed_ref,
        revision=None,
        old_revision=old.get(changed_ref) if old is not None else None,
    )
