"""Revision snapshots and the change events derived from them.

A snapshot is the full set of ``ref -> revision`` pairs matched by a watch
predicate at one instant.  ``None`` in place of a snapshot means the remote
could not be read; an empty snapshot means it was read and nothing matched.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict


class RevisionSnapshot(BaseModel):
    """Immutable mapping of ref name to revision id.

    Each poll produces a new snapshot; snapshots are never updated in place.
    Equality is mapping equality, so two polls that saw the same refs at the
    same revisions compare equal regardless of ordering.
    """

    model_config = ConfigDict(frozen=True)

    revisions: dict[str, str] = {}

    @classmethod
    def of(cls, revisions: Mapping[str, str] | None = None) -> RevisionSnapshot:
        return cls(revisions=dict(revisions or {}))

    def get(self, ref: str) -> str | None:
        return self.revisions.get(ref)

    def to_dict(self) -> dict[str, str]:
        """Return a plain copy, the form persisted in step history."""
        return dict(self.revisions)

    def __contains__(self, ref: object) -> bool:
        return ref in self.revisions

    def __str__(self) -> str:
        if not self.revisions:
            return "{}"
        return ", ".join(f"{ref}={rev[:12]}" for ref, rev in sorted(self.revisions.items()))


class ChangeDescriptor(BaseModel):
    """The single ref picked out by the differ."""

    model_config = ConfigDict(frozen=True)

    changed_ref: str
    revision: str | None
    old_revision: str | None = None


class ChangeEvent(BaseModel):
    """A detected ref movement on a remote, ready to hand to later steps."""

    model_config = ConfigDict(frozen=True)

    changed_ref: str
    revision: str | None
    old_revision: str | None = None
    changed_remote: str
    all_revisions: RevisionSnapshot

    def to_details(self) -> dict[str, object]:
        """Flatten into the key/value form carried by a step result."""
        return {
            "changed_ref": self.changed_ref,
            "changed_remote": self.changed_remote,
            "revision": self.revision,
            "old_revision": self.old_revision,
            "all_revisions": self.all_revisions.to_dict(),
        }
