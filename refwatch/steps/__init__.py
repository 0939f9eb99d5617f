"""Pipeline steps: the git trigger and the steps that work on a clone."""

from refwatch.steps.repository import clone, iso_format, list_changes, tag_version
from refwatch.steps.trigger import wait_for_git

__all__ = ["wait_for_git", "clone", "list_changes", "tag_version", "iso_format"]
