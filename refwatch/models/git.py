"""Git transport configuration and commit records."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict


class SshConfig(BaseModel):
    """Per-step SSH settings, turned into a ``GIT_SSH_COMMAND``."""

    model_config = ConfigDict(frozen=True)

    identity_file: Path | None = None
    known_hosts_file: Path | None = None
    strict_host_key_checking: bool | None = None
    options: dict[str, str] = {}

    def is_empty(self) -> bool:
        return self == SshConfig()


class GitConfig(BaseModel):
    """Settings applied to every git command that talks to a remote."""

    model_config = ConfigDict(frozen=True)

    timeout: int = 20  # seconds
    ssh: SshConfig = SshConfig()


class Commit(BaseModel):
    """One commit, as printed by the change listing."""

    model_config = ConfigDict(frozen=True)

    hash: str
    msg: str
    author: str  # "Name <email>"
    timestamp: datetime


def merge_git_config(base: GitConfig, overrides: Mapping[str, Any] | None = None) -> GitConfig:
    """Overlay step-level overrides on the context's git config.

    Keys that are not ``GitConfig`` fields are ignored, so step keyword
    arguments can be passed straight through.
    """
    if not overrides:
        return base
    relevant = {k: v for k, v in overrides.items() if k in GitConfig.model_fields and v is not None}
    if not relevant:
        return base
    return GitConfig.model_validate({**base.model_dump(), **relevant})
