"""SSH transport configuration for git remotes.

Two mutually exclusive ways exist to configure SSH: the deprecated
process-wide ``init_ssh()`` and per-step ``ssh`` settings in the git config.
Using both is ambiguous about which credentials apply, so engaging an SSH
transport while both are set fails hard.
"""

from __future__ import annotations

import logging
import re
import shlex
import warnings
from typing import Any

from refwatch.models.git import GitConfig, SshConfig

logger = logging.getLogger(__name__)

SSH_CONFIG_CLASH_MSG = "\n".join(
    [
        "",
        "***** SSH CONFIGURATION CLASHES! *****",
        "You likely called init_ssh() and supplied ssh configuration to the git config at the same time.",
        "Migrate all configuration from init_ssh() to the git config to resolve this error.",
        "",
    ]
)

# user@host:path, the scp-like syntax git treats as SSH.
_SCP_LIKE = re.compile(r"^(?:[\w.+-]+@)?[\w.-]+:(?!//)")

_global_ssh_config: SshConfig | None = None


class SshConfigurationClashError(RuntimeError):
    """Raised when global and per-step SSH configuration are both present."""


def init_ssh(**config: Any) -> None:
    """Configure SSH for every git command in this process.

    Deprecated: pass ``ssh={...}`` in the git config of each step instead.
    """
    global _global_ssh_config
    warnings.warn(
        "init_ssh() is deprecated; pass ssh settings through the git config instead",
        DeprecationWarning,
        stacklevel=2,
    )
    _global_ssh_config = SshConfig.model_validate(config)
    logger.info("Global SSH configuration installed")


def init_ssh_called() -> bool:
    return _global_ssh_config is not None


def reset_init_ssh() -> None:
    """Forget the global SSH configuration."""
    global _global_ssh_config
    _global_ssh_config = None


def is_ssh_remote(remote: str) -> bool:
    """Whether git would talk to ``remote`` over SSH."""
    lowered = remote.lower()
    if lowered.startswith(("ssh://", "git+ssh://", "ssh+git://")):
        return True
    if "://" in remote:
        return False
    return _SCP_LIKE.match(remote) is not None


def ssh_command(config: SshConfig) -> str:
    """Render an ``ssh`` invocation suitable for ``GIT_SSH_COMMAND``."""
    parts = ["ssh"]
    if config.identity_file is not None:
        parts += ["-i", shlex.quote(str(config.identity_file)), "-o", "IdentitiesOnly=yes"]
    if config.known_hosts_file is not None:
        parts += ["-o", shlex.quote(f"UserKnownHostsFile={config.known_hosts_file}")]
    if config.strict_host_key_checking is not None:
        value = "yes" if config.strict_host_key_checking else "no"
        parts += ["-o", f"StrictHostKeyChecking={value}"]
    for key, value in sorted(config.options.items()):
        parts += ["-o", shlex.quote(f"{key}={value}")]
    return " ".join(parts)


def transport_env(remote: str, git_config: GitConfig) -> dict[str, str]:
    """Environment for a git command that contacts ``remote``.

    Raises
    ------
    SshConfigurationClashError
        If ``remote`` uses SSH and both ``init_ssh()`` and a per-step
        ``ssh`` configuration are in effect.
    """
    env = {"GIT_TERMINAL_PROMPT": "0"}
    if not is_ssh_remote(remote):
        return env

    if init_ssh_called() and not git_config.ssh.is_empty():
        raise SshConfigurationClashError(SSH_CONFIG_CLASH_MSG)

    ssh = _global_ssh_config if _global_ssh_config is not None else git_config.ssh
    if not ssh.is_empty():
        env["GIT_SSH_COMMAND"] = ssh_command(ssh)
    return env
