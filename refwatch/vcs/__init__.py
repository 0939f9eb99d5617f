"""Version-control boundary: the git client protocol and its GitPython backend."""

from refwatch.vcs.client import ConnectivityError, GitClient, GitPythonClient, parse_ls_remote
from refwatch.vcs.ssh import (
    SshConfigurationClashError,
    init_ssh,
    is_ssh_remote,
    transport_env,
)

__all__ = [
    "ConnectivityError",
    "GitClient",
    "GitPythonClient",
    "parse_ls_remote",
    "SshConfigurationClashError",
    "init_ssh",
    "is_ssh_remote",
    "transport_env",
]
