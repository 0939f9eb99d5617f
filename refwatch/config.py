"""Runtime configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
REFWATCH_* environment variables; nested git settings use ``__`` as the
delimiter (``REFWATCH_GIT__TIMEOUT=60``).
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from refwatch.models.git import GitConfig


class WatchSettings(BaseSettings):
    """Process-wide settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export REFWATCH_LOG_LEVEL=DEBUG
        export REFWATCH_MS_BETWEEN_POLLS=30000
        export REFWATCH_HISTORY_PATH=/data/history.db
        export REFWATCH_GIT__SSH__IDENTITY_FILE=/keys/deploy_key
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REFWATCH_",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Step history
    history_path: Path = Path(".refwatch/history.db")

    # Polling
    ms_between_polls: int = 10_000
    default_ref: str = "refs/heads/master"

    # Notify endpoint
    notify_host: str = "127.0.0.1"
    notify_port: int = 8080

    # Git transport defaults, merged with per-step overrides
    git: GitConfig = GitConfig()


# Module-level singleton, import as `from refwatch.config import settings`
settings = WatchSettings()
