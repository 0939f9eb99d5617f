"""Out-of-band "check now" notifications."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Topic on the shared bus carrying NotificationEvent payloads.
GIT_REMOTE_POLL_TOPIC = "git-remote-poll-notification"


class NotificationEvent(BaseModel):
    """Ask every watcher of ``remote`` to poll immediately."""

    model_config = ConfigDict(frozen=True)

    remote: str = Field(min_length=1)
