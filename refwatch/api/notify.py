"""FastAPI router for the poll notification endpoint.

``POST /notify-git?remote=<url>`` asks every watcher of ``<url>`` to poll now
instead of waiting for its next scheduled poll.  Point a repository webhook
at it to trigger builds without waiting out the poll interval.
"""

# NOTE: Do NOT use `from __future__ import annotations` in this module.
# FastAPI needs runtime-accessible annotations to extract query parameters.

import logging
from typing import Annotated

from fastapi import APIRouter, FastAPI, Query, Response, status
from fastapi.responses import PlainTextResponse

from refwatch.core.notification_bus import NotificationBus, notify_git

logger = logging.getLogger(__name__)

MISSING_REMOTE_MSG = (
    "Mandatory parameter 'remote' not found. "
    "Example: <host>/notify-git?remote=git@github.com:flosell/testrepo"
)


def create_notify_router(bus: NotificationBus) -> APIRouter:
    """Create a router publishing poll notifications onto ``bus``.

    Args:
        bus: The notification bus the watchers subscribe to.

    Returns:
        APIRouter exposing ``POST /notify-git``.
    """
    router = APIRouter(tags=["notifications"])

    @router.post(
        "/notify-git",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Ask watchers of a remote to poll now",
        responses={400: {"description": "The remote parameter is missing"}},
    )
    def notify(
        remote: Annotated[
            str | None,
            Query(description="Remote URL exactly as the watchers were configured with"),
        ] = None,
    ) -> Response:
        if not remote:
            logger.debug("Received invalid git notification: 'remote' was missing")
            return PlainTextResponse(MISSING_REMOTE_MSG, status_code=status.HTTP_400_BAD_REQUEST)
        logger.debug("Notifying git about update on remote %s", remote)
        notify_git(bus, remote)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


def create_app(bus: NotificationBus) -> FastAPI:
    """Build a standalone app serving only the notification endpoint."""
    app = FastAPI(title="refwatch", description="Git change trigger notifications")
    app.include_router(create_notify_router(bus))
    return app
