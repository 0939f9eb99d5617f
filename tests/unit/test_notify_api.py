"""Tests for the POST /notify-git endpoint."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from refwatch.api.notify import MISSING_REMOTE_MSG, create_app, create_notify_router
from refwatch.core.notification_bus import NotificationBus, only_matching_remote
from refwatch.models.notifications import NotificationEvent

REMOTE = "git@github.com:example/repo.git"


@pytest.fixture
def client(bus: NotificationBus) -> TestClient:
    return TestClient(create_app(bus))


class TestNotifyEndpoint:
    def test_publishes_and_returns_no_content(self, client: TestClient, bus: NotificationBus):
        sub = only_matching_remote(bus, REMOTE)

        response = client.post("/notify-git", params={"remote": REMOTE})

        assert response.status_code == 204
        assert response.content == b""
        assert sub.channel.poll() == (True, NotificationEvent(remote=REMOTE))

    def test_without_subscribers_still_succeeds(self, client: TestClient):
        response = client.post("/notify-git", params={"remote": REMOTE})
        assert response.status_code == 204

    def test_missing_remote(self, client: TestClient, bus: NotificationBus):
        sub = only_matching_remote(bus, REMOTE)

        response = client.post("/notify-git")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == MISSING_REMOTE_MSG
        assert sub.channel.poll() == (False, None)

    def test_empty_remote_is_missing(self, client: TestClient):
        response = client.post("/notify-git", params={"remote": ""})
        assert response.status_code == 400

    def test_get_not_allowed(self, client: TestClient):
        assert client.get("/notify-git", params={"remote": REMOTE}).status_code == 405

    def test_message_text(self):
        assert MISSING_REMOTE_MSG == (
            "Mandatory parameter 'remote' not found. "
            "Example: <host>/notify-git?remote=git@github.com:flosell/testrepo"
        )


class TestNotifyRouter:
    def test_router_mounts_on_existing_app(self, bus: NotificationBus):
        app = FastAPI()
        app.include_router(create_notify_router(bus), prefix="/hooks")
        sub = only_matching_remote(bus, REMOTE)

        response = TestClient(app).post("/hooks/notify-git", params={"remote": REMOTE})

        assert response.status_code == 204
        assert sub.channel.poll()[0]
