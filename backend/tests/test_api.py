"""
Tests for the feed and submission endpoints.
"""

from contextlib import asynccontextmanager
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from linkfeed.api.routes import router, set_database, set_queue
from linkfeed.main import app as main_app
from linkfeed.models.database import Database


@pytest.fixture
def queue():
    queue = MagicMock()
    queue.pending = 1
    return queue


@pytest.fixture
def client(tmp_path, queue):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.create_tables()
        set_database(database)
        set_queue(queue)
        yield
        await database.dispose()
        set_database(None)
        set_queue(None)

    app = FastAPI(lifespan=lifespan)
    app.include_router(router, prefix="/api/v1")

    with TestClient(app) as test_client:
        yield test_client


def create_feed(client, user_id=7) -> dict:
    response = client.post("/api/v1/feeds", json={"title": "Reading list", "user_id": user_id})
    assert response.status_code == 201
    return response.json()


class TestFeeds:
    def test_create_feed(self, client):
        first = create_feed(client)
        second = create_feed(client)

        assert first["feed_id"] != second["feed_id"]
        assert first["feed_slug"] != second["feed_slug"]

    def test_create_feed_requires_title(self, client):
        response = client.post("/api/v1/feeds", json={"title": "", "user_id": 7})
        assert response.status_code == 422


class TestSubmission:
    """Tests for submitting URLs into a feed."""

    def test_member_submission_is_scheduled(self, client, queue):
        feed = create_feed(client, user_id=7)

        response = client.post(
            f"/api/v1/feeds/{feed['feed_id']}/url",
            json={"url": "https://youtu.be/abc123", "user_id": 7},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["url"] == "https://youtu.be/abc123"
        assert body["feed_id"] == feed["feed_id"]
        assert body["pending_ingestions"] == 1
        queue.submit.assert_called_once_with("https://youtu.be/abc123", feed["feed_id"], 7)

    def test_non_member_is_forbidden(self, client, queue):
        feed = create_feed(client, user_id=7)

        response = client.post(
            f"/api/v1/feeds/{feed['feed_id']}/url",
            json={"url": "https://ex.com/a.html", "user_id": 99},
        )

        assert response.status_code == 403
        queue.submit.assert_not_called()

    def test_unknown_feed(self, client, queue):
        response = client.post("/api/v1/feeds/12345/url", json={"url": "https://ex.com/a.html", "user_id": 7})

        assert response.status_code == 404
        queue.submit.assert_not_called()

    @pytest.mark.parametrize("url", ["", "ex.com/a.html", "ftp://ex.com/file", "https://"])
    def test_malformed_url(self, client, queue, url):
        feed = create_feed(client)

        response = client.post(f"/api/v1/feeds/{feed['feed_id']}/url", json={"url": url, "user_id": 7})

        assert response.status_code == 422
        queue.submit.assert_not_called()


class TestHealth:
    def test_health(self):
        # No context manager: the health check needs no startup
        response = TestClient(main_app).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
