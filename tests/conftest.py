"""Shared test fixtures."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest

from socialpub.connections.models import PlatformConnection
from socialpub.connections.store import ConnectionStore
from socialpub.posts.models import Platform, ScheduledPost
from socialpub.posts.store import PostStore
from socialpub.publish.base import PostContent, PublishAdapter

NOW = dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
def tests_dir() -> Path:
    """Return the path to the tests directory."""
    return Path(__file__).parent


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "socialpub.db"


@pytest.fixture
def post_store(db_path: Path):
    store = PostStore(db_path)
    yield store
    store.close()


@pytest.fixture
def connection_store(db_path: Path):
    store = ConnectionStore(db_path)
    yield store
    store.close()


def make_post(**kwargs) -> ScheduledPost:
    defaults = dict(
        client_id="client1",
        platform=Platform.INSTAGRAM,
        scheduled_at=NOW - dt.timedelta(minutes=5),
        media_urls=["https://example.com/img.jpg"],
        caption="Test caption",
    )
    defaults.update(kwargs)
    return ScheduledPost(**defaults)


def make_connection(**kwargs) -> PlatformConnection:
    defaults = dict(
        client_id="client1",
        platform=Platform.INSTAGRAM,
        access_token="TOKEN",
        account_id="IG123",
        account_name="acme",
    )
    if kwargs.get("platform") == Platform.FACEBOOK:
        defaults.update(account_id=None, account_name=None, page_id="PAGE1", page_name="Acme Page")
    defaults.update(kwargs)
    return PlatformConnection(**defaults)


def ok_response(payload: dict) -> MagicMock:
    mock = MagicMock()
    mock.status_code = 200
    mock.json.return_value = payload
    return mock


def err_response(message: str, code: int = 100, status_code: int = 400) -> MagicMock:
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = {"error": {"message": message, "code": code}}
    return mock


class FakeAdapter(PublishAdapter):
    """In-memory adapter that records calls instead of hitting the Graph API."""

    def __init__(self, platform: Platform, post_id: str = "PID", error: Optional[Exception] = None) -> None:
        self.platform = platform
        self.post_id = post_id
        self.error = error
        self.calls: list[tuple[PlatformConnection, PostContent]] = []

    def publish(self, connection: PlatformConnection, content: PostContent) -> str:
        self.calls.append((connection, content))
        if self.error is not None:
            raise self.error
        return self.post_id
