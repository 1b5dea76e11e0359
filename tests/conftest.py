from __future__ import annotations

import asyncio
import fnmatch
import os
import tempfile
from typing import Generator

_TMP_DIR = tempfile.mkdtemp(prefix="vidsphere-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["DB_CREATE_ALL"] = "false"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["CACHE_ENABLED"] = "false"
os.environ["REALTIME_REDIS_FANOUT"] = "false"
os.environ["REALTIME_AUTH_TIMEOUT_SECONDS"] = "2"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from redis.exceptions import RedisError  # noqa: E402

from vidsphere.db.session import async_session_maker, create_all, drop_all  # noqa: E402
from vidsphere.main import app  # noqa: E402
from vidsphere.models.article import Article  # noqa: E402
from vidsphere.models.user import User  # noqa: E402
from vidsphere.models.video import Video  # noqa: E402

API = "/api/v1"


class RecordingBus:
    """Stands in for NotificationBus in service tests; keeps what was published."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def publish(self, channel: str, payload: dict) -> bool:
        self.events.append((channel, payload))
        return True

    def on(self, channel: str) -> list[dict]:
        return [payload for name, payload in self.events if name == channel]


class InMemoryRedis:
    """The slice of the redis.asyncio client the cache uses, backed by a dict."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += self.store.pop(key, None) is not None
        return removed

    async def scan_iter(self, match="*", count=None):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        pass


class FailingRedis:
    """A redis client whose server is gone."""

    async def ping(self):
        raise RedisError("Connection refused")

    async def get(self, key):
        raise RedisError("Connection refused")

    async def set(self, key, value, ex=None):
        raise RedisError("Connection refused")

    async def delete(self, *keys):
        raise RedisError("Connection refused")

    async def scan_iter(self, match="*", count=None):
        raise RedisError("Connection refused")
        yield  # pragma: no cover

    async def aclose(self):
        pass


async def _reset_database() -> None:
    await drop_all()
    await create_all()


@pytest.fixture(autouse=True)
def database() -> None:
    asyncio.run(_reset_database())


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def bus() -> RecordingBus:
    return RecordingBus()


def run(coro):
    return asyncio.run(coro)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, username: str) -> dict:
    """Register a user through the API. Returns the token payload plus ``headers``."""
    res = client.post(
        f"{API}/auth/register",
        json={"username": username, "email": f"{username}@vidsphere.io", "password": "s3cret-pass"},
    )
    assert res.status_code == 200, res.text
    body = res.json()
    body["headers"] = auth_headers(body["access_token"])
    body["id"] = body["user"]["id"]
    return body


def create_video(client: TestClient, owner: dict, **fields) -> dict:
    payload = {"title": "Sunset timelapse", "video_file": "sunset.mp4", **fields}
    res = client.post(f"{API}/videos", json=payload, headers=owner["headers"])
    assert res.status_code == 201, res.text
    return res.json()


def create_article(client: TestClient, owner: dict, **fields) -> dict:
    payload = {"title": "Shooting at golden hour", "content": "Long form text.", "status": "published", **fields}
    res = client.post(f"{API}/articles", json=payload, headers=owner["headers"])
    assert res.status_code == 201, res.text
    return res.json()


async def make_user(username: str) -> User:
    async with async_session_maker() as db:
        user = User(username=username, email=f"{username}@vidsphere.io", password_hash="not-a-real-hash")
        db.add(user)
        await db.commit()
        return user


async def make_video(owner: User, **fields) -> Video:
    async with async_session_maker() as db:
        video = Video(user_id=owner.id, title=fields.pop("title", "Clip"), video_file="clip.mp4", **fields)
        db.add(video)
        await db.commit()
        return video


async def make_article(owner: User, **fields) -> Article:
    async with async_session_maker() as db:
        article = Article(
            user_id=owner.id,
            title=fields.pop("title", "Notes"),
            content="Body",
            status=fields.pop("status", "published"),
            **fields,
        )
        db.add(article)
        await db.commit()
        return article


async def load_user(user_id) -> User:
    async with async_session_maker() as db:
        return await db.get(User, user_id)
