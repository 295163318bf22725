"""Shared fixtures and test doubles."""

import io
import json
import os

import pytest
from PIL import Image

os.environ.setdefault("APP_URL", "http://plex-slack.test")
os.environ.setdefault("EVENT_WHITELIST", "media.scrobble,media.rate,library.new")


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis with a controllable clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.data: dict[str, tuple[bytes, float | None]] = {}
        self.set_calls: list[tuple[str, bytes, int | None]] = []

    def _live(self, key: str) -> bytes | None:
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.now >= expires_at:
            del self.data[key]
            return None
        return value

    async def get(self, key: str) -> bytes | None:
        return self._live(key)

    async def set(self, key: str, value: bytes, ex: int | None = None) -> bool:
        self.set_calls.append((key, value, ex))
        self.data[key] = (value, self.now + ex if ex else None)
        return True

    async def exists(self, key: str) -> int:
        return int(self._live(key) is not None)

    async def aclose(self) -> None:
        return None


def make_image(size=(40, 20), color=(200, 30, 30), mode="RGB", fmt="PNG") -> bytes:
    """Encode a solid-colour image."""
    out = io.BytesIO()
    Image.new(mode, size, color).save(out, format=fmt)
    return out.getvalue()


def make_payload(event="media.scrobble", media_type="movie", **overrides) -> dict:
    """Build a raw Plex webhook payload."""
    payload = {
        "event": event,
        "Account": {"title": "alice", "thumb": "https://plex.tv/users/alice/avatar"},
        "Server": {"uuid": "server-1", "title": "Basement"},
        "Player": {"uuid": "player-1", "title": "Living Room TV", "publicAddress": "203.0.113.5"},
        "Metadata": {
            "ratingKey": "42",
            "type": media_type,
            "title": "Arrival",
            "year": 2016,
            "tagline": "Why are they here?",
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def fake_redis():
    return FakeRedis()


@pytest.fixture()
def png_bytes():
    return make_image()


@pytest.fixture()
def payload_json():
    def _payload_json(**kwargs) -> str:
        return json.dumps(make_payload(**kwargs))

    return _payload_json
