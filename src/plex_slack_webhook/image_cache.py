"""Store resized thumbnails in Redis with an expiry."""

import hashlib
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .exceptions import CacheUnavailable

logger = logging.getLogger(__name__)


def cache_key(server_id: str | None, item_id: str | None) -> str:
    """Derive the content-identity key for an item on a server."""
    return hashlib.sha1(f"{server_id or ''}{item_id or ''}".encode()).hexdigest()  # noqa: S324


class ImageCache:
    """Key to image bytes store. Store errors are logged and treated as a miss."""

    def __init__(self, redis: Redis) -> None:
        """Initialize the cache around an async Redis client."""
        self.redis = redis

    @classmethod
    def from_url(cls, url: str, timeout_seconds: float = 2.0) -> "ImageCache":
        """Build a cache from a redis:// URL. Values stay as raw bytes.

        Connects and reads are bounded by timeout_seconds; a stalled Redis surfaces as a RedisError.
        """
        return cls(
            Redis.from_url(
                url,
                decode_responses=False,
                socket_timeout=timeout_seconds,
                socket_connect_timeout=timeout_seconds,
            )
        )

    async def get(self, key: str) -> bytes | None:
        """Return the cached bytes for key, or None when missing, expired or unreadable."""
        try:
            return await self.redis.get(key)
        except RedisError as e:
            self._log_unavailable("read", key, e)
            return None

    async def put(self, key: str, data: bytes, ttl_seconds: int) -> None:
        """Store data under key, replacing any previous value and resetting its expiry."""
        try:
            await self.redis.set(key, data, ex=ttl_seconds)
        except RedisError as e:
            self._log_unavailable("write", key, e)
        else:
            logger.info("[REDIS] Saved image %s (expires in %ss)", key, ttl_seconds)

    async def exists(self, key: str) -> bool:
        """Check whether key is currently stored."""
        try:
            return bool(await self.redis.exists(key))
        except RedisError as e:
            self._log_unavailable("lookup", key, e)
            return False

    async def close(self) -> None:
        """Release the connection pool."""
        await self.redis.aclose()

    @staticmethod
    def _log_unavailable(operation: str, key: str, error: Exception) -> None:
        err = CacheUnavailable(f"Image cache {operation} failed for {key}: {error}")
        logger.warning("%s", err)
