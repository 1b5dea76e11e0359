"""Optional Redis read-through cache for listing endpoints.

Best effort only: any Redis failure is logged and treated as a miss (reads)
or a no-op (writes and invalidations). With the cache disabled or Redis down,
every read goes straight to the database and nothing can stay stale past its
TTL.
"""
import json
import logging
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from vidsphere.core.config import Settings

logger = logging.getLogger(__name__)

# Key families for cached read paths
FEED_PREFIX = "feed:"
ARTICLES_PREFIX = "articles:"
COMMENTS_PREFIX = "comments:"


def video_prefix(video_id: UUID | str) -> str:
    return f"video:{video_id}:"


def article_prefix(article_id: UUID | str) -> str:
    return f"article:{article_id}:"


def comments_prefix(content_type: str, content_id: UUID | str) -> str:
    return f"{COMMENTS_PREFIX}{content_type}:{content_id}:"


def followers_prefix(user_id: UUID | str) -> str:
    return f"followers:{user_id}:"


def following_prefix(user_id: UUID | str) -> str:
    return f"following:{user_id}:"


def profile_key(user_id: UUID | str) -> str:
    return f"profile:{user_id}"


class CacheAccelerator:
    def __init__(self, client: aioredis.Redis | None = None, default_ttl: int = 3600):
        self.client = client
        self.default_ttl = default_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheAccelerator":
        if not settings.CACHE_ENABLED:
            logger.info("Cache accelerator disabled")
            return cls(None, settings.CACHE_TTL_SECONDS)
        client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        return cls(client, settings.CACHE_TTL_SECONDS)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def ping(self) -> bool:
        if not self.client:
            return False
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.warning("Redis cache unavailable: %s. Continuing without cache.", e)
            return False

    async def get(self, key: str) -> Any | None:
        if not self.client:
            return None
        try:
            value = await self.client.get(key)
        except (RedisError, OSError) as e:
            logger.warning("Cache get error for key '%s': %s", key, e)
            return None
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Discarding undecodable cache entry '%s'", key)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if not self.client:
            return False
        try:
            await self.client.set(key, json.dumps(value, default=str), ex=ttl or self.default_ttl)
            return True
        except (RedisError, OSError, TypeError) as e:
            logger.warning("Cache set error for key '%s': %s", key, e)
            return False

    async def invalidate(self, key: str) -> bool:
        if not self.client:
            return False
        try:
            await self.client.delete(key)
            return True
        except (RedisError, OSError) as e:
            logger.warning("Cache invalidate error for key '%s': %s", key, e)
            return False

    async def invalidate_by_prefix(self, prefix: str) -> bool:
        if not self.client:
            return False
        try:
            keys = [key async for key in self.client.scan_iter(match=f"{prefix}*", count=500)]
            if keys:
                await self.client.delete(*keys)
                logger.debug("Cleared %d keys matching prefix %s", len(keys), prefix)
            return True
        except (RedisError, OSError) as e:
            logger.warning("Cache invalidate error for prefix '%s': %s", prefix, e)
            return False

    async def invalidate_prefixes(self, *prefixes: str) -> None:
        for prefix in prefixes:
            await self.invalidate_by_prefix(prefix)

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
