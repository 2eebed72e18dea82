"""Redis-backed JSON cache for keyed lookups.

Every Redis failure is logged and treated as a cache miss so callers fall
through to the database.
"""

import json
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from agentchat.config import settings

logger = structlog.get_logger()


def chat_key(chat_id: str) -> str:
    return f"chat:{chat_id}"


def model_key(model_id: str) -> str:
    return f"model:{model_id}"


def agent_tools_key(agent_id: str) -> str:
    return f"agent_tools:{agent_id}"


def user_credits_key(user_id: str) -> str:
    return f"user:credits:{user_id}"


class CacheClient:
    """Small JSON cache over ``redis.asyncio``."""

    def __init__(self, redis_url: str | None = None):
        self.redis_url = redis_url or settings.redis_url
        self._redis: redis.Redis | None = None

    async def get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    async def get_json(self, key: str) -> Any | None:
        try:
            r = await self.get_redis()
            raw = await r.get(key)
        except (RedisError, OSError) as e:
            logger.warning("cache_get_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_value_corrupt", key=key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int) -> bool:
        try:
            r = await self.get_redis()
            await r.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except (RedisError, OSError) as e:
            logger.warning("cache_set_failed", key=key, error=str(e))
            return False

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            r = await self.get_redis()
            await r.delete(*keys)
        except (RedisError, OSError) as e:
            logger.warning("cache_delete_failed", keys=list(keys), error=str(e))

    async def incr_window(self, key: str, window: int) -> int:
        """Increment a fixed-window counter, setting its expiry on first hit.

        Unlike the other methods this one raises on Redis errors; rate
        limiting decides for itself how to fail.
        """
        r = await self.get_redis()
        current = await r.incr(key)
        if current == 1:
            await r.expire(key, window + 1)
        return int(current)

    async def ping(self) -> bool:
        try:
            r = await self.get_redis()
            return bool(await r.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


_cache: CacheClient | None = None


def get_cache() -> CacheClient:
    """Get the process-wide cache client."""
    global _cache
    if _cache is None:
        _cache = CacheClient()
    return _cache
