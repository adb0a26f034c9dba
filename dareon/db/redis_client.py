"""
⚡ REDIS (short-lived counters)

Only the per-user command rate limiter lives here: keys look like
rate:<scope>:<user_id> and expire with their window.

Every call degrades to a neutral value (None / False) when Redis is down, so
callers never see connection errors.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from dareon.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Lazily connected async Redis wrapper."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        # from_url does no I/O; the pool connects on first command
        if self._client is None:
            self._client = redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        return self._client

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"⚠️ Redis ping failed: {e}")
            return False

    async def incr_with_ttl(self, key: str, ttl_seconds: int) -> Optional[int]:
        """
        Increment a counter and make sure it carries a TTL.
        Returns the new count, or None when Redis is unreachable.

        INCR and TTL run in one MULTI/EXEC; any hit that finds the key without
        an expiry (-1) sets it, so a failed EXPIRE is repaired on the next hit.
        """
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                count, ttl = await pipe.incr(key).ttl(key).execute()
            if ttl == -1:
                await self.client.expire(key, ttl_seconds)
            return count
        except (RedisError, OSError) as e:
            logger.warning(f"⚠️ Redis counter {key} unavailable: {e}")
            return None

    async def close(self):
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis close failed: {e}")
        finally:
            self._client = None


redis_client = RedisClient()
