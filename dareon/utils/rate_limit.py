"""
Per-user rate limiting backed by Redis fixed-window counters.

Key layout: rate:<scope>:<user_id>  (expires after one window)
If Redis is unavailable the request is allowed; limiting is advisory.
"""

import logging

from fastapi import Depends, HTTPException, status

from dareon.config import settings
from dareon.db.redis_client import redis_client
from dareon.models.user_models import User
from dareon.utils.auth import get_current_user

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    FastAPI dependency allowing `requests` calls per user every `window_seconds`.

    Usage: user = Depends(command_rate_limiter)
    """

    def __init__(self, requests: int, window_seconds: int, scope: str = "api", client=None):
        self.requests = requests
        self.window_seconds = window_seconds
        self.scope = scope
        self.client = client or redis_client

    def key_for(self, user_id: str) -> str:
        return f"rate:{self.scope}:{user_id}"

    async def hit(self, user_id: str) -> bool:
        """Count one request; False when the user is over the limit."""
        count = await self.client.incr_with_ttl(self.key_for(user_id), self.window_seconds)
        if count is None:
            logger.warning(f"⚠️ Rate limiter unavailable, allowing request for {user_id}")
            return True
        return count <= self.requests

    async def __call__(self, user: User = Depends(get_current_user)) -> User:
        if not await self.hit(user.user_id):
            logger.info(f"🚦 Rate limit hit: scope={self.scope} user={user.user_id}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many requests. Please try again in {self.window_seconds} seconds",
            )
        return user


command_rate_limiter = RateLimiter(
    requests=settings.COMMAND_RATE_LIMIT,
    window_seconds=settings.COMMAND_RATE_WINDOW_SECONDS,
    scope="command",
)
