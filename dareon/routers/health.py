# Health Check Endpoint
# Used by deployment platforms to verify the service is running

from datetime import datetime, timezone

from fastapi import APIRouter

from dareon.config import settings
from dareon.db.redis_client import redis_client

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Service status, dependency reachability and timestamp.
    Always 200: a down Redis degrades rate limiting only.
    """
    redis_ok = await redis_client.ping()
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "redis": "connected" if redis_ok else "unavailable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
    }
