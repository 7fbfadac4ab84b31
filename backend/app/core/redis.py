"""Async Redis connection held on app.state, used by the request throttle."""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def init_redis(app_state: object) -> aioredis.Redis | None:
    """Connect to Redis and publish the client on app.state.

    Returns None when Redis is unreachable; the throttle then falls back
    to its in-process limiter.
    """
    global _client
    client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis unavailable at %s: %s", settings.REDIS_URL, exc)
        await client.aclose()
        return None
    app_state.redis = client  # type: ignore[attr-defined]
    _client = client
    return client


async def close_redis(app_state: object) -> None:
    """Close the Redis connection stored on app.state."""
    global _client
    client: aioredis.Redis | None = getattr(app_state, "redis", None)
    if client is not None:
        await client.aclose()
        app_state.redis = None  # type: ignore[attr-defined]
    _client = None


def get_redis() -> aioredis.Redis:
    """Return the shared client, raising RuntimeError when not connected."""
    if _client is None:
        raise RuntimeError("Redis client not initialized. Call init_redis() first.")
    return _client
