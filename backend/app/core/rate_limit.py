"""Per-terminal request throttling.

Terminals are identified by ``X-User-Id`` when present, otherwise by
client IP. Counting uses a Redis sorted-set sliding window; when Redis is
not connected an in-process token bucket is used instead.
"""

import logging
import threading
import time
from dataclasses import dataclass, field

from fastapi import HTTPException, Request, status
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.redis import get_redis

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    tokens: float
    stamp: float


@dataclass
class _LocalThrottle:
    """Token buckets keyed by terminal, guarded by a lock."""

    buckets: dict[str, _Bucket] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def hit(self, key: str, limit: int, window: int, now: float) -> int:
        """Consume one token. Returns 0 when allowed, else seconds to wait."""
        rate = limit / window
        with self.lock:
            bucket = self.buckets.setdefault(key, _Bucket(tokens=float(limit), stamp=now))
            bucket.tokens = min(float(limit), bucket.tokens + (now - bucket.stamp) * rate)
            bucket.stamp = now
            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return 0
            return max(1, int((1.0 - bucket.tokens) / rate))


_local = _LocalThrottle()


def terminal_key(request: Request) -> str:
    """Identify the calling terminal."""
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"user:{user_id}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def _too_many(retry_after: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Rate limit exceeded. Try again in {retry_after}s.",
        headers={"Retry-After": str(retry_after)},
    )


async def _throttle(request: Request, bucket: str, limit: int) -> None:
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    key = f"throttle:{bucket}:{terminal_key(request)}"
    now = time.time()

    try:
        redis = get_redis()
    except RuntimeError:
        retry_after = _local.hit(key, limit, window, now)
        if retry_after:
            raise _too_many(retry_after)
        return

    try:
        pipe = redis.pipeline()
        pipe.zremrangebyscore(key, 0, now - window)
        pipe.zadd(key, {str(now): now})
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        pipe.expire(key, window)
        _, _, count, oldest, _ = await pipe.execute()
    except RedisError as exc:
        logger.warning("Redis throttle failed, using local limiter: %s", exc)
        retry_after = _local.hit(key, limit, window, now)
        if retry_after:
            raise _too_many(retry_after)
        return

    if count > limit:
        retry_after = max(1, int(oldest[0][1] + window - now)) if oldest else window
        raise _too_many(retry_after)


async def rate_limit_default(request: Request) -> None:
    """Throttle applied to every authenticated endpoint."""
    await _throttle(request, "default", settings.RATE_LIMIT_DEFAULT)


async def rate_limit_bulk(request: Request) -> None:
    """Tighter throttle for collection-wide reset and delete."""
    await _throttle(request, "bulk", settings.RATE_LIMIT_BULK)
