"""Tests for request throttling and API security configuration."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException
from redis.exceptions import RedisError

from app.core import rate_limit
from app.core.config import settings
from app.core.rate_limit import _LocalThrottle, rate_limit_bulk, terminal_key


def _request(headers: dict[str, str] | None = None, host: str = "10.0.0.5") -> MagicMock:
    request = MagicMock()
    request.headers = headers or {}
    request.client.host = host
    return request


# ---------------------------------------------------------------------------
# Configuration Security Tests
# ---------------------------------------------------------------------------


class TestSecurityConfig:
    """Test that security-related configuration is correct."""

    def test_cors_origins_configured(self):
        origins = settings.CORS_ORIGINS.split(",")
        assert len(origins) >= 1
        assert any(o.startswith("http") for o in origins)

    def test_debug_disabled_in_production(self):
        if settings.ENVIRONMENT == "production":
            assert settings.DEBUG is False

    def test_bulk_limit_is_stricter(self):
        assert settings.RATE_LIMIT_BULK < settings.RATE_LIMIT_DEFAULT


# ---------------------------------------------------------------------------
# Terminal identification
# ---------------------------------------------------------------------------


class TestTerminalKey:
    def test_prefers_user_id(self):
        assert terminal_key(_request({"X-User-Id": "u-7"})) == "user:u-7"

    def test_forwarded_for_first_hop(self):
        request = _request({"X-Forwarded-For": "192.168.1.9, 10.0.0.1"})
        assert terminal_key(request) == "ip:192.168.1.9"

    def test_falls_back_to_client_ip(self):
        assert terminal_key(_request(host="10.0.0.5")) == "ip:10.0.0.5"


# ---------------------------------------------------------------------------
# In-process token bucket
# ---------------------------------------------------------------------------


class TestLocalThrottle:
    def test_allows_up_to_limit(self):
        throttle = _LocalThrottle()
        results = [throttle.hit("k", limit=3, window=60, now=1000.0) for _ in range(3)]
        assert results == [0, 0, 0]

    def test_rejects_over_limit_with_retry(self):
        throttle = _LocalThrottle()
        for _ in range(3):
            throttle.hit("k", limit=3, window=60, now=1000.0)
        assert throttle.hit("k", limit=3, window=60, now=1000.0) >= 1

    def test_refills_over_time(self):
        throttle = _LocalThrottle()
        for _ in range(3):
            throttle.hit("k", limit=3, window=60, now=1000.0)
        assert throttle.hit("k", limit=3, window=60, now=1060.0) == 0

    def test_keys_are_independent(self):
        throttle = _LocalThrottle()
        throttle.hit("a", limit=1, window=60, now=1000.0)
        assert throttle.hit("b", limit=1, window=60, now=1000.0) == 0


# ---------------------------------------------------------------------------
# Redis-backed sliding window
# ---------------------------------------------------------------------------


def _redis_with(count: int, oldest: float) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, 1, count, [("t", oldest)], True])
    client = MagicMock()
    client.pipeline.return_value = pipe
    return client


class TestRedisThrottle:
    @pytest.mark.asyncio
    async def test_under_limit_passes(self):
        client = _redis_with(count=1, oldest=1000.0)
        with patch.object(rate_limit, "get_redis", return_value=client):
            await rate_limit_bulk(_request({"X-User-Id": "u-1"}))
        client.pipeline.assert_called_once()

    @pytest.mark.asyncio
    async def test_over_limit_raises_429(self):
        client = _redis_with(count=settings.RATE_LIMIT_BULK + 1, oldest=1000.0)
        with patch.object(rate_limit, "get_redis", return_value=client), \
                patch.object(rate_limit.time, "time", return_value=1010.0):
            with pytest.raises(HTTPException) as exc_info:
                await rate_limit_bulk(_request({"X-User-Id": "u-1"}))
        assert exc_info.value.status_code == 429
        assert exc_info.value.headers["Retry-After"] == str(settings.RATE_LIMIT_WINDOW_SECONDS - 10)

    @pytest.mark.asyncio
    async def test_redis_error_uses_local_limiter(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=RedisError("down"))
        client = MagicMock()
        client.pipeline.return_value = pipe
        local = MagicMock()
        local.hit.return_value = 0
        with patch.object(rate_limit, "get_redis", return_value=client), \
                patch.object(rate_limit, "_local", local):
            await rate_limit_bulk(_request({"X-User-Id": "u-2"}))
        local.hit.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_redis_uses_local_limiter(self):
        local = MagicMock()
        local.hit.return_value = 30
        with patch.object(rate_limit, "get_redis", side_effect=RuntimeError("not connected")), \
                patch.object(rate_limit, "_local", local):
            with pytest.raises(HTTPException) as exc_info:
                await rate_limit_bulk(_request({"X-User-Id": "u-3"}))
        assert exc_info.value.headers["Retry-After"] == "30"


# ---------------------------------------------------------------------------
# API Endpoint Method Tests
# ---------------------------------------------------------------------------


class TestAPIEndpointMethods:
    """Test that bulk endpoints carry the bulk throttle."""

    def test_bulk_routes_are_throttled(self):
        from app.api.v1.assembly_cards import router

        bulk_routes = [r for r in router.routes if "/bulk/" in getattr(r, "path", "")]
        assert {m for r in bulk_routes for m in r.methods} == {"POST", "DELETE"}
        for route in bulk_routes:
            calls = [d.call for d in route.dependant.dependencies]
            assert rate_limit_bulk in calls

    def test_health_is_public(self):
        from app.api.v1.router import api_v1_router

        paths = [getattr(r, "path", "") for r in api_v1_router.routes]
        assert "/health" in paths


# ---------------------------------------------------------------------------
# Redis connection lifecycle
# ---------------------------------------------------------------------------


class TestRedisLifecycle:
    @pytest.mark.asyncio
    async def test_unreachable_redis_is_not_fatal(self):
        from app.core import redis as redis_module

        client = MagicMock()
        client.ping = AsyncMock(side_effect=ConnectionError("refused"))
        client.aclose = AsyncMock()
        state = MagicMock(spec=[])
        with patch.object(redis_module.aioredis, "from_url", return_value=client):
            assert await redis_module.init_redis(state) is None
        client.aclose.assert_awaited_once()
        with pytest.raises(RuntimeError):
            redis_module.get_redis()

    @pytest.mark.asyncio
    async def test_connect_and_close(self):
        from types import SimpleNamespace

        from app.core import redis as redis_module

        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        state = SimpleNamespace()
        with patch.object(redis_module.aioredis, "from_url", return_value=client):
            assert await redis_module.init_redis(state) is client
        assert redis_module.get_redis() is client

        await redis_module.close_redis(state)
        assert state.redis is None
        with pytest.raises(RuntimeError):
            redis_module.get_redis()
