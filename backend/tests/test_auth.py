"""Tests for terminal API key authentication."""

from unittest.mock import patch

import pytest
from fastapi import HTTPException

from app.core.auth import verify_api_key
from app.core.config import settings


class TestVerifyApiKey:
    @pytest.mark.asyncio
    async def test_disabled_without_configured_key(self):
        with patch.object(settings, "API_KEY", ""):
            assert await verify_api_key(api_key=None) == "dev-no-auth"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with patch.object(settings, "API_KEY", "floor-secret"):
            with pytest.raises(HTTPException) as exc_info:
                await verify_api_key(api_key=None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_key(self):
        with patch.object(settings, "API_KEY", "floor-secret"):
            with pytest.raises(HTTPException) as exc_info:
                await verify_api_key(api_key="guess")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_valid_key(self):
        with patch.object(settings, "API_KEY", "floor-secret"):
            assert await verify_api_key(api_key="floor-secret") == "floor-secret"

    @pytest.mark.asyncio
    async def test_any_listed_terminal_key(self):
        with patch.object(settings, "API_KEY", "bay-1-key, bay-2-key"):
            assert await verify_api_key(api_key="bay-2-key") == "bay-2-key"
            with pytest.raises(HTTPException):
                await verify_api_key(api_key="bay-3-key")


def test_blank_entries_ignored():
    from app.core.auth import configured_keys

    with patch.object(settings, "API_KEY", "a,, ,b"):
        assert configured_keys() == ["a", "b"]
