"""Tests for the role capability map and request context."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from app.core.config import settings
from app.core.permissions import (
    ROLE_CAPABILITIES,
    ROLES,
    RequestContext,
    can_access,
    capabilities_for,
    get_request_context,
    require_capability,
)


class TestCapabilityMap:
    def test_every_role_has_capabilities(self):
        assert set(ROLES) == set(ROLE_CAPABILITIES)
        for role in ROLES:
            assert capabilities_for(role)

    def test_admin_is_superset(self):
        admin = capabilities_for("admin")
        for role in ROLES:
            assert capabilities_for(role) <= admin

    @pytest.mark.parametrize(
        ("role", "capability", "expected"),
        [
            ("admin", "delete_cards", True),
            ("production_supervisor", "delete_cards", False),
            ("scheduler", "planning_view", True),
            ("material_handler", "planning_view", False),
            ("assembler", "andon_alerts", True),
            ("scheduler", "andon_alerts", False),
        ],
    )
    def test_can_access(self, role, capability, expected):
        assert can_access(role, capability) is expected

    def test_unknown_role_has_nothing(self):
        assert capabilities_for("visitor") == frozenset()
        assert capabilities_for(None) == frozenset()


class TestRequestContext:
    def test_can_follows_role(self):
        ctx = RequestContext(role="material_handler")
        assert ctx.can("edit_cards") is True
        assert ctx.can("admin") is False

    def test_enforcement_can_be_disabled(self):
        ctx = RequestContext(role=None)
        with patch.object(settings, "ENFORCE_ROLES", False):
            assert ctx.can("admin") is True

    @pytest.mark.asyncio
    async def test_built_from_headers(self):
        start = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)
        ctx = await get_request_context(x_user_role="scheduler", x_user_id="u-9", x_schedule_start=start)
        assert ctx == RequestContext(user_id="u-9", role="scheduler", schedule_start=start)

    @pytest.mark.asyncio
    async def test_unknown_role_header(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_request_context(x_user_role="visitor", x_user_id=None, x_schedule_start=None)
        assert exc_info.value.status_code == 400


class TestRequireCapability:
    @pytest.mark.asyncio
    async def test_allows_granted_role(self):
        check = require_capability("admin")
        ctx = RequestContext(role="admin")
        assert await check(ctx=ctx) is ctx

    @pytest.mark.asyncio
    async def test_rejects_missing_capability(self):
        check = require_capability("admin")
        with pytest.raises(HTTPException) as exc_info:
            await check(ctx=RequestContext(role="scheduler"))
        assert exc_info.value.status_code == 403
