"""Role-based capability map and request-scoped user context.

Each role maps to a fixed set of capabilities. The current user and the
schedule start are taken from request headers and passed explicitly to
handlers through ``RequestContext``; nothing here is process-wide mutable
state.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from app.core.config import settings

logger = logging.getLogger(__name__)

ROLES = ("admin", "production_supervisor", "scheduler", "material_handler", "assembler")

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    "admin": frozenset({
        "dashboard",
        "schedule_view",
        "gantt_view",
        "planning_view",
        "material_handler_view",
        "assembler_view",
        "edit_cards",
        "create_cards",
        "delete_cards",
        "andon_alerts",
        "andon_issues_view",
        "messages_view",
        "admin",
    }),
    "production_supervisor": frozenset({
        "dashboard",
        "schedule_view",
        "gantt_view",
        "planning_view",
        "material_handler_view",
        "edit_cards",
        "create_cards",
        "andon_alerts",
        "andon_issues_view",
        "messages_view",
    }),
    "scheduler": frozenset({
        "dashboard",
        "schedule_view",
        "gantt_view",
        "planning_view",
        "edit_cards",
        "create_cards",
        "messages_view",
    }),
    "material_handler": frozenset({"material_handler_view", "edit_cards", "messages_view"}),
    "assembler": frozenset({"assembler_view", "edit_cards", "andon_alerts", "messages_view"}),
}


def capabilities_for(role: str | None) -> frozenset[str]:
    """Return the capability set for a role (empty for unknown roles)."""
    if role is None:
        return frozenset()
    return ROLE_CAPABILITIES.get(role, frozenset())


def can_access(role: str | None, capability: str) -> bool:
    """Check whether a role grants a capability."""
    return capability in capabilities_for(role)


@dataclass(frozen=True)
class RequestContext:
    """Per-request user and schedule context."""

    user_id: str | None = None
    role: str | None = None
    schedule_start: datetime | None = None

    def can(self, capability: str) -> bool:
        if not settings.ENFORCE_ROLES:
            return True
        return can_access(self.role, capability)


async def get_request_context(
    x_user_role: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
    x_schedule_start: Annotated[datetime | None, Header()] = None,
) -> RequestContext:
    """Build the request context from the terminal's headers."""
    if x_user_role is not None and x_user_role not in ROLE_CAPABILITIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role: {x_user_role}",
        )
    return RequestContext(user_id=x_user_id, role=x_user_role, schedule_start=x_schedule_start)


def require_capability(capability: str):
    """Dependency factory rejecting requests whose role lacks ``capability``."""

    async def _check(
        ctx: RequestContext = Depends(get_request_context),
    ) -> RequestContext:
        if not ctx.can(capability):
            logger.warning("Role %s denied capability %s", ctx.role, capability)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {ctx.role!r} lacks capability {capability!r}",
            )
        return ctx

    return _check
