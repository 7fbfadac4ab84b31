"""API v1 router aggregating all sub-routers."""

from fastapi import APIRouter, Depends

from app.api.v1.andon_issues import router as andon_issues_router
from app.api.v1.assemblers import router as assemblers_router
from app.api.v1.assembly_cards import router as assembly_cards_router
from app.api.v1.users import router as users_router
from app.core.auth import verify_api_key
from app.core.rate_limit import rate_limit_default
from app.db.init_db import check_db_connection

# Public router (no authentication required)
api_v1_router = APIRouter()


@api_v1_router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint; always 200, reports database reachability."""
    database = "up" if await check_db_connection() else "down"
    return {"status": "ok", "database": database}


# Authenticated router with the default per-terminal rate limit.
# Bulk card operations additionally enforce the stricter bulk limit.
_authenticated = APIRouter(dependencies=[Depends(verify_api_key), Depends(rate_limit_default)])
_authenticated.include_router(assembly_cards_router)
_authenticated.include_router(assemblers_router)
_authenticated.include_router(users_router)
_authenticated.include_router(andon_issues_router)

api_v1_router.include_router(_authenticated)
