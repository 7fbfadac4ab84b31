"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_v1_router
from app.core.config import settings
from app.core.database import close_db, session_scope
from app.core.redis import close_redis, init_redis
from app.db.init_db import init_db
from app.db.seed import seed_if_empty

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    logger.info("Starting %s ...", settings.PROJECT_NAME)

    # Startup
    await init_db()
    logger.info("Database initialized")

    if settings.SEED_DEMO_DATA:
        async with session_scope() as session:
            result = await seed_if_empty(session)
            if result:
                logger.info("Demo data seeded: %s", result)
            else:
                logger.info("Database already has data, skipping seed")

    if await init_redis(app.state) is not None:
        logger.info("Redis connected")
    else:
        logger.info("Redis not connected, throttling in-process")

    yield

    # Shutdown
    await close_redis(app.state)
    logger.info("Redis disconnected")

    await close_db()
    logger.info("Database disconnected")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "X-API-Key",
        "X-User-Id",
        "X-User-Role",
        "X-Schedule-Start",
        "Accept",
    ],
)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")
