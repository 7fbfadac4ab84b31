"""Shared-key authentication for shop-floor terminals.

``API_KEY`` holds one key or a comma-separated list, so a key issued to a
single terminal can be revoked without re-keying the floor. With no key
configured authentication is off, which is how the local stack runs.
"""

import logging
import secrets
from typing import Annotated

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from app.core.config import settings

logger = logging.getLogger(__name__)

_api_key_header = APIKeyHeader(
    name=settings.API_KEY_HEADER,
    auto_error=False,
)


def configured_keys() -> list[str]:
    return [key.strip() for key in settings.API_KEY.split(",") if key.strip()]


def _matches(candidate: str, keys: list[str]) -> bool:
    # Compare against every key so timing does not reveal which one matched.
    matched = False
    for key in keys:
        matched |= secrets.compare_digest(candidate.encode(), key.encode())
    return matched


async def verify_api_key(
    api_key: Annotated[str | None, Security(_api_key_header)] = None,
) -> str:
    """Check the terminal key: 401 when absent, 403 when not recognised."""
    keys = configured_keys()
    if not keys:
        return "dev-no-auth"

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
        )

    if not _matches(api_key, keys):
        logger.warning("Rejected terminal request with unrecognised API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key
