"""User API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.permissions import RequestContext, capabilities_for, require_capability
from app.models.user import User
from app.schemas.user import UserCapabilities, UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


async def _get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[User]:
    """List users, optionally filtered by role."""
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    result = await db.execute(query.order_by(User.name))
    return list(result.scalars().all())


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    ctx: RequestContext = Depends(require_capability("admin")),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = User(name=payload.name, email=payload.email, role=payload.role)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        raise HTTPException(status_code=409, detail=f"Email {payload.email} already registered")
    await db.refresh(user)
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> User:
    return await _get_user_or_404(db, user_id)


@router.get("/{user_id}/capabilities", response_model=UserCapabilities)
async def get_user_capabilities(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> UserCapabilities:
    """Capabilities granted by the user's role, used to build the UI menu."""
    user = await _get_user_or_404(db, user_id)
    return UserCapabilities(
        user_id=user.id,
        role=user.role,
        capabilities=sorted(capabilities_for(user.role)),
    )
