"""Assembler (lane) API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.permissions import RequestContext, require_capability
from app.models.assembler import Assembler
from app.schemas.assembler import AssemblerCreate, AssemblerResponse, AssemblerUpdate

router = APIRouter(prefix="/assemblers", tags=["assemblers"])


@router.get("", response_model=list[AssemblerResponse])
async def list_assemblers(
    db: AsyncSession = Depends(get_db),
) -> list[Assembler]:
    """List all assemblers ordered by name."""
    result = await db.execute(select(Assembler).order_by(Assembler.name))
    return list(result.scalars().all())


@router.post("", response_model=AssemblerResponse, status_code=status.HTTP_201_CREATED)
async def create_assembler(
    payload: AssemblerCreate,
    ctx: RequestContext = Depends(require_capability("admin")),
    db: AsyncSession = Depends(get_db),
) -> Assembler:
    assembler = Assembler(**payload.model_dump())
    db.add(assembler)
    await db.flush()
    await db.refresh(assembler)
    return assembler


@router.get("/{assembler_id}", response_model=AssemblerResponse)
async def get_assembler(
    assembler_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Assembler:
    result = await db.execute(select(Assembler).where(Assembler.id == assembler_id))
    assembler = result.scalar_one_or_none()
    if assembler is None:
        raise HTTPException(status_code=404, detail="Assembler not found")
    return assembler


@router.patch("/{assembler_id}", response_model=AssemblerResponse)
async def update_assembler(
    assembler_id: uuid.UUID,
    payload: AssemblerUpdate,
    ctx: RequestContext = Depends(require_capability("admin")),
    db: AsyncSession = Depends(get_db),
) -> Assembler:
    """Update an assembler; status is informational only."""
    result = await db.execute(select(Assembler).where(Assembler.id == assembler_id))
    assembler = result.scalar_one_or_none()
    if assembler is None:
        raise HTTPException(status_code=404, detail="Assembler not found")

    changes = payload.model_dump(exclude_unset=True)
    for name in ("name", "type", "status"):
        if name in changes and changes[name] is None:
            raise HTTPException(status_code=422, detail=f"{name} cannot be null")
    for name, value in changes.items():
        setattr(assembler, name, value)

    await db.flush()
    await db.refresh(assembler)
    return assembler
