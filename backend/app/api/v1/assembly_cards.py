"""Assembly card API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.permissions import RequestContext, require_capability
from app.core.rate_limit import rate_limit_bulk
from app.models.assembly_card import AssemblyCard
from app.schemas.assembly_card import (
    AssemblyCardCreate,
    AssemblyCardResponse,
    AssemblyCardUpdate,
    BulkDeleteResponse,
    BulkResetResponse,
    DependencyValidationRequest,
    FindingResponse,
    LaneReorderRequest,
    LaneReorderResponse,
    PlannedSlotResponse,
    ValidationResultResponse,
)
from app.services.assembly_card_service import (
    AssemblyCardService,
    CardNotFoundError,
    CardUpdateError,
    DuplicateCardNumberError,
    PermissionDeniedError,
)
from app.services.dependency_validator import ValidationResult
from app.services.timeline import plan_lane

router = APIRouter(prefix="/assembly-cards", tags=["assembly-cards"])


def _get_card_service(db: AsyncSession = Depends(get_db)) -> AssemblyCardService:
    return AssemblyCardService(db)


def _to_http(exc: Exception) -> HTTPException:
    """Translate service errors into HTTP errors."""
    if isinstance(exc, CardNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DuplicateCardNumberError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, CardUpdateError):
        return HTTPException(status_code=422, detail=exc.to_detail())
    raise exc


def _verdict_response(verdict: ValidationResult) -> ValidationResultResponse:
    return ValidationResultResponse(
        card_number=verdict.card_number,
        valid=verdict.valid,
        findings=[
            FindingResponse(
                kind=f.kind,
                dependency=f.dependency,
                message=f.message,
                severity="error" if f.fatal else "warning",
            )
            for f in verdict.findings
        ],
        issues=verdict.issues,
    )


@router.get("", response_model=list[AssemblyCardResponse])
async def list_assembly_cards(
    assigned_to: uuid.UUID | None = Query(None, alias="assignedTo"),
    status_filter: str | None = Query(None, alias="status"),
    phase: int | None = Query(None, ge=1, le=5),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> list[AssemblyCard]:
    """List cards ordered by lane and position."""
    return await svc.list_cards(assigned_to=assigned_to, status=status_filter, phase=phase)


@router.post(
    "/bulk/reset-status",
    response_model=BulkResetResponse,
    dependencies=[Depends(rate_limit_bulk)],
)
async def bulk_reset_status(
    ctx: RequestContext = Depends(require_capability("admin")),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> BulkResetResponse:
    """Reset every card to ``scheduled``. Reports how many were reset."""
    outcome = await svc.bulk_reset_status()
    return BulkResetResponse(**outcome)


@router.delete(
    "/bulk/delete-all",
    response_model=BulkDeleteResponse,
    dependencies=[Depends(rate_limit_bulk)],
)
async def bulk_delete_all(
    ctx: RequestContext = Depends(require_capability("admin")),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> BulkDeleteResponse:
    """Irreversibly delete every card. Reports how many were deleted."""
    outcome = await svc.bulk_delete_all()
    return BulkDeleteResponse(**outcome)


@router.post("/lanes/{assembler_id}/reorder", response_model=LaneReorderResponse)
async def reorder_lane(
    assembler_id: uuid.UUID,
    payload: LaneReorderRequest,
    ctx: RequestContext = Depends(require_capability("edit_cards")),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> LaneReorderResponse:
    """Rewrite lane positions after a drag-and-drop."""
    try:
        updated, skipped = await svc.reorder_lane(assembler_id, payload.card_ids)
    except (CardNotFoundError, CardUpdateError) as exc:
        raise _to_http(exc)
    return LaneReorderResponse(updated=updated, skipped_grounded=skipped)


@router.get("/lanes/{assembler_id}/timeline", response_model=list[PlannedSlotResponse])
async def lane_timeline(
    assembler_id: uuid.UUID,
    ctx: RequestContext = Depends(require_capability("gantt_view")),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> list[PlannedSlotResponse]:
    """Planned start and end of each card in a lane.

    Times are laid out in working hours from the terminal's
    ``X-Schedule-Start`` header.
    """
    if ctx.schedule_start is None:
        raise HTTPException(status_code=400, detail="X-Schedule-Start header is required")
    cards = await svc.list_cards(assigned_to=assembler_id)
    return [
        PlannedSlotResponse(
            card_id=slot.card.id,
            card_number=slot.card.card_number,
            position=slot.card.position,
            duration=slot.card.duration,
            status=slot.card.status,
            planned_start=slot.start,
            planned_end=slot.end,
        )
        for slot in plan_lane(cards, ctx.schedule_start, settings.WORK_DAY_HOURS)
    ]


@router.post("", response_model=AssemblyCardResponse, status_code=status.HTTP_201_CREATED)
async def create_assembly_card(
    payload: AssemblyCardCreate,
    ctx: RequestContext = Depends(require_capability("create_cards")),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> AssemblyCard:
    """Create a card; it starts in ``scheduled``."""
    try:
        return await svc.create_card(payload)
    except (DuplicateCardNumberError, CardUpdateError) as exc:
        raise _to_http(exc)


@router.get("/{card_id}", response_model=AssemblyCardResponse)
async def get_assembly_card(
    card_id: uuid.UUID,
    svc: AssemblyCardService = Depends(_get_card_service),
) -> AssemblyCard:
    try:
        return await svc.get_card(card_id)
    except CardNotFoundError as exc:
        raise _to_http(exc)


@router.patch("/{card_id}", response_model=AssemblyCardResponse)
async def update_assembly_card(
    card_id: uuid.UUID,
    payload: AssemblyCardUpdate,
    ctx: RequestContext = Depends(require_capability("edit_cards")),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> AssemblyCard:
    """Partially update a card.

    Dependency changes are validated and status changes go through the
    state machine. All findings are returned together on HTTP 422.
    """
    try:
        return await svc.update_card(card_id, payload, ctx)
    except (
        CardNotFoundError,
        CardUpdateError,
        DuplicateCardNumberError,
        PermissionDeniedError,
    ) as exc:
        raise _to_http(exc)


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assembly_card(
    card_id: uuid.UUID,
    ctx: RequestContext = Depends(require_capability("delete_cards")),
    svc: AssemblyCardService = Depends(_get_card_service),
) -> None:
    try:
        await svc.delete_card(card_id)
    except CardNotFoundError as exc:
        raise _to_http(exc)


@router.post("/{card_number}/validate-dependencies", response_model=ValidationResultResponse)
async def validate_card_dependencies(
    card_number: str,
    payload: DependencyValidationRequest,
    svc: AssemblyCardService = Depends(_get_card_service),
) -> ValidationResultResponse:
    """Check a candidate dependency list without saving it."""
    try:
        verdict = await svc.validate_dependencies(card_number, payload.dependencies)
    except CardNotFoundError as exc:
        raise _to_http(exc)
    return _verdict_response(verdict)
