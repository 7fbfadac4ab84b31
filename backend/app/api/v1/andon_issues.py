"""Andon issue API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.permissions import RequestContext, require_capability
from app.models.andon_issue import AndonIssue
from app.schemas.andon_issue import AndonIssueCreate, AndonIssueResponse, AndonIssueUpdate
from app.services.andon_service import (
    AndonIssueNotFoundError,
    AndonNumberingError,
    AndonReferenceError,
    AndonService,
    AndonTransitionError,
)

router = APIRouter(prefix="/andon-issues", tags=["andon-issues"])


def _get_andon_service(db: AsyncSession = Depends(get_db)) -> AndonService:
    return AndonService(db)


@router.get("", response_model=list[AndonIssueResponse])
async def list_andon_issues(
    status_filter: str | None = Query(None, alias="status"),
    card_number: str | None = Query(None, alias="cardNumber"),
    ctx: RequestContext = Depends(require_capability("andon_issues_view")),
    svc: AndonService = Depends(_get_andon_service),
) -> list[AndonIssue]:
    """List andon issues, newest first."""
    return await svc.list_issues(status=status_filter, card_number=card_number)


@router.post("", response_model=AndonIssueResponse, status_code=status.HTTP_201_CREATED)
async def create_andon_issue(
    payload: AndonIssueCreate,
    ctx: RequestContext = Depends(require_capability("andon_alerts")),
    svc: AndonService = Depends(_get_andon_service),
) -> AndonIssue:
    """Raise an andon alert against a card."""
    try:
        return await svc.create_issue(payload)
    except AndonNumberingError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except AndonReferenceError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@router.get("/{issue_id}", response_model=AndonIssueResponse)
async def get_andon_issue(
    issue_id: int,
    ctx: RequestContext = Depends(require_capability("andon_issues_view")),
    svc: AndonService = Depends(_get_andon_service),
) -> AndonIssue:
    try:
        return await svc.get_issue(issue_id)
    except AndonIssueNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.patch("/{issue_id}", response_model=AndonIssueResponse)
async def update_andon_issue(
    issue_id: int,
    payload: AndonIssueUpdate,
    ctx: RequestContext = Depends(require_capability("andon_issues_view")),
    svc: AndonService = Depends(_get_andon_service),
) -> AndonIssue:
    """Assign an issue or move it forward through its statuses."""
    try:
        return await svc.update_issue(issue_id, payload)
    except AndonIssueNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except AndonTransitionError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
