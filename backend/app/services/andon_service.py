"""Andon issue service: numbering and the issue status lifecycle."""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.andon_issue import AndonIssue
from app.schemas.andon_issue import AndonIssueCreate, AndonIssueUpdate

logger = logging.getLogger(__name__)

# Issues only move forward: unresolved -> being_worked_on -> resolved.
_STATUS_RANK = {"unresolved": 0, "being_worked_on": 1, "resolved": 2}
# Concurrent creates retry this many times before giving up.
_NUMBER_ATTEMPTS = 5


class AndonIssueNotFoundError(Exception):
    """Raised when an andon issue id does not resolve."""


class AndonTransitionError(Exception):
    """Raised when an issue status would move backwards."""


class AndonNumberingError(Exception):
    """Raised when no free issue number could be claimed."""


class AndonReferenceError(Exception):
    """Raised when an issue points at a user that does not exist."""


def format_issue_number(sequence: int, prefix: str | None = None) -> str:
    """Format a sequence as an issue number, e.g. ``AI-007``."""
    return f"{prefix or settings.ANDON_ISSUE_PREFIX}-{sequence:03d}"


def can_move(current: str, target: str) -> bool:
    """Whether an issue may go from ``current`` to ``target``."""
    return _STATUS_RANK[target] >= _STATUS_RANK[current]


class AndonService:
    """Create, list and progress andon issues."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_issues(self, status: str | None = None, card_number: str | None = None) -> list[AndonIssue]:
        query = select(AndonIssue)
        if status is not None:
            query = query.where(AndonIssue.status == status)
        if card_number is not None:
            query = query.where(AndonIssue.assembly_card_number == card_number)
        result = await self.db.execute(query.order_by(AndonIssue.created_at.desc()))
        return list(result.scalars().all())

    async def get_issue(self, issue_id: int) -> AndonIssue:
        result = await self.db.execute(select(AndonIssue).where(AndonIssue.id == issue_id))
        issue = result.scalar_one_or_none()
        if issue is None:
            raise AndonIssueNotFoundError(f"Andon issue {issue_id} not found")
        return issue

    async def create_issue(self, payload: AndonIssueCreate) -> AndonIssue:
        """Raise a new issue with the next sequential issue number.

        Two terminals may claim the same number at once; the loser hits the
        unique index inside its savepoint, recounts and tries again.
        """
        for attempt in range(1, _NUMBER_ATTEMPTS + 1):
            issue = AndonIssue(
                issue_number=format_issue_number(await self._next_sequence()),
                assembly_card_number=payload.assembly_card_number,
                description=payload.description,
                photo_path=payload.photo_path,
                submitted_by=payload.submitted_by,
                assigned_to=payload.assigned_to,
                status="unresolved",
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(issue)
                    await self.db.flush()
            except IntegrityError as exc:
                if "issue_number" not in str(exc.orig):
                    raise AndonReferenceError(
                        f"Andon issue assignee {payload.assigned_to} does not exist"
                    ) from exc
                logger.warning(
                    "Andon number %s already taken (attempt %d)", issue.issue_number, attempt
                )
                continue

            await self.db.refresh(issue)
            logger.info(
                "Andon %s raised on card %s by %s",
                issue.issue_number, issue.assembly_card_number, issue.submitted_by,
            )
            return issue

        raise AndonNumberingError(
            f"Could not allocate an andon issue number after {_NUMBER_ATTEMPTS} attempts"
        )

    async def _next_sequence(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(AndonIssue))
        return (result.scalar() or 0) + 1

    async def update_issue(self, issue_id: int, payload: AndonIssueUpdate) -> AndonIssue:
        issue = await self.get_issue(issue_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("status", "") is None:
            del changes["status"]

        target = changes.get("status")
        if target is not None and not can_move(issue.status, target):
            raise AndonTransitionError(
                f"Andon issue {issue.issue_number} cannot go from {issue.status} to {target}"
            )

        for name, value in changes.items():
            setattr(issue, name, value)

        await self.db.flush()
        await self.db.refresh(issue)
        return issue
