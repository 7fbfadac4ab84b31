"""Assembly card operations over the database.

Every write follows the same order: load a snapshot of all cards, run the
dependency validator and the state machine against it, then flush inside the
request transaction. Bulk reset and bulk delete work card by card in
savepoints and report partial success instead of rolling everything back.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import RequestContext
from app.models.assembly_card import AssemblyCard
from app.schemas.assembly_card import AssemblyCardCreate, AssemblyCardUpdate
from app.services.card_lifecycle import (
    CLEARED_FOR_PICKING,
    SCHEDULED,
    SUB_ASSY_TYPES,
    TransitionResult,
    apply_transition,
    reset_card,
)
from app.services.dependency_validator import Finding, ValidationResult, validate_dependencies

logger = logging.getLogger(__name__)

# Fields that move a card within or between lanes.
_LANE_FIELDS = ("position", "assigned_to")
# Columns that cannot be cleared through a partial update.
_NOT_NULL_FIELDS = frozenset({
    "card_number", "name", "type", "phase", "priority", "duration",
    "position", "grounded", "dependencies", "precedents",
})


class CardNotFoundError(Exception):
    """Raised when a card id or card number does not resolve."""


class DuplicateCardNumberError(Exception):
    """Raised when a card number is already taken."""


class PermissionDeniedError(Exception):
    """Raised when the caller's role may not perform the requested change."""


class CardUpdateError(Exception):
    """Raised when a create or update breaks a scheduling rule.

    Carries every validation finding and, for status changes, the rejected
    transition so the caller can report them all at once.
    """

    def __init__(
        self,
        message: str,
        findings: list[Finding] | None = None,
        transition: TransitionResult | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.findings = findings or []
        self.transition = transition

    def to_detail(self) -> dict[str, Any]:
        errors: list[dict[str, Any]] = [
            {
                "kind": f.kind,
                "dependency": f.dependency,
                "message": f.message,
                "severity": "error" if f.fatal else "warning",
            }
            for f in self.findings
        ]
        if self.transition is not None and self.transition.error:
            errors.append({
                "kind": self.transition.error,
                "from": self.transition.from_status,
                "to": self.transition.to_status,
                "message": self.transition.message,
                "severity": "error",
            })
        return {"message": self.message, "errors": errors}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssemblyCardService:
    """Card CRUD, validation-gated updates, lane reordering and bulk operations."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] | None = None) -> None:
        self.db = db
        self._clock = clock or _utcnow

    # ---------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------

    async def list_cards(
        self,
        assigned_to: uuid.UUID | None = None,
        status: str | None = None,
        phase: int | None = None,
    ) -> list[AssemblyCard]:
        """List cards in lane order, optionally filtered."""
        query = select(AssemblyCard)
        if assigned_to is not None:
            query = query.where(AssemblyCard.assigned_to == assigned_to)
        if status is not None:
            query = query.where(AssemblyCard.status == status)
        if phase is not None:
            query = query.where(AssemblyCard.phase == phase)
        query = query.order_by(AssemblyCard.assigned_to, AssemblyCard.position)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_card(self, card_id: uuid.UUID) -> AssemblyCard:
        result = await self.db.execute(select(AssemblyCard).where(AssemblyCard.id == card_id))
        card = result.scalar_one_or_none()
        if card is None:
            raise CardNotFoundError(f"Assembly card {card_id} not found")
        return card

    async def _snapshot(self) -> list[AssemblyCard]:
        """Load every card; validation always runs against the full set."""
        result = await self.db.execute(
            select(AssemblyCard).order_by(AssemblyCard.assigned_to, AssemblyCard.position)
        )
        return list(result.scalars().all())

    # ---------------------------------------------------------------
    # Create / update / delete
    # ---------------------------------------------------------------

    async def create_card(self, payload: AssemblyCardCreate) -> AssemblyCard:
        """Create a card in ``scheduled`` after validating its dependencies.

        Raises ``CardUpdateError`` if the new card's own dependencies are
        invalid or if its lane slot breaks a card that already depends on it.
        """
        cards = await self._snapshot()
        if any(c.card_number == payload.card_number for c in cards):
            raise DuplicateCardNumberError(f"Card number {payload.card_number} already exists")

        card = AssemblyCard(
            card_number=payload.card_number,
            name=payload.name,
            type=payload.type,
            phase=payload.phase,
            priority=payload.priority,
            duration=payload.duration,
            position=payload.position,
            grounded=payload.grounded,
            assigned_to=payload.assigned_to,
            assigned_material_handler=payload.assigned_material_handler,
            status=SCHEDULED,
            dependencies=list(payload.dependencies),
            precedents=list(payload.precedents),
            elapsed_time=0,
            sub_assy_area=payload.sub_assy_area,
            gemba_doc_link=payload.gemba_doc_link,
            pick_due_date=payload.pick_due_date,
            phase_cleared_to_build_date=payload.phase_cleared_to_build_date,
            assembly_seq=payload.assembly_seq,
            material_seq=payload.material_seq,
            operation_seq=payload.operation_seq,
        )

        # The new card joins the snapshot so lane checks see its position,
        # and cards already naming it are re-checked now that it resolves.
        snapshot = [*cards, card]
        verdict = validate_dependencies(card.card_number, card.dependencies, snapshot)
        findings = list(verdict.findings)
        findings.extend(self._new_errors(
            self._schedule_errors([card], cards),
            self._schedule_errors([card], snapshot),
            skip=card,
        ))
        self._raise_on_errors(f"Dependencies of {card.card_number} are invalid", findings)

        self.db.add(card)
        await self._flush_card(card)
        await self.db.refresh(card)
        logger.info("Created card %s (%s)", card.card_number, card.type)
        return card

    async def update_card(
        self,
        card_id: uuid.UUID,
        payload: AssemblyCardUpdate,
        ctx: RequestContext | None = None,
    ) -> AssemblyCard:
        """Apply a partial update.

        Plain fields are applied first. A new dependency list is validated
        in full. A change of lane or position re-checks this card and the
        cards that depend on it, and only fails on problems the move causes.
        The status transition runs last. Any failure raises before the flush
        and the request transaction is rolled back.
        """
        cards = await self._snapshot()
        card = next((c for c in cards if c.id == card_id), None)
        if card is None:
            raise CardNotFoundError(f"Assembly card {card_id} not found")

        changes = payload.changes()
        requested_status = changes.pop("status", None)

        if requested_status == CLEARED_FOR_PICKING and ctx is not None and not ctx.can("planning_view"):
            raise PermissionDeniedError("Only planners may clear cards for picking")

        nulled = sorted(k for k, v in changes.items() if v is None and k in _NOT_NULL_FIELDS)
        if nulled:
            raise CardUpdateError(f"Fields cannot be null: {', '.join(nulled)}")

        self._check_grounded(card, changes)
        self._check_card_number(card, changes, cards)
        self._normalize_sub_assy_area(card, changes)

        lane_moved = any(f in changes for f in _LANE_FIELDS)
        deps_changed = "dependencies" in changes
        before = self._schedule_errors([card], cards) if lane_moved else {}

        for name, value in changes.items():
            setattr(card, name, value)

        findings: list[Finding] = []
        if deps_changed:
            verdict = validate_dependencies(card.card_number, card.dependencies, cards)
            findings.extend(verdict.findings)
            for warning in verdict.warnings:
                logger.info("Card %s: %s", card.card_number, warning.message)
        if lane_moved:
            findings.extend(self._new_errors(
                before,
                self._schedule_errors([card], cards),
                skip=card if deps_changed else None,
            ))
        self._raise_on_errors(
            f"Schedule change for {card.card_number} breaks dependencies", findings
        )

        if requested_status is not None:
            outcome = apply_transition(card, requested_status, self._clock())
            if not outcome.ok:
                raise CardUpdateError(
                    outcome.message or "Invalid status transition", transition=outcome
                )

        await self._flush_card(card)
        await self.db.refresh(card)
        return card

    async def delete_card(self, card_id: uuid.UUID) -> None:
        card = await self.get_card(card_id)
        await self.db.delete(card)
        logger.info("Deleted card %s", card.card_number)

    async def validate_dependencies(
        self, card_number: str, dependencies: list[str]
    ) -> ValidationResult:
        """Validate a candidate dependency list for an existing card."""
        cards = await self._snapshot()
        if not any(c.card_number == card_number for c in cards):
            raise CardNotFoundError(f"Card {card_number} not found")
        return validate_dependencies(card_number, dependencies, cards)

    # ---------------------------------------------------------------
    # Lane reordering
    # ---------------------------------------------------------------

    async def reorder_lane(
        self, assembler_id: uuid.UUID, card_ids: list[uuid.UUID]
    ) -> tuple[int, list[str]]:
        """Place ``card_ids`` in ``assembler_id``'s lane at positions 0..n-1.

        Grounded cards keep their place and are reported. The moved cards and
        their dependents are re-checked; problems that predate the move, such
        as references to deleted cards, do not block it. Returns the number
        of cards moved and the card numbers skipped.
        """
        cards = await self._snapshot()
        by_id = {c.id: c for c in cards}
        missing = [str(cid) for cid in card_ids if cid not in by_id]
        if missing:
            raise CardNotFoundError(f"Assembly cards not found: {', '.join(missing)}")

        plan: list[tuple[AssemblyCard, int]] = []
        skipped: list[str] = []
        for index, card_id in enumerate(card_ids):
            card = by_id[card_id]
            if card.position == index and card.assigned_to == assembler_id:
                continue
            if card.grounded:
                skipped.append(card.card_number)
                continue
            plan.append((card, index))

        moved = [card for card, _ in plan]
        before = self._schedule_errors(moved, cards)
        for card, index in plan:
            card.assigned_to = assembler_id
            card.position = index
        self._raise_on_errors(
            "Reorder breaks card dependencies",
            self._new_errors(before, self._schedule_errors(moved, cards)),
        )

        await self.db.flush()
        logger.info(
            "Reordered lane %s: %d moved, %d grounded skipped",
            assembler_id, len(moved), len(skipped),
        )
        return len(moved), skipped

    # ---------------------------------------------------------------
    # Bulk operations
    # ---------------------------------------------------------------

    async def bulk_reset_status(self) -> dict[str, Any]:
        """Reset every card to ``scheduled``; failures are counted, not rolled back."""
        cards = await self._snapshot()
        success = 0
        failed: list[str] = []
        for card in cards:
            try:
                async with self.db.begin_nested():
                    reset_card(card)
                    await self.db.flush()
                success += 1
            except SQLAlchemyError as exc:
                logger.warning("Failed to reset card %s: %s", card.card_number, exc)
                failed.append(card.card_number)

        if failed:
            logger.warning("Bulk reset partially succeeded: %d of %d", success, len(cards))
        else:
            logger.info("Bulk reset %d cards", success)
        return {"success_count": success, "total_count": len(cards), "failed": failed}

    async def bulk_delete_all(self) -> dict[str, int]:
        """Delete every card; each deletion commits or fails on its own."""
        cards = await self._snapshot()
        deleted = 0
        for card in cards:
            try:
                async with self.db.begin_nested():
                    await self.db.delete(card)
                    await self.db.flush()
                deleted += 1
            except SQLAlchemyError as exc:
                logger.warning("Failed to delete card %s: %s", card.card_number, exc)

        logger.info("Bulk delete removed %d of %d cards", deleted, len(cards))
        return {"deleted_count": deleted, "total_count": len(cards)}

    # ---------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------

    async def _flush_card(self, card: AssemblyCard) -> None:
        try:
            await self.db.flush()
        except IntegrityError as exc:
            if "card_number" in str(exc.orig):
                raise DuplicateCardNumberError(
                    f"Card number {card.card_number} already exists"
                ) from exc
            raise CardUpdateError(
                f"Card {card.card_number} references an unknown assembler or user"
            ) from exc

    @staticmethod
    def _raise_on_errors(message: str, findings: list[Finding]) -> None:
        if any(f.fatal for f in findings):
            raise CardUpdateError(message, findings=findings)

    @staticmethod
    def _schedule_errors(
        subjects: list[AssemblyCard], cards: list[AssemblyCard]
    ) -> dict[tuple[int, str, str], Finding]:
        """Fatal findings on ``subjects`` and on every card depending on one of them.

        Keyed by (card identity, kind, dependency) so the findings from
        before and after a schedule change can be compared.
        """
        numbers = {s.card_number for s in subjects}
        subject_ids = {id(s) for s in subjects}
        errors: dict[tuple[int, str, str], Finding] = {}
        for card in cards:
            deps = card.dependencies or []
            if not deps or (id(card) not in subject_ids and numbers.isdisjoint(deps)):
                continue
            for finding in validate_dependencies(card.card_number, deps, cards).errors:
                errors[(id(card), finding.kind, finding.dependency)] = finding
        return errors

    @staticmethod
    def _new_errors(
        before: dict[tuple[int, str, str], Finding],
        after: dict[tuple[int, str, str], Finding],
        skip: AssemblyCard | None = None,
    ) -> list[Finding]:
        """Findings in ``after`` that were not already present in ``before``."""
        skip_id = id(skip) if skip is not None else None
        return [f for key, f in after.items() if key not in before and key[0] != skip_id]

    @staticmethod
    def _check_grounded(card: AssemblyCard, changes: dict[str, Any]) -> None:
        if not card.grounded or changes.get("grounded") is False:
            return
        moved = [f for f in _LANE_FIELDS if f in changes and changes[f] != getattr(card, f)]
        if moved:
            raise CardUpdateError(
                f"Card {card.card_number} is grounded and cannot change {', '.join(moved)}"
            )

    @staticmethod
    def _check_card_number(
        card: AssemblyCard, changes: dict[str, Any], cards: list[AssemblyCard]
    ) -> None:
        new_number = changes.get("card_number")
        if new_number is None or new_number == card.card_number:
            return
        if any(c.card_number == new_number for c in cards if c is not card):
            raise DuplicateCardNumberError(f"Card number {new_number} already exists")

    @staticmethod
    def _normalize_sub_assy_area(card: AssemblyCard, changes: dict[str, Any]) -> None:
        card_type = changes.get("type", card.type)
        if card_type in SUB_ASSY_TYPES:
            return
        if changes.get("sub_assy_area") is not None:
            raise CardUpdateError(
                f"subAssyArea can only be set on S or P cards, not {card_type}"
            )
        if card.sub_assy_area is not None or "sub_assy_area" in changes:
            changes["sub_assy_area"] = None
