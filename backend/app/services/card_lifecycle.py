"""Assembly card state machine.

Regular cards move through the pipeline

    scheduled -> cleared_for_picking -> picking -> [delivered_to_paint]
        -> ready_for_build -> assembling -> completed

with ``paused`` and ``blocked`` as side-states entered from
``ready_for_build`` or ``assembling``. A side-state remembers the state it
was entered from in ``previous_status`` and can only return there.
DEAD_TIME cards only toggle between ``scheduled`` and ``completed``.

``apply_transition`` works on any object exposing the card attributes (ORM
rows in the service layer, plain objects in tests). It never raises for a
rejected transition; the outcome is reported in ``TransitionResult`` and the
card is left untouched unless the transition succeeds.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.core.config import settings

logger = logging.getLogger(__name__)

CARD_TYPES = ("M", "E", "S", "P", "KB", "DEAD_TIME", "D")
SUB_ASSY_TYPES = frozenset({"S", "P"})
DEAD_TIME = "DEAD_TIME"

SCHEDULED = "scheduled"
CLEARED_FOR_PICKING = "cleared_for_picking"
PICKING = "picking"
DELIVERED_TO_PAINT = "delivered_to_paint"
READY_FOR_BUILD = "ready_for_build"
ASSEMBLING = "assembling"
PAUSED = "paused"
BLOCKED = "blocked"
COMPLETED = "completed"

CARD_STATUSES = (
    SCHEDULED,
    CLEARED_FOR_PICKING,
    PICKING,
    DELIVERED_TO_PAINT,
    READY_FOR_BUILD,
    ASSEMBLING,
    PAUSED,
    BLOCKED,
    COMPLETED,
)
SIDE_STATES = frozenset({PAUSED, BLOCKED})

# Forward edges for regular cards. Side-state exits are resolved from
# previous_status and are not listed here.
_FORWARD: dict[str, frozenset[str]] = {
    SCHEDULED: frozenset({CLEARED_FOR_PICKING}),
    CLEARED_FOR_PICKING: frozenset({PICKING}),
    PICKING: frozenset({DELIVERED_TO_PAINT, READY_FOR_BUILD}),
    DELIVERED_TO_PAINT: frozenset({READY_FOR_BUILD}),
    READY_FOR_BUILD: frozenset({ASSEMBLING, PAUSED, BLOCKED}),
    ASSEMBLING: frozenset({PAUSED, BLOCKED, COMPLETED}),
    COMPLETED: frozenset(),
}

_DEAD_TIME_EDGES: dict[str, frozenset[str]] = {
    SCHEDULED: frozenset({COMPLETED}),
    COMPLETED: frozenset({SCHEDULED}),
}

# Error codes reported in TransitionResult.error
INVALID_TRANSITION = "InvalidTransition"
UNKNOWN_STATUS = "UnknownStatus"

# Lower bound applied before rounding; the configurable floor applies after.
_RAW_DURATION_FLOOR_HOURS = 0.01


@dataclass
class TransitionResult:
    """Outcome of a requested status change."""

    ok: bool
    from_status: str
    to_status: str
    error: str | None = None
    message: str | None = None
    changed_fields: dict[str, Any] = field(default_factory=dict)


def is_paint_routed(card_type: str) -> bool:
    """Whether cards of this type pass through the paint booth."""
    return card_type in settings.paint_routed_types


def allowed_targets(card: Any) -> frozenset[str]:
    """Statuses reachable from the card's current status in one step."""
    current = card.status
    if card.type == DEAD_TIME:
        return _DEAD_TIME_EDGES.get(current, frozenset())

    if current in SIDE_STATES:
        previous = card.previous_status or READY_FOR_BUILD
        other_side = BLOCKED if current == PAUSED else PAUSED
        return frozenset({previous, other_side})

    targets = _FORWARD.get(current, frozenset())
    if current == PICKING and not is_paint_routed(card.type):
        targets = targets - {DELIVERED_TO_PAINT}
    return targets


def compute_actual_duration(elapsed_seconds: float, min_hours: float | None = None) -> float:
    """Convert accumulated build seconds to reported hours.

    Rounded to two decimals, never below ``min_hours`` (defaults to
    ``settings.MIN_ACTUAL_DURATION_HOURS``).
    """
    floor = settings.MIN_ACTUAL_DURATION_HOURS if min_hours is None else min_hours
    hours = max(elapsed_seconds / 3600.0, _RAW_DURATION_FLOOR_HOURS)
    return max(round(hours, 2), floor)


def _segment_seconds(card: Any, now: datetime) -> float:
    """Seconds spent in the current assembling segment."""
    segment_start = card.last_resumed_at or card.start_time
    if segment_start is None:
        return 0.0
    return max((now - segment_start).total_seconds(), 0.0)


def _reject(card: Any, requested: str, code: str, message: str) -> TransitionResult:
    logger.warning(
        "Rejected transition for card %s: %s -> %s (%s)",
        card.card_number, card.status, requested, message,
    )
    return TransitionResult(
        ok=False,
        from_status=card.status,
        to_status=requested,
        error=code,
        message=message,
    )


def _check_assembling_entry(card: Any) -> str | None:
    """Return a rejection message if the card may not start assembling."""
    if card.type == DEAD_TIME:
        return "dead time cards have no build phase"
    if card.status == READY_FOR_BUILD:
        pass
    elif card.status in SIDE_STATES and card.previous_status == ASSEMBLING:
        pass
    else:
        return "assembling can only be entered from ready_for_build"
    if card.type in SUB_ASSY_TYPES and card.sub_assy_area is None:
        return f"{card.type} cards require a sub-assembly area before assembling"
    return None


def apply_transition(
    card: Any,
    requested_status: str,
    now: datetime,
    *,
    min_duration_hours: float | None = None,
) -> TransitionResult:
    """Move ``card`` to ``requested_status`` and stamp lifecycle fields.

    Args:
        card: The card to mutate in place.
        requested_status: Target status.
        now: Timestamp used for every stamp written by this transition.
        min_duration_hours: Override for the completed-duration floor.

    Returns:
        A ``TransitionResult``; ``changed_fields`` lists what was written.
    """
    current = card.status

    if requested_status not in CARD_STATUSES:
        return _reject(
            card, requested_status, UNKNOWN_STATUS, f"unknown status {requested_status!r}"
        )

    if requested_status == ASSEMBLING:
        reason = _check_assembling_entry(card)
        if reason is not None:
            return _reject(card, requested_status, INVALID_TRANSITION, reason)
    elif requested_status == current:
        # Re-requesting the current status keeps the first stamps.
        return TransitionResult(ok=True, from_status=current, to_status=current)
    elif requested_status not in allowed_targets(card):
        return _reject(
            card,
            requested_status,
            INVALID_TRANSITION,
            f"{current} -> {requested_status} is not allowed for type {card.type}",
        )

    changes: dict[str, Any] = {"status": requested_status}

    if card.type == DEAD_TIME:
        changes["end_time"] = now if requested_status == COMPLETED else None
    else:
        _stamp_regular(card, current, requested_status, now, changes, min_duration_hours)

    for name, value in changes.items():
        setattr(card, name, value)

    logger.info("Card %s: %s -> %s", card.card_number, current, requested_status)
    return TransitionResult(
        ok=True,
        from_status=current,
        to_status=requested_status,
        changed_fields=changes,
    )


def _stamp_regular(
    card: Any,
    current: str,
    target: str,
    now: datetime,
    changes: dict[str, Any],
    min_duration_hours: float | None,
) -> None:
    if target in SIDE_STATES:
        if current not in SIDE_STATES:
            changes["previous_status"] = current
        if current == ASSEMBLING:
            changes["elapsed_time"] = int((card.elapsed_time or 0) + _segment_seconds(card, now))
            changes["last_resumed_at"] = None
        return

    if current in SIDE_STATES:
        changes["previous_status"] = None

    if target == PICKING:
        changes["picking_start_time"] = now
    elif target == ASSEMBLING:
        if card.start_time is None:
            changes["start_time"] = now
        changes["last_resumed_at"] = now
    elif target == COMPLETED:
        total = (card.elapsed_time or 0) + _segment_seconds(card, now)
        changes["end_time"] = now
        changes["elapsed_time"] = int(total)
        changes["last_resumed_at"] = None
        changes["actual_duration"] = compute_actual_duration(total, min_duration_hours)


def reset_card(card: Any) -> None:
    """Return a card to ``scheduled`` and clear every lifecycle stamp."""
    card.status = SCHEDULED
    card.previous_status = None
    card.start_time = None
    card.end_time = None
    card.last_resumed_at = None
    card.elapsed_time = 0
    card.picking_start_time = None
    card.actual_duration = None
