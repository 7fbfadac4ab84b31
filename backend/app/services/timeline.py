"""Planned lane timeline.

Cards in a lane run back to back from the schedule start. Work happens in a
daily window that opens at the schedule start's time of day and lasts
``hours_per_day`` hours; Saturdays and Sundays are skipped.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class PlannedSlot:
    card: Any
    start: datetime
    end: datetime


def next_business_day(moment: datetime) -> datetime:
    """The next Monday-to-Friday day after ``moment``, same time of day."""
    moment += timedelta(days=1)
    while moment.weekday() >= 5:
        moment += timedelta(days=1)
    return moment


def add_work_hours(
    start: datetime, hours: float, day_open: datetime, hours_per_day: float
) -> datetime:
    """Advance ``start`` by ``hours`` of working time.

    ``day_open`` supplies the time of day the work window opens. A start
    outside the window is moved to the next opening first.
    """
    remaining = timedelta(hours=hours)
    window = timedelta(hours=hours_per_day)
    current = start
    while True:
        opens = current.replace(
            hour=day_open.hour, minute=day_open.minute, second=0, microsecond=0
        )
        if current.weekday() >= 5:
            current = next_business_day(opens)
            continue
        current = max(current, opens)
        left = max(opens + window - current, timedelta(0))
        if remaining < left or (remaining and remaining == left):
            return current + remaining
        remaining -= left
        current = next_business_day(opens)


def plan_lane(
    cards: Iterable[Any], schedule_start: datetime, hours_per_day: float
) -> list[PlannedSlot]:
    """Lay out ``cards`` in position order starting at ``schedule_start``."""
    slots: list[PlannedSlot] = []
    cursor = schedule_start
    for card in sorted(cards, key=lambda c: c.position):
        start = add_work_hours(cursor, 0, schedule_start, hours_per_day)
        end = add_work_hours(start, card.duration, schedule_start, hours_per_day)
        slots.append(PlannedSlot(card=card, start=start, end=end))
        cursor = end
    return slots
