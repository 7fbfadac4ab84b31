"""Dependency validation for assembly cards.

``validate_dependencies`` is a pure function of the card snapshot passed in.
It runs every check and collects all findings so a scheduler can fix every
problem in one pass. Only ``BlockedDependency`` is advisory; any other
finding makes the result invalid.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

SELF_REFERENCE = "SelfReference"
UNKNOWN_DEPENDENCY = "UnknownDependency"
POSITION_CONFLICT = "PositionConflict"
TIMING_CONFLICT = "TimingConflict"
CIRCULAR_DEPENDENCY = "CircularDependency"
BLOCKED_DEPENDENCY = "BlockedDependency"

# Findings that are reported but never reject a schedule change.
ADVISORY_KINDS = frozenset({BLOCKED_DEPENDENCY})


@dataclass(frozen=True)
class Finding:
    """A single problem with one dependency of the subject card."""

    kind: str
    dependency: str
    message: str

    @property
    def fatal(self) -> bool:
        return self.kind not in ADVISORY_KINDS


@dataclass
class ValidationResult:
    """Verdict for a candidate dependency list."""

    card_number: str
    findings: list[Finding] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not any(f.fatal for f in self.findings)

    @property
    def issues(self) -> list[str]:
        return [f.message for f in self.findings]

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.fatal]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if not f.fatal]

    def kinds(self) -> list[str]:
        return [f.kind for f in self.findings]


def _dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def _reaches(start: str, target: str, by_number: dict[str, Any]) -> bool:
    """Whether ``start`` depends, directly or transitively, on ``target``."""
    stack = [start]
    visited: set[str] = set()
    while stack:
        number = stack.pop()
        if number in visited:
            continue
        visited.add(number)
        card = by_number.get(number)
        if card is None:
            continue
        for dep in card.dependencies or ():
            if dep == target:
                return True
            stack.append(dep)
    return False


def validate_dependencies(
    card_number: str,
    candidate_dependencies: Sequence[str],
    all_cards: Iterable[Any],
) -> ValidationResult:
    """Check a candidate dependency list against the current card snapshot.

    Args:
        card_number: The subject card. It may be absent from ``all_cards``
            when validating a card that is about to be created; lane and
            timing checks are then skipped.
        candidate_dependencies: Card numbers the subject would depend on.
        all_cards: Every card, as objects exposing ``card_number``,
            ``assigned_to``, ``position``, ``start_time``, ``end_time``,
            ``status`` and ``dependencies``.

    Returns:
        A ``ValidationResult`` holding every finding.
    """
    by_number = {card.card_number: card for card in all_cards}
    subject = by_number.get(card_number)
    result = ValidationResult(card_number=card_number)
    candidates = _dedupe(candidate_dependencies)

    if card_number in candidates:
        result.findings.append(Finding(
            SELF_REFERENCE, card_number, f"Card {card_number} cannot depend on itself"
        ))

    for dep_number in candidates:
        if dep_number == card_number:
            continue

        dep = by_number.get(dep_number)
        if dep is None:
            result.findings.append(Finding(
                UNKNOWN_DEPENDENCY, dep_number, f"Dependency card {dep_number} not found"
            ))
            continue

        if subject is not None:
            result.findings.extend(_lane_findings(subject, dep))

        if _reaches(dep_number, card_number, by_number):
            result.findings.append(Finding(
                CIRCULAR_DEPENDENCY,
                dep_number,
                f"Circular dependency detected between {card_number} and {dep_number}",
            ))

        if dep.status == "blocked":
            result.findings.append(Finding(
                BLOCKED_DEPENDENCY, dep_number, f"Dependency {dep_number} is blocked"
            ))

    return result


def _lane_findings(subject: Any, dep: Any) -> list[Finding]:
    """Position check within one lane, timing check across lanes."""
    if subject.assigned_to is None or dep.assigned_to is None:
        return []

    if subject.assigned_to == dep.assigned_to:
        if subject.position is None or dep.position is None:
            return []
        if dep.position >= subject.position:
            return [Finding(
                POSITION_CONFLICT,
                dep.card_number,
                f"Dependency {dep.card_number} (position {dep.position}) is scheduled at or "
                f"after {subject.card_number} (position {subject.position}) in the same lane",
            )]
        return []

    if dep.end_time is not None and subject.start_time is not None:
        if dep.end_time > subject.start_time:
            return [Finding(
                TIMING_CONFLICT,
                dep.card_number,
                f"Dependency {dep.card_number} is not completed before "
                f"{subject.card_number} starts",
            )]
    return []
