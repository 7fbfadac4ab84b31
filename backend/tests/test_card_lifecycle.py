"""Tests for the assembly card state machine."""

from datetime import datetime, timedelta, timezone

import pytest

from app.services.card_lifecycle import (
    CARD_STATUSES,
    INVALID_TRANSITION,
    UNKNOWN_STATUS,
    allowed_targets,
    apply_transition,
    compute_actual_duration,
    reset_card,
)

T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


class TestAssemblingEntry:
    @pytest.mark.parametrize(
        "status", [s for s in CARD_STATUSES if s not in ("ready_for_build", "assembling")]
    )
    def test_rejected_unless_ready_for_build(self, card_factory, status):
        card = card_factory.create(status=status)
        result = apply_transition(card, "assembling", T0)
        assert result.ok is False
        assert result.error == INVALID_TRANSITION
        assert card.status == status
        assert card.start_time is None

    def test_from_ready_for_build_stamps_start(self, card_factory):
        card = card_factory.create(status="ready_for_build")
        result = apply_transition(card, "assembling", T0)
        assert result.ok is True
        assert card.status == "assembling"
        assert card.start_time == T0
        assert card.last_resumed_at == T0

    def test_already_assembling_is_rejected(self, card_factory):
        card = card_factory.create(status="assembling", start_time=T0, last_resumed_at=T0)
        result = apply_transition(card, "assembling", T0 + timedelta(hours=1))
        assert result.ok is False
        assert card.start_time == T0

    def test_sub_assembly_requires_area(self, card_factory):
        card = card_factory.create(type="S", status="ready_for_build", sub_assy_area=None)
        result = apply_transition(card, "assembling", T0)
        assert result.ok is False
        assert "sub-assembly area" in result.message

    def test_sub_assembly_with_area(self, card_factory):
        card = card_factory.create(type="P", status="ready_for_build", sub_assy_area=3)
        assert apply_transition(card, "assembling", T0).ok is True

    def test_dead_time_never_assembles(self, card_factory):
        card = card_factory.create(type="DEAD_TIME", status="scheduled")
        result = apply_transition(card, "assembling", T0)
        assert result.ok is False
        assert result.error == INVALID_TRANSITION


class TestForwardPipeline:
    def test_full_pipeline(self, card_factory):
        card = card_factory.create()
        for step, target in enumerate(
            ["cleared_for_picking", "picking", "ready_for_build", "assembling", "completed"]
        ):
            result = apply_transition(card, target, T0 + timedelta(hours=step))
            assert result.ok, result.message

        assert card.picking_start_time == T0 + timedelta(hours=1)
        assert card.start_time == T0 + timedelta(hours=3)
        assert card.end_time == T0 + timedelta(hours=4)
        assert card.elapsed_time == 3600
        assert card.actual_duration == 1.0

    def test_cannot_skip_states(self, card_factory):
        card = card_factory.create(status="scheduled")
        result = apply_transition(card, "picking", T0)
        assert result.ok is False
        assert result.error == INVALID_TRANSITION
        assert result.from_status == "scheduled"
        assert result.to_status == "picking"

    def test_unknown_status(self, card_factory):
        card = card_factory.create()
        result = apply_transition(card, "in_progress", T0)
        assert result.ok is False
        assert result.error == UNKNOWN_STATUS
        assert card.status == "scheduled"

    def test_paint_only_for_paint_routed_types(self, card_factory):
        painted = card_factory.create(type="P", status="picking")
        plain = card_factory.create(type="M", status="picking")
        assert "delivered_to_paint" in allowed_targets(painted)
        assert "delivered_to_paint" not in allowed_targets(plain)
        assert apply_transition(plain, "delivered_to_paint", T0).ok is False

    def test_completed_is_terminal(self, card_factory):
        card = card_factory.create(status="completed")
        assert allowed_targets(card) == frozenset()
        assert apply_transition(card, "scheduled", T0).ok is False


class TestSideStates:
    def test_pause_accumulates_elapsed(self, card_factory):
        card = card_factory.create(status="assembling", start_time=T0, last_resumed_at=T0)
        result = apply_transition(card, "paused", T0 + timedelta(minutes=30))
        assert result.ok is True
        assert card.previous_status == "assembling"
        assert card.elapsed_time == 1800
        assert card.last_resumed_at is None

    def test_resume_then_complete_adds_segments(self, card_factory):
        card = card_factory.create(
            status="paused", previous_status="assembling", start_time=T0, elapsed_time=1800
        )
        resume_at = T0 + timedelta(hours=2)
        assert apply_transition(card, "assembling", resume_at).ok is True
        assert card.start_time == T0
        assert card.previous_status is None

        assert apply_transition(card, "completed", resume_at + timedelta(seconds=1800)).ok is True
        assert card.elapsed_time == 3600
        assert card.actual_duration == pytest.approx(1.0)

    def test_side_state_returns_only_to_previous(self, card_factory):
        card = card_factory.create(status="blocked", previous_status="ready_for_build")
        assert allowed_targets(card) == frozenset({"ready_for_build", "paused"})
        assert apply_transition(card, "assembling", T0).ok is False
        assert apply_transition(card, "ready_for_build", T0).ok is True
        assert card.previous_status is None

    def test_switch_between_side_states_keeps_previous(self, card_factory):
        card = card_factory.create(status="paused", previous_status="assembling", elapsed_time=600)
        assert apply_transition(card, "blocked", T0).ok is True
        assert card.status == "blocked"
        assert card.previous_status == "assembling"
        assert card.elapsed_time == 600

    def test_not_reachable_from_scheduled(self, card_factory):
        card = card_factory.create(status="scheduled")
        assert apply_transition(card, "blocked", T0).ok is False


class TestCompletion:
    def test_completing_twice_keeps_first_stamps(self, card_factory):
        card = card_factory.create(status="assembling", start_time=T0, last_resumed_at=T0)
        apply_transition(card, "completed", T0 + timedelta(hours=2))
        first = (card.start_time, card.end_time, card.actual_duration)

        result = apply_transition(card, "completed", T0 + timedelta(hours=5))
        assert result.ok is True
        assert result.changed_fields == {}
        assert (card.start_time, card.end_time, card.actual_duration) == first

    def test_short_build_gets_floor(self, card_factory):
        card = card_factory.create(status="assembling", start_time=T0, last_resumed_at=T0)
        apply_transition(card, "completed", T0 + timedelta(seconds=5))
        assert card.actual_duration == 0.01

    def test_floor_override(self, card_factory):
        card = card_factory.create(status="assembling", start_time=T0, last_resumed_at=T0)
        apply_transition(card, "completed", T0 + timedelta(minutes=6), min_duration_hours=1.0)
        assert card.actual_duration == 1.0


class TestDeadTime:
    def test_toggles_between_scheduled_and_completed(self, card_factory):
        card = card_factory.create(type="DEAD_TIME", status="scheduled")
        assert apply_transition(card, "completed", T0).ok is True
        assert card.end_time == T0
        assert card.actual_duration is None
        assert card.start_time is None

        assert apply_transition(card, "scheduled", T0 + timedelta(hours=1)).ok is True
        assert card.end_time is None

    def test_no_pipeline_states(self, card_factory):
        card = card_factory.create(type="DEAD_TIME", status="scheduled")
        assert apply_transition(card, "cleared_for_picking", T0).ok is False


class TestComputeActualDuration:
    def test_rounds_to_two_decimals(self):
        assert compute_actual_duration(5400) == 1.5
        assert compute_actual_duration(1000) == 0.28

    def test_zero_elapsed(self):
        assert compute_actual_duration(0) == 0.01


def test_reset_card_clears_lifecycle(card_factory):
    card = card_factory.create(
        status="completed",
        start_time=T0,
        end_time=T0 + timedelta(hours=1),
        elapsed_time=3600,
        actual_duration=1.0,
        picking_start_time=T0,
    )
    reset_card(card)
    assert card.status == "scheduled"
    assert card.start_time is None
    assert card.end_time is None
    assert card.elapsed_time == 0
    assert card.actual_duration is None
    assert card.picking_start_time is None
