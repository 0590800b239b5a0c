"""Unit tests for order status transitions (State Pattern)."""

import pytest

from ridecore.domain.entities import check_transition
from ridecore.domain.enums import ORDER_TRANSITIONS, TERMINAL_STATUSES, OrderStatus
from ridecore.domain.errors import InvalidState


class TestOrderStateMachine:
    # ── Valid transitions ─────────────────────────────────────────

    def test_searching_to_assigned(self):
        check_transition(OrderStatus.SEARCHING, OrderStatus.ASSIGNED)

    def test_searching_stays_searching(self):
        check_transition(OrderStatus.SEARCHING, OrderStatus.SEARCHING)

    def test_assigned_to_on_trip(self):
        check_transition(OrderStatus.ASSIGNED, OrderStatus.ON_TRIP)

    def test_on_trip_to_completed(self):
        check_transition(OrderStatus.ON_TRIP, OrderStatus.COMPLETED)

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.SCHEDULED,
            OrderStatus.SEARCHING,
            OrderStatus.ASSIGNED,
            OrderStatus.ON_TRIP,
        ],
    )
    def test_any_active_order_can_be_cancelled(self, status):
        check_transition(status, OrderStatus.CANCELLED)

    def test_accepts_raw_status_values(self):
        check_transition("searching", OrderStatus.ASSIGNED)

    # ── Invalid transitions ───────────────────────────────────────

    def test_searching_to_completed_fails(self):
        with pytest.raises(InvalidState):
            check_transition(OrderStatus.SEARCHING, OrderStatus.COMPLETED)

    def test_scheduled_cannot_start(self):
        """Scheduled orders have no activation path."""
        with pytest.raises(InvalidState):
            check_transition(OrderStatus.SCHEDULED, OrderStatus.SEARCHING)
        with pytest.raises(InvalidState):
            check_transition(OrderStatus.SCHEDULED, OrderStatus.ON_TRIP)

    def test_assigned_cannot_go_back_to_searching(self):
        with pytest.raises(InvalidState):
            check_transition(OrderStatus.ASSIGNED, OrderStatus.SEARCHING)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
    @pytest.mark.parametrize("target", list(OrderStatus))
    def test_terminal_statuses_are_final(self, terminal, target):
        with pytest.raises(InvalidState, match="Cannot transition"):
            check_transition(terminal, target)

    def test_every_status_has_a_rule(self):
        assert set(ORDER_TRANSITIONS) == set(OrderStatus)
