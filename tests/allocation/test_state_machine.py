"""
Tests for the Application State Machine.
"""

from datetime import datetime, timezone

import pytest

from allocation_engine.errors import InvalidTransition
from allocation_engine.state_machine import (
    VALID_TRANSITIONS,
    ApplicationStateMachine,
    TransitionGuard,
)
from allocation_engine.types import Application, ApplicationStatus, FlatType
from core.clock import MockClock


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    return MockClock(datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def application():
    return Application(
        applicant_id="S1234567A",
        project_id="Acacia Breeze",
        flat_type=FlatType.TWO_ROOM,
    )


@pytest.fixture
def machine(application, clock):
    return ApplicationStateMachine(application, clock)


# ============================================================
# TRANSITION TABLE TESTS
# ============================================================

class TestTransitionTable:

    def test_final_states(self):
        assert VALID_TRANSITIONS[ApplicationStatus.UNSUCCESSFUL] == set()
        assert VALID_TRANSITIONS[ApplicationStatus.WITHDRAWN] == set()

    def test_booked_only_withdraws(self):
        assert VALID_TRANSITIONS[ApplicationStatus.BOOKED] == {ApplicationStatus.WITHDRAWN}

    def test_guard_messages(self):
        allowed, _ = TransitionGuard.can_transition(
            ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL
        )
        assert allowed

        allowed, reason = TransitionGuard.can_transition(
            ApplicationStatus.WITHDRAWN, ApplicationStatus.PENDING
        )
        assert not allowed
        assert "final state" in reason

        allowed, reason = TransitionGuard.can_transition(
            ApplicationStatus.PENDING, ApplicationStatus.BOOKED
        )
        assert not allowed
        assert "Invalid transition" in reason


# ============================================================
# MACHINE TESTS
# ============================================================

class TestApplicationStateMachine:

    def test_successful_then_booked(self, machine, application, clock):
        machine.mark_successful("S5678901G")
        clock.advance(hours=1)
        machine.mark_booked("T2109876H")

        assert application.status == ApplicationStatus.BOOKED
        assert application.previous_status == ApplicationStatus.SUCCESSFUL
        assert application.booked_by == "T2109876H"
        assert application.booked_at == clock.now()

    def test_book_from_pending_leaves_record_untouched(self, machine, application):
        with pytest.raises(InvalidTransition):
            machine.mark_booked("T2109876H")

        assert application.status == ApplicationStatus.PENDING
        assert application.booked_by is None

    def test_withdraw_requires_request(self, machine, application):
        with pytest.raises(InvalidTransition):
            machine.mark_withdrawn("S5678901G")

        application.withdrawal_requested = True
        machine.mark_withdrawn("S5678901G")
        assert application.status == ApplicationStatus.WITHDRAWN

    def test_history_and_listeners(self, machine):
        seen = []
        machine.add_listener(seen.append)

        event = machine.mark_unsuccessful("S5678901G")

        assert machine.history == [event]
        assert seen == [event]
        assert event.from_state == ApplicationStatus.PENDING
        assert event.to_state == ApplicationStatus.UNSUCCESSFUL
        assert event.actor_id == "S5678901G"

    def test_failing_listener_does_not_block(self, machine, application):
        def broken(event):
            raise RuntimeError("listener down")

        machine.add_listener(broken)
        machine.mark_successful("S5678901G")
        assert application.status == ApplicationStatus.SUCCESSFUL

    def test_no_transition_out_of_unsuccessful(self, machine):
        machine.mark_unsuccessful("S5678901G")
        allowed, _ = machine.can_transition_to(ApplicationStatus.SUCCESSFUL)
        assert not allowed
