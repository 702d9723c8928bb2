"""
Tests for the Application Lifecycle.

============================================================
PURPOSE
============================================================
Covers:
1. Submission checks and their order
2. Manager decisions
3. Booking, including the decide/book race
4. Withdrawal request, approval and rejection
5. The single-claim invariant

============================================================
"""

from datetime import date

import pytest

from allocation_engine.applications import ApplicationLifecycle
from allocation_engine.eligibility import EligibilityRules
from allocation_engine.errors import ErrorCode
from allocation_engine.inventory import ProjectInventory
from allocation_engine.tables import Tables
from allocation_engine.types import (
    Applicant,
    ApplicationStatus,
    FlatInventory,
    FlatType,
    MaritalStatus,
    Project,
)
from core.clock import MockClock


MANAGER = "S5678901G"
OFFICER = "T2109876H"


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    return MockClock(date(2025, 3, 1))


@pytest.fixture
def project():
    return Project(
        name="Acacia Breeze",
        neighborhood="Yishun",
        open_date=date(2025, 2, 15),
        close_date=date(2025, 3, 20),
        manager_id=MANAGER,
        officer_slot_capacity=3,
        flat_inventory={
            FlatType.TWO_ROOM: FlatInventory(units_remaining=2, price=350000),
            FlatType.THREE_ROOM: FlatInventory(units_remaining=1, price=450000),
        },
    )


@pytest.fixture
def married():
    return Applicant("S1234567A", "John", 25, MaritalStatus.MARRIED)


@pytest.fixture
def married_other():
    return Applicant("T7654321B", "Sarah", 40, MaritalStatus.MARRIED)


@pytest.fixture
def single():
    return Applicant("S9876543C", "Grace", 30, MaritalStatus.SINGLE)


@pytest.fixture
def tables(project, married, married_other, single):
    tables = Tables()
    tables.load(applicants=[married, married_other, single], projects=[project])
    return tables


@pytest.fixture
def inventory(tables):
    return ProjectInventory(tables)


@pytest.fixture
def lifecycle(tables, inventory, clock):
    return ApplicationLifecycle(tables, inventory, EligibilityRules(), clock)


def approved(lifecycle, applicant, project, flat_type=FlatType.THREE_ROOM):
    application = lifecycle.submit(applicant, project, flat_type).unwrap()
    lifecycle.decide(application, ApplicationStatus.SUCCESSFUL, MANAGER).unwrap()
    return application


# ============================================================
# SUBMISSION TESTS
# ============================================================

class TestSubmit:

    def test_single_under_35_ineligible(self, lifecycle, single, project):
        """Single applicant aged 30 cannot apply for a 2-Room flat."""
        result = lifecycle.submit(single, project, FlatType.TWO_ROOM)

        assert result.error_code == ErrorCode.INELIGIBLE
        assert lifecycle.applications_of(single.nric) == ()

    def test_submit_creates_pending_without_reserving(self, lifecycle, married, project, inventory):
        result = lifecycle.submit(married, project, FlatType.THREE_ROOM)

        assert result.is_success
        assert result.value.status == ApplicationStatus.PENDING
        assert not result.value.withdrawal_requested
        assert inventory.units_remaining(project, FlatType.THREE_ROOM) == 1

    def test_second_submission_refused(self, lifecycle, married, project):
        lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        result = lifecycle.submit(married, project, FlatType.TWO_ROOM)

        assert result.error_code == ErrorCode.ALREADY_HAS_ACTIVE_APPLICATION
        assert len(lifecycle.applications_of(married.nric)) == 1

    def test_closed_project(self, lifecycle, married, project, clock):
        result = lifecycle.submit(married, project, FlatType.THREE_ROOM, as_of=date(2025, 3, 20))
        assert result.error_code == ErrorCode.PROJECT_CLOSED

    def test_hidden_project_closed(self, lifecycle, married, project):
        project.visible = False
        assert lifecycle.submit(married, project, FlatType.THREE_ROOM).error_code == ErrorCode.PROJECT_CLOSED

    def test_uses_clock_when_as_of_omitted(self, lifecycle, married, project, clock):
        clock.set_time(date(2025, 4, 1))
        assert lifecycle.submit(married, project, FlatType.THREE_ROOM).error_code == ErrorCode.PROJECT_CLOSED

    def test_check_order_claim_before_window(self, lifecycle, married, project):
        lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        project.visible = False

        result = lifecycle.submit(married, project, FlatType.THREE_ROOM)
        assert result.error_code == ErrorCode.ALREADY_HAS_ACTIVE_APPLICATION

    def test_check_order_window_before_eligibility(self, lifecycle, single, project):
        project.visible = False
        assert lifecycle.submit(single, project, FlatType.THREE_ROOM).error_code == ErrorCode.PROJECT_CLOSED

    def test_unoffered_flat_type_has_no_units(self, lifecycle, married, project):
        del project.flat_inventory[FlatType.TWO_ROOM]
        result = lifecycle.submit(married, project, FlatType.TWO_ROOM)
        assert result.error_code == ErrorCode.NO_UNITS_AVAILABLE


# ============================================================
# DECISION AND BOOKING TESTS
# ============================================================

class TestDecideAndBook:

    def test_full_booking_flow(self, lifecycle, married, married_other, project, inventory):
        """Last 3-Room unit booked, next applicant finds none."""
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        assert application.status == ApplicationStatus.PENDING

        assert lifecycle.decide(application, ApplicationStatus.SUCCESSFUL, MANAGER).is_success
        assert lifecycle.book(application, OFFICER).is_success

        assert application.status == ApplicationStatus.BOOKED
        assert application.booked_by == OFFICER
        assert inventory.units_remaining(project, FlatType.THREE_ROOM) == 0

        result = lifecycle.submit(married_other, project, FlatType.THREE_ROOM)
        assert result.error_code == ErrorCode.NO_UNITS_AVAILABLE

    def test_decide_only_from_pending(self, lifecycle, married, project):
        application = approved(lifecycle, married, project)
        result = lifecycle.decide(application, ApplicationStatus.UNSUCCESSFUL, MANAGER)

        assert result.error_code == ErrorCode.INVALID_TRANSITION
        assert application.status == ApplicationStatus.SUCCESSFUL

    def test_decide_rejects_non_decision_outcome(self, lifecycle, married, project):
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        result = lifecycle.decide(application, ApplicationStatus.BOOKED, MANAGER)

        assert result.error_code == ErrorCode.INVALID_TRANSITION
        assert application.status == ApplicationStatus.PENDING

    def test_unsuccessful_frees_applicant(self, lifecycle, married, project):
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        lifecycle.decide(application, ApplicationStatus.UNSUCCESSFUL, MANAGER).unwrap()

        assert lifecycle.submit(married, project, FlatType.TWO_ROOM).is_success

    def test_book_requires_successful(self, lifecycle, married, project, inventory):
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        result = lifecycle.book(application, OFFICER)

        assert result.error_code == ErrorCode.INVALID_TRANSITION
        assert inventory.units_remaining(project, FlatType.THREE_ROOM) == 1

    def test_decide_book_race(self, lifecycle, married, married_other, project, inventory):
        """Two successful decisions for one unit: the second booking fails."""
        first = approved(lifecycle, married, project)
        second = approved(lifecycle, married_other, project)

        lifecycle.book(first, OFFICER).unwrap()
        result = lifecycle.book(second, OFFICER)

        assert result.error_code == ErrorCode.INSUFFICIENT_INVENTORY
        assert second.status == ApplicationStatus.SUCCESSFUL
        assert second.booked_by is None
        assert inventory.units_remaining(project, FlatType.THREE_ROOM) == 0

    def test_booked_still_holds_claim(self, lifecycle, married, project):
        application = approved(lifecycle, married, project)
        lifecycle.book(application, OFFICER).unwrap()

        result = lifecycle.submit(married, project, FlatType.TWO_ROOM)
        assert result.error_code == ErrorCode.ALREADY_HAS_ACTIVE_APPLICATION


# ============================================================
# WITHDRAWAL TESTS
# ============================================================

class TestWithdrawal:

    def test_request_is_idempotent(self, lifecycle, married, project, clock):
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()

        lifecycle.request_withdrawal(application).unwrap()
        stamped = application.updated_at
        clock.advance(hours=1)
        lifecycle.request_withdrawal(application).unwrap()

        assert application.withdrawal_requested
        assert application.updated_at == stamped
        assert application.status == ApplicationStatus.PENDING

    def test_approve_pending(self, lifecycle, married, project):
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        lifecycle.request_withdrawal(application).unwrap()
        lifecycle.approve_withdrawal(application, MANAGER).unwrap()

        assert application.status == ApplicationStatus.WITHDRAWN
        assert not application.withdrawal_requested
        assert lifecycle.submit(married, project, FlatType.TWO_ROOM).is_success

    def test_booked_round_trip_restores_units(self, lifecycle, married, project, inventory):
        application = approved(lifecycle, married, project)
        lifecycle.book(application, OFFICER).unwrap()
        assert inventory.units_remaining(project, FlatType.THREE_ROOM) == 0

        lifecycle.request_withdrawal(application).unwrap()
        lifecycle.approve_withdrawal(application, MANAGER).unwrap()

        assert application.status == ApplicationStatus.WITHDRAWN
        assert inventory.units_remaining(project, FlatType.THREE_ROOM) == 1

    def test_approve_without_request(self, lifecycle, married, project):
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        result = lifecycle.approve_withdrawal(application, MANAGER)

        assert result.error_code == ErrorCode.INVALID_TRANSITION
        assert application.status == ApplicationStatus.PENDING

    def test_reject_clears_flag(self, lifecycle, married, project):
        application = approved(lifecycle, married, project)
        lifecycle.request_withdrawal(application).unwrap()
        lifecycle.reject_withdrawal(application, MANAGER).unwrap()

        assert application.status == ApplicationStatus.SUCCESSFUL
        assert not application.withdrawal_requested
        assert lifecycle.reject_withdrawal(application, MANAGER).error_code == ErrorCode.INVALID_TRANSITION

    def test_cannot_withdraw_terminal(self, lifecycle, married, project):
        application = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        lifecycle.decide(application, ApplicationStatus.UNSUCCESSFUL, MANAGER).unwrap()

        result = lifecycle.request_withdrawal(application)
        assert result.error_code == ErrorCode.INVALID_TRANSITION
        assert not application.withdrawal_requested

    def test_withdrawal_requests_listing(self, lifecycle, married, married_other, project):
        first = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        lifecycle.submit(married_other, project, FlatType.THREE_ROOM).unwrap()
        lifecycle.request_withdrawal(first).unwrap()

        assert lifecycle.withdrawal_requests(project) == (first,)


# ============================================================
# QUERY AND HISTORY TESTS
# ============================================================

class TestQueries:

    def test_current_application_prefers_claim(self, lifecycle, married, project):
        old = lifecycle.submit(married, project, FlatType.THREE_ROOM).unwrap()
        lifecycle.decide(old, ApplicationStatus.UNSUCCESSFUL, MANAGER).unwrap()
        assert lifecycle.current_application(married.nric) is old

        new = lifecycle.submit(married, project, FlatType.TWO_ROOM).unwrap()
        assert lifecycle.current_application(married.nric) is new

    def test_current_application_none(self, lifecycle):
        assert lifecycle.current_application("S0000000Z") is None

    def test_filter_by_status(self, lifecycle, married, married_other, project):
        first = approved(lifecycle, married, project)
        lifecycle.submit(married_other, project, FlatType.TWO_ROOM).unwrap()

        assert lifecycle.applications_for_project(project, ApplicationStatus.SUCCESSFUL) == (first,)
        assert len(lifecycle.applications_for_project(project)) == 2

    def test_history_records_every_transition(self, lifecycle, married, project):
        application = approved(lifecycle, married, project)
        lifecycle.book(application, OFFICER).unwrap()

        steps = [(e.from_state, e.to_state) for e in lifecycle.history]
        assert steps == [
            (ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL),
            (ApplicationStatus.SUCCESSFUL, ApplicationStatus.BOOKED),
        ]
        assert lifecycle.history[-1].actor_id == OFFICER
