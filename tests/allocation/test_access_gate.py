"""
Tests for the Access Gate.
"""

from datetime import date

import pytest

from allocation_engine.access_gate import PERMISSIONS, AccessGate, Operation
from allocation_engine.errors import Unauthorized
from allocation_engine.tables import Tables
from allocation_engine.types import (
    Applicant,
    Application,
    AssignmentStatus,
    FlatInventory,
    FlatType,
    Identity,
    Manager,
    MaritalStatus,
    OfficerAssignment,
    Project,
    Role,
)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def applicant():
    return Identity.for_applicant(Applicant("S1234567A", "John", 35, MaritalStatus.SINGLE))


@pytest.fixture
def officer():
    return Identity.for_officer(Applicant("T2109876H", "Daniel", 36, MaritalStatus.SINGLE))


@pytest.fixture
def manager():
    return Identity.for_manager(Manager("S5678901G", "Michael"))


@pytest.fixture
def project():
    return Project(
        name="Acacia Breeze",
        neighborhood="Yishun",
        open_date=date(2025, 2, 15),
        close_date=date(2025, 3, 20),
        manager_id="S5678901G",
        officer_slot_capacity=3,
        flat_inventory={FlatType.TWO_ROOM: FlatInventory(units_remaining=2, price=350000)},
    )


@pytest.fixture
def tables(project):
    tables = Tables()
    tables.load(projects=[project], officer_ids=["T2109876H"])
    return tables


@pytest.fixture
def gate(tables):
    return AccessGate(tables)


def approve(tables, officer_id, project_name):
    request = OfficerAssignment(officer_id, project_name, status=AssignmentStatus.APPROVED)
    tables.assignments[request.assignment_id] = request


# ============================================================
# ROLE TABLE TESTS
# ============================================================

class TestRoleTable:

    def test_every_operation_has_roles(self):
        assert set(PERMISSIONS) == set(Operation)
        assert all(PERMISSIONS[op] for op in Operation)

    @pytest.mark.parametrize("operation,role,allowed", [
        (Operation.SUBMIT_APPLICATION, Role.APPLICANT, True),
        (Operation.SUBMIT_APPLICATION, Role.OFFICER, True),
        (Operation.SUBMIT_APPLICATION, Role.MANAGER, False),
        (Operation.DECIDE_APPLICATION, Role.OFFICER, False),
        (Operation.DECIDE_APPLICATION, Role.MANAGER, True),
        (Operation.BOOK_FLAT, Role.APPLICANT, False),
        (Operation.BOOK_FLAT, Role.OFFICER, True),
        (Operation.BOOK_FLAT, Role.MANAGER, False),
        (Operation.REPLY_ENQUIRY, Role.APPLICANT, False),
        (Operation.REPLY_ENQUIRY, Role.OFFICER, True),
        (Operation.REPLY_ENQUIRY, Role.MANAGER, True),
        (Operation.VIEW_PROJECTS, Role.APPLICANT, True),
    ])
    def test_permission(self, gate, applicant, officer, manager, operation, role, allowed):
        identity = {Role.APPLICANT: applicant, Role.OFFICER: officer, Role.MANAGER: manager}[role]
        assert gate.is_allowed(identity, operation) is allowed

    def test_authorize_raises(self, gate, applicant):
        with pytest.raises(Unauthorized) as exc_info:
            gate.authorize(applicant, Operation.DECIDE_APPLICATION)
        assert exc_info.value.context["role"] == "Applicant"


# ============================================================
# SCOPE TESTS
# ============================================================

class TestScope:

    def test_owner(self, gate, applicant):
        gate.require_owner(applicant, "S1234567A")
        with pytest.raises(Unauthorized):
            gate.require_owner(applicant, "T7654321B")

    def test_applicant_profile(self, gate, applicant, officer, manager):
        assert gate.applicant_profile(applicant).nric == "S1234567A"
        assert gate.applicant_profile(officer).nric == "T2109876H"
        with pytest.raises(Unauthorized):
            gate.applicant_profile(manager)

    def test_project_manager(self, gate, manager, project):
        gate.require_project_manager(manager, project)

        other = Identity.for_manager(Manager("T8765432F", "Jessica"))
        with pytest.raises(Unauthorized):
            gate.require_project_manager(other, project)

    def test_project_officer_needs_approval(self, gate, tables, officer, project):
        with pytest.raises(Unauthorized):
            gate.require_project_officer(officer, project)

        approve(tables, officer.user_id, project.name)
        gate.require_project_officer(officer, project)

    def test_pending_request_is_not_approval(self, gate, tables, officer, project):
        request = OfficerAssignment(officer.user_id, project.name)
        tables.assignments[request.assignment_id] = request

        with pytest.raises(Unauthorized):
            gate.require_project_officer(officer, project)

    def test_project_staff(self, gate, tables, officer, manager, applicant, project):
        gate.require_project_staff(manager, project)
        approve(tables, officer.user_id, project.name)
        gate.require_project_staff(officer, project)
        with pytest.raises(Unauthorized):
            gate.require_project_staff(applicant, project)

    def test_officer_cannot_apply_to_handled_project(self, gate, tables, officer, applicant, project):
        gate.require_not_handling(officer, project)
        approve(tables, officer.user_id, project.name)

        with pytest.raises(Unauthorized):
            gate.require_not_handling(officer, project)
        gate.require_not_handling(applicant, project)

    def test_officer_cannot_handle_applied_project(self, gate, tables, officer, project):
        gate.require_not_applicant_of(officer, project)

        application = Application(officer.user_id, project.name, FlatType.TWO_ROOM)
        tables.applications[application.application_id] = application

        with pytest.raises(Unauthorized):
            gate.require_not_applicant_of(officer, project)

    def test_pending_request_blocks_applying(self, gate, tables, officer, project):
        request = OfficerAssignment(officer.user_id, project.name)
        tables.assignments[request.assignment_id] = request

        with pytest.raises(Unauthorized):
            gate.require_not_handling(officer, project)

        request.status = AssignmentStatus.REJECTED
        gate.require_not_handling(officer, project)

    def test_manager_checks_requesting_officer_claim(self, gate, tables, officer, manager, project):
        gate.require_not_applicant_of(manager, project, officer_id=officer.user_id)

        application = Application(officer.user_id, project.name, FlatType.TWO_ROOM)
        tables.applications[application.application_id] = application

        with pytest.raises(Unauthorized):
            gate.require_not_applicant_of(manager, project, officer_id=officer.user_id)
