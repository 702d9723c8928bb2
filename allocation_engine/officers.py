"""
Allocation Engine - Officer Assignment Manager.

============================================================
PURPOSE
============================================================
Manages officer requests to handle a project and their approval.

RULES:
- An officer holds at most one APPROVED assignment
- A project's APPROVED officers never exceed its slot capacity
- An officer may have several PENDING requests across projects;
  approving one voids (REJECTS) the others
- Exclusivity and slots are checked again at approval time

============================================================
"""

import logging
from typing import Optional, Tuple

from core.clock import ClockProtocol, get_clock

from .errors import (
    InvalidTransition,
    NoSlotsAvailable,
    OfficerAlreadyAssigned,
    returns_result,
)
from .inventory import ProjectInventory
from .tables import Tables
from .types import AssignmentStatus, OfficerAssignment, Project


logger = logging.getLogger(__name__)


class OfficerAssignmentManager:
    """Officer-to-project registration workflow."""

    def __init__(
        self,
        tables: Tables,
        inventory: ProjectInventory,
        clock: Optional[ClockProtocol] = None,
    ):
        self._tables = tables
        self._inventory = inventory
        self._clock = clock or get_clock()

    # --------------------------------------------------------
    # REQUEST
    # --------------------------------------------------------

    @returns_result
    def request_assignment(self, officer_id: str, project: Project) -> OfficerAssignment:
        """
        Register an officer's interest in handling a project.

        A repeated request for the same project returns the
        request already pending.
        """
        self._ensure_not_assigned(officer_id)

        if self._inventory.remaining_officer_slots(project) <= 0:
            raise NoSlotsAvailable(
                f"{project.name} has no officer slots left",
                project_id=project.name,
                capacity=project.officer_slot_capacity,
            )

        for existing in self._tables.assignments_of(officer_id):
            if existing.project_id == project.name and existing.status == AssignmentStatus.PENDING:
                return existing

        request = OfficerAssignment(
            officer_id=officer_id,
            project_id=project.name,
            requested_at=self._clock.now(),
        )
        self._tables.assignments[request.assignment_id] = request
        logger.info(f"Officer {officer_id} requested {project.name} ({request.assignment_id})")
        return request

    # --------------------------------------------------------
    # DECISION
    # --------------------------------------------------------

    @returns_result
    def approve_assignment(self, request: OfficerAssignment) -> OfficerAssignment:
        """
        Approve a pending request.

        The officer takes one project slot; the officer's other
        pending requests are rejected.
        """
        if request.status == AssignmentStatus.APPROVED:
            raise InvalidTransition(
                f"{request.assignment_id} is already approved",
                assignment_id=request.assignment_id,
            )

        project = self._tables.get_project(request.project_id)

        with self._tables.project_lock(project.name):
            if self._inventory.remaining_officer_slots(project) <= 0:
                raise NoSlotsAvailable(
                    f"{project.name} has no officer slots left",
                    project_id=project.name,
                    capacity=project.officer_slot_capacity,
                )
            self._ensure_not_assigned(request.officer_id)

            if request.status != AssignmentStatus.PENDING:
                raise InvalidTransition(
                    f"{request.assignment_id} is {request.status.value}",
                    assignment_id=request.assignment_id,
                )

            self._inventory.add_officer(project, request.officer_id)
            now = self._clock.now()
            request.status = AssignmentStatus.APPROVED
            request.decided_at = now

            for other in self._tables.assignments_of(request.officer_id):
                if other is not request and other.status == AssignmentStatus.PENDING:
                    other.status = AssignmentStatus.REJECTED
                    other.decided_at = now
                    logger.info(
                        f"Voided request {other.assignment_id} of {other.officer_id} "
                        f"for {other.project_id}"
                    )

        logger.info(f"Officer {request.officer_id} approved for {project.name}")
        return request

    @returns_result
    def reject_assignment(self, request: OfficerAssignment) -> OfficerAssignment:
        if request.status != AssignmentStatus.PENDING:
            raise InvalidTransition(
                f"{request.assignment_id} is {request.status.value}",
                assignment_id=request.assignment_id,
            )
        request.status = AssignmentStatus.REJECTED
        request.decided_at = self._clock.now()
        logger.info(f"Officer {request.officer_id} rejected for {request.project_id}")
        return request

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def assignment_for(self, officer_id: str) -> Optional[OfficerAssignment]:
        """The officer's approved assignment, if any."""
        return self._tables.approved_assignment_of(officer_id)

    def handled_project(self, officer_id: str) -> Optional[Project]:
        assignment = self.assignment_for(officer_id)
        if assignment is None:
            return None
        return self._tables.projects.get(assignment.project_id)

    def requests_of(self, officer_id: str) -> Tuple[OfficerAssignment, ...]:
        return self._tables.assignments_of(officer_id)

    def requests_for_project(
        self,
        project: Project,
        status: Optional[AssignmentStatus] = None,
    ) -> Tuple[OfficerAssignment, ...]:
        requests = self._tables.assignments_for_project(project.name)
        if status is None:
            return requests
        return tuple(r for r in requests if r.status == status)

    def _ensure_not_assigned(self, officer_id: str) -> None:
        approved = self._tables.approved_assignment_of(officer_id)
        if approved is not None:
            raise OfficerAlreadyAssigned(
                f"Officer {officer_id} already handles {approved.project_id}",
                officer_id=officer_id,
                project_id=approved.project_id,
            )
