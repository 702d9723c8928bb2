"""
Allocation Engine - Application Lifecycle.

============================================================
PURPOSE
============================================================
Owns every applicant's application and drives it through the
status state machine.

WORKFLOW:
1. submit              applicant         -> PENDING
2. decide              manager           -> SUCCESSFUL | UNSUCCESSFUL
3. book                officer           -> BOOKED (takes one unit)
4. request_withdrawal  applicant         flag only
5. approve_withdrawal  manager           -> WITHDRAWN (BOOKED returns its unit)
   reject_withdrawal   manager           flag cleared

INVARIANTS:
- An applicant holds at most one claim (PENDING, SUCCESSFUL, BOOKED)
- Submission reserves nothing; units are taken at booking
- Every operation validates completely before mutating

KNOWN RACE:
A SUCCESSFUL decision does not hold a unit. If the units run out
before booking, book() fails with InsufficientInventory and the
application stays SUCCESSFUL.

============================================================
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from core.clock import ClockProtocol, get_clock

from .eligibility import EligibilityRules
from .errors import (
    AlreadyHasActiveApplication,
    Ineligible,
    InvalidTransition,
    NoUnitsAvailable,
    ProjectClosed,
    returns_result,
)
from .inventory import ProjectInventory
from .state_machine import ApplicationStateMachine, StateTransitionEvent
from .tables import Tables
from .types import Applicant, Application, ApplicationStatus, FlatType, Project


logger = logging.getLogger(__name__)


DECISION_OUTCOMES = (ApplicationStatus.SUCCESSFUL, ApplicationStatus.UNSUCCESSFUL)


class ApplicationLifecycle:
    """State machine owner for all applications."""

    def __init__(
        self,
        tables: Tables,
        inventory: ProjectInventory,
        eligibility: EligibilityRules,
        clock: Optional[ClockProtocol] = None,
    ):
        self._tables = tables
        self._inventory = inventory
        self._eligibility = eligibility
        self._clock = clock or get_clock()
        self._machines: Dict[str, ApplicationStateMachine] = {}
        self._history: List[StateTransitionEvent] = []

    # --------------------------------------------------------
    # STATE MACHINES
    # --------------------------------------------------------

    def machine_for(self, application: Application) -> ApplicationStateMachine:
        machine = self._machines.get(application.application_id)
        if machine is None or machine.application is not application:
            machine = ApplicationStateMachine(application, self._clock)
            machine.add_listener(self._history.append)
            self._machines[application.application_id] = machine
        return machine

    @property
    def history(self) -> List[StateTransitionEvent]:
        """All transitions made in this session, oldest first."""
        return list(self._history)

    # --------------------------------------------------------
    # SUBMISSION
    # --------------------------------------------------------

    @returns_result
    def submit(
        self,
        applicant: Applicant,
        project: Project,
        flat_type: FlatType,
        as_of: Optional[date] = None,
    ) -> Application:
        """
        Create a PENDING application.

        Checks, in order: existing claim, project window,
        eligibility, units on offer.
        """
        as_of = as_of or self._clock.today()

        with self._tables.applicant_lock(applicant.nric):
            existing = self._tables.claim_of(applicant.nric)
            if existing is not None:
                raise AlreadyHasActiveApplication(
                    applicant_id=applicant.nric,
                    application_id=existing.application_id,
                    status=existing.status.value,
                )

            if not self._inventory.is_open_for_application(project, as_of):
                raise ProjectClosed(
                    f"{project.name} is not open for applications on {as_of.isoformat()}",
                    project_id=project.name,
                )

            if not self._eligibility.is_eligible(applicant, flat_type):
                raise Ineligible(
                    f"{applicant.nric} ({applicant.marital_status.value}, {applicant.age}) "
                    f"is not eligible for {flat_type.value}",
                    applicant_id=applicant.nric,
                    flat_type=flat_type.value,
                )

            if self._inventory.units_remaining(project, flat_type) == 0:
                raise NoUnitsAvailable(
                    f"No {flat_type.value} units in {project.name}",
                    project_id=project.name,
                    flat_type=flat_type.value,
                )

            now = self._clock.now()
            application = Application(
                applicant_id=applicant.nric,
                project_id=project.name,
                flat_type=flat_type,
                created_at=now,
                updated_at=now,
            )
            self._tables.applications[application.application_id] = application

        logger.info(
            f"Application {application.application_id} submitted: "
            f"{applicant.nric} -> {project.name} ({flat_type.value})"
        )
        return application

    # --------------------------------------------------------
    # MANAGER DECISION
    # --------------------------------------------------------

    @returns_result
    def decide(
        self,
        application: Application,
        outcome: ApplicationStatus,
        manager_id: Optional[str] = None,
    ) -> Application:
        """Approve or reject a PENDING application."""
        if outcome not in DECISION_OUTCOMES:
            raise InvalidTransition(
                f"{outcome.value} is not a decision outcome",
                application_id=application.application_id,
            )
        if application.status != ApplicationStatus.PENDING:
            raise InvalidTransition(
                f"Only pending applications can be decided; "
                f"{application.application_id} is {application.status.value}",
                application_id=application.application_id,
            )

        machine = self.machine_for(application)
        if outcome == ApplicationStatus.SUCCESSFUL:
            machine.mark_successful(manager_id)
        else:
            machine.mark_unsuccessful(manager_id)
        return application

    # --------------------------------------------------------
    # BOOKING
    # --------------------------------------------------------

    @returns_result
    def book(self, application: Application, officer_id: str) -> Application:
        """
        Book the flat of a SUCCESSFUL application.

        Fails with InsufficientInventory, leaving the status
        unchanged, if the units ran out after the decision.
        """
        if application.status != ApplicationStatus.SUCCESSFUL:
            raise InvalidTransition(
                f"Only successful applications can be booked; "
                f"{application.application_id} is {application.status.value}",
                application_id=application.application_id,
            )

        project = self._tables.get_project(application.project_id)
        machine = self.machine_for(application)

        with self._tables.project_lock(project.name):
            machine.check_transition(ApplicationStatus.BOOKED)
            self._inventory.reserve_unit(project, application.flat_type).unwrap()
            machine.mark_booked(officer_id)

        return application

    # --------------------------------------------------------
    # WITHDRAWAL
    # --------------------------------------------------------

    @returns_result
    def request_withdrawal(self, application: Application) -> Application:
        """Flag the application for withdrawal. Idempotent."""
        if not application.status.allows_withdrawal():
            raise InvalidTransition(
                f"{application.application_id} is {application.status.value} "
                f"and cannot be withdrawn",
                application_id=application.application_id,
            )
        if not application.withdrawal_requested:
            application.withdrawal_requested = True
            application.updated_at = self._clock.now()
            logger.info(f"Withdrawal requested for {application.application_id}")
        return application

    @returns_result
    def approve_withdrawal(
        self,
        application: Application,
        manager_id: Optional[str] = None,
    ) -> Application:
        """
        Withdraw the application.

        A BOOKED application returns its unit to the project.
        """
        if not application.withdrawal_requested:
            raise InvalidTransition(
                f"No withdrawal requested for {application.application_id}",
                application_id=application.application_id,
            )

        machine = self.machine_for(application)
        machine.check_transition(ApplicationStatus.WITHDRAWN)

        if application.status == ApplicationStatus.BOOKED:
            project = self._tables.get_project(application.project_id)
            with self._tables.project_lock(project.name):
                self._inventory.release_unit(project, application.flat_type).unwrap()
                machine.mark_withdrawn(manager_id)
        else:
            machine.mark_withdrawn(manager_id)

        application.withdrawal_requested = False
        return application

    @returns_result
    def reject_withdrawal(
        self,
        application: Application,
        manager_id: Optional[str] = None,
    ) -> Application:
        """Clear the withdrawal request; status is unchanged."""
        if not application.withdrawal_requested:
            raise InvalidTransition(
                f"No withdrawal requested for {application.application_id}",
                application_id=application.application_id,
            )
        application.withdrawal_requested = False
        application.updated_at = self._clock.now()
        logger.info(
            f"Withdrawal of {application.application_id} rejected by {manager_id or 'manager'}"
        )
        return application

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def current_application(self, applicant_id: str) -> Optional[Application]:
        """The claim if one exists, otherwise the most recent application."""
        claim = self._tables.claim_of(applicant_id)
        if claim is not None:
            return claim
        history = self._tables.applications_of(applicant_id)
        return history[-1] if history else None

    def applications_of(self, applicant_id: str) -> Tuple[Application, ...]:
        return self._tables.applications_of(applicant_id)

    def applications_for_project(
        self,
        project: Project,
        status: Optional[ApplicationStatus] = None,
    ) -> Tuple[Application, ...]:
        applications = self._tables.applications_for_project(project.name)
        if status is None:
            return applications
        return tuple(a for a in applications if a.status == status)

    def withdrawal_requests(self, project: Project) -> Tuple[Application, ...]:
        return tuple(
            a for a in self._tables.applications_for_project(project.name)
            if a.withdrawal_requested
        )
