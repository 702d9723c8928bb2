"""
Allocation Engine - Housing Service.

============================================================
PURPOSE
============================================================
Single entry point for a presentation layer.

Every call:
1. Authorizes the identity's role for the operation
2. Resolves ids to records (NotFound if unknown)
3. Checks the record is within the caller's scope
4. Runs the engine operation
5. Saves the changed records (write-through)

Every call returns an OperationResult; nothing is saved when a
call fails. Malformed arguments (blank text, an inverted date
window, a project with no flats) are programming errors and raise
ValueError instead.

============================================================
"""

import logging
from datetime import date
from typing import Dict, Optional, Tuple

from core.clock import ClockProtocol, get_clock

from .access_gate import AccessGate, Operation
from .applications import ApplicationLifecycle
from .config import EngineConfig
from .eligibility import EligibilityRules
from .enquiries import EnquiryWorkflow
from .errors import NotFound, returns_result
from .inventory import ProjectInventory
from .officers import OfficerAssignmentManager
from .projects import ProjectCatalog, ProjectFilter
from .reporting import BookingReport, ReportGenerator
from .storage import RecordStore
from .tables import Tables
from .types import (
    Application,
    ApplicationStatus,
    AssignmentStatus,
    Enquiry,
    FlatInventory,
    FlatType,
    Identity,
    MaritalStatus,
    OfficerAssignment,
    Project,
    Receipt,
)


logger = logging.getLogger(__name__)


class HousingService:
    """Role-checked facade over the allocation engine."""

    def __init__(
        self,
        tables: Tables,
        store: Optional[RecordStore] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self._tables = tables
        self._store = store
        self._config = config or EngineConfig()
        self._clock = clock or get_clock()

        self.eligibility = EligibilityRules(self._config.eligibility)
        self.inventory = ProjectInventory(tables)
        self.lifecycle = ApplicationLifecycle(tables, self.inventory, self.eligibility, self._clock)
        self.officers = OfficerAssignmentManager(tables, self.inventory, self._clock)
        self.enquiries = EnquiryWorkflow(tables, self._clock)
        self.catalog = ProjectCatalog(tables, self.eligibility)
        self.reports = ReportGenerator(tables)
        self.gate = AccessGate(tables)

    @classmethod
    def create(
        cls,
        store: RecordStore,
        config: Optional[EngineConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> "HousingService":
        """Load every record from the store and build a service over it."""
        tables = store.load_tables()
        logger.info(
            f"Loaded {len(tables.projects)} projects, "
            f"{len(tables.applications)} applications, "
            f"{len(tables.enquiries)} enquiries"
        )
        return cls(tables, store=store, config=config, clock=clock)

    @property
    def tables(self) -> Tables:
        return self._tables

    # --------------------------------------------------------
    # PROJECTS
    # --------------------------------------------------------

    @returns_result
    def list_projects(
        self,
        identity: Identity,
        project_filter: Optional[ProjectFilter] = None,
    ) -> Tuple[Project, ...]:
        self.gate.authorize(identity, Operation.VIEW_PROJECTS)
        return self.catalog.visible_to(identity, project_filter)

    @returns_result
    def create_project(
        self,
        identity: Identity,
        name: str,
        neighborhood: str,
        open_date: date,
        close_date: date,
        flat_inventory: Dict[FlatType, FlatInventory],
        officer_slot_capacity: int,
        visible: bool = True,
    ) -> Project:
        """
        Raises:
            ValueError: If the name is blank, close_date is not after
                open_date, no flat type is offered or the slot
                capacity is negative
        """
        self.gate.authorize(identity, Operation.MANAGE_PROJECT)
        project = self.catalog.create_project(
            identity.user_id,
            name,
            neighborhood,
            open_date,
            close_date,
            flat_inventory,
            officer_slot_capacity,
            visible,
        ).unwrap()
        self._persist(projects=(project,))
        return project

    @returns_result
    def edit_project(self, identity: Identity, project_name: str, **changes) -> Project:
        """Keyword changes as accepted by ProjectCatalog.edit_project."""
        self.gate.authorize(identity, Operation.MANAGE_PROJECT)
        project = self._tables.get_project(project_name)
        self.gate.require_project_manager(identity, project)
        self.catalog.edit_project(project, **changes).unwrap()
        self._persist(projects=(project,))
        return project

    @returns_result
    def set_project_visibility(self, identity: Identity, project_name: str, visible: bool) -> Project:
        self.gate.authorize(identity, Operation.MANAGE_PROJECT)
        project = self._tables.get_project(project_name)
        self.gate.require_project_manager(identity, project)
        self.catalog.set_visibility(project, visible).unwrap()
        self._persist(projects=(project,))
        return project

    @returns_result
    def delete_project(self, identity: Identity, project_name: str) -> Project:
        self.gate.authorize(identity, Operation.MANAGE_PROJECT)
        project = self._tables.get_project(project_name)
        self.gate.require_project_manager(identity, project)
        self.catalog.delete_project(project).unwrap()
        if self._write_through:
            self._store.delete_project(project.name)
        return project

    @returns_result
    def my_projects(self, identity: Identity) -> Tuple[Project, ...]:
        """Projects managed by the calling manager."""
        self.gate.authorize(identity, Operation.MANAGE_PROJECT)
        return self.catalog.managed_by(identity.user_id)

    # --------------------------------------------------------
    # APPLICATIONS
    # --------------------------------------------------------

    @returns_result
    def submit_application(
        self,
        identity: Identity,
        project_name: str,
        flat_type: FlatType,
        as_of: Optional[date] = None,
    ) -> Application:
        self.gate.authorize(identity, Operation.SUBMIT_APPLICATION)
        applicant = self.gate.applicant_profile(identity)
        project = self._tables.get_project(project_name)
        self.gate.require_not_handling(identity, project)

        application = self.lifecycle.submit(applicant, project, flat_type, as_of).unwrap()
        self._persist(applications=(application,))
        return application

    @returns_result
    def view_application(self, identity: Identity) -> Optional[Application]:
        """The caller's current application, or None."""
        self.gate.authorize(identity, Operation.VIEW_OWN_APPLICATION)
        return self.lifecycle.current_application(identity.user_id)

    @returns_result
    def request_withdrawal(self, identity: Identity, application_id: str) -> Application:
        self.gate.authorize(identity, Operation.REQUEST_WITHDRAWAL)
        application = self._tables.get_application(application_id)
        self.gate.require_owner(identity, application.applicant_id)

        self.lifecycle.request_withdrawal(application).unwrap()
        self._persist(applications=(application,))
        return application

    @returns_result
    def applications_for_project(
        self,
        identity: Identity,
        project_name: str,
        status: Optional[ApplicationStatus] = None,
    ) -> Tuple[Application, ...]:
        self.gate.authorize(identity, Operation.DECIDE_APPLICATION)
        project = self._tables.get_project(project_name)
        self.gate.require_project_manager(identity, project)
        return self.lifecycle.applications_for_project(project, status)

    @returns_result
    def withdrawal_requests(self, identity: Identity, project_name: str) -> Tuple[Application, ...]:
        self.gate.authorize(identity, Operation.APPROVE_WITHDRAWAL)
        project = self._tables.get_project(project_name)
        self.gate.require_project_manager(identity, project)
        return self.lifecycle.withdrawal_requests(project)

    @returns_result
    def decide_application(
        self,
        identity: Identity,
        application_id: str,
        outcome: ApplicationStatus,
    ) -> Application:
        self.gate.authorize(identity, Operation.DECIDE_APPLICATION)
        application = self._managed_application(identity, application_id)

        self.lifecycle.decide(application, outcome, identity.user_id).unwrap()
        self._persist(applications=(application,))
        return application

    @returns_result
    def approve_withdrawal(self, identity: Identity, application_id: str) -> Application:
        self.gate.authorize(identity, Operation.APPROVE_WITHDRAWAL)
        application = self._managed_application(identity, application_id)
        was_booked = application.status == ApplicationStatus.BOOKED

        self.lifecycle.approve_withdrawal(application, identity.user_id).unwrap()
        if was_booked:
            self._persist(
                applications=(application,),
                projects=(self._tables.get_project(application.project_id),),
            )
        else:
            self._persist(applications=(application,))
        return application

    @returns_result
    def reject_withdrawal(self, identity: Identity, application_id: str) -> Application:
        self.gate.authorize(identity, Operation.REJECT_WITHDRAWAL)
        application = self._managed_application(identity, application_id)

        self.lifecycle.reject_withdrawal(application, identity.user_id).unwrap()
        self._persist(applications=(application,))
        return application

    # --------------------------------------------------------
    # BOOKING
    # --------------------------------------------------------

    @returns_result
    def book_flat(self, identity: Identity, application_id: str) -> Receipt:
        """Book the flat and return the receipt."""
        self.gate.authorize(identity, Operation.BOOK_FLAT)
        application = self._tables.get_application(application_id)
        project = self._tables.get_project(application.project_id)
        self.gate.require_project_officer(identity, project)

        self.lifecycle.book(application, identity.user_id).unwrap()
        self._persist(applications=(application,), projects=(project,))
        return self.reports.receipt_for(application)

    @returns_result
    def generate_receipt(self, identity: Identity, application_id: str) -> Receipt:
        self.gate.authorize(identity, Operation.ISSUE_RECEIPT)
        application = self._tables.get_application(application_id)
        self.gate.require_project_officer(identity, self._tables.get_project(application.project_id))
        return self.reports.receipt_for(application)

    @returns_result
    def booking_report(
        self,
        identity: Identity,
        project_name: Optional[str] = None,
        marital_status: Optional[MaritalStatus] = None,
        flat_type: Optional[FlatType] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
    ) -> BookingReport:
        self.gate.authorize(identity, Operation.GENERATE_REPORT)
        if project_name is not None:
            self.gate.require_project_manager(identity, self._tables.get_project(project_name))
        return self.reports.booking_report(project_name, marital_status, flat_type, min_age, max_age)

    # --------------------------------------------------------
    # OFFICER ASSIGNMENT
    # --------------------------------------------------------

    @returns_result
    def request_assignment(self, identity: Identity, project_name: str) -> OfficerAssignment:
        self.gate.authorize(identity, Operation.REQUEST_ASSIGNMENT)
        project = self._tables.get_project(project_name)
        self.gate.require_not_applicant_of(identity, project)

        request = self.officers.request_assignment(identity.user_id, project).unwrap()
        self._persist(assignments=(request,))
        return request

    @returns_result
    def my_assignment_requests(self, identity: Identity) -> Tuple[OfficerAssignment, ...]:
        self.gate.authorize(identity, Operation.REQUEST_ASSIGNMENT)
        return self.officers.requests_of(identity.user_id)

    @returns_result
    def assignment_requests(
        self,
        identity: Identity,
        project_name: str,
        status: Optional[AssignmentStatus] = None,
    ) -> Tuple[OfficerAssignment, ...]:
        self.gate.authorize(identity, Operation.DECIDE_ASSIGNMENT)
        project = self._tables.get_project(project_name)
        self.gate.require_project_manager(identity, project)
        return self.officers.requests_for_project(project, status)

    @returns_result
    def approve_assignment(self, identity: Identity, assignment_id: str) -> OfficerAssignment:
        self.gate.authorize(identity, Operation.DECIDE_ASSIGNMENT)
        request = self._tables.get_assignment(assignment_id)
        project = self._tables.get_project(request.project_id)
        self.gate.require_project_manager(identity, project)
        self.gate.require_not_applicant_of(identity, project, officer_id=request.officer_id)

        self.officers.approve_assignment(request).unwrap()
        self._persist(
            assignments=self._tables.assignments_of(request.officer_id),
            projects=(project,),
        )
        return request

    @returns_result
    def reject_assignment(self, identity: Identity, assignment_id: str) -> OfficerAssignment:
        self.gate.authorize(identity, Operation.DECIDE_ASSIGNMENT)
        request = self._tables.get_assignment(assignment_id)
        self.gate.require_project_manager(identity, self._tables.get_project(request.project_id))

        self.officers.reject_assignment(request).unwrap()
        self._persist(assignments=(request,))
        return request

    # --------------------------------------------------------
    # ENQUIRIES
    # --------------------------------------------------------

    @returns_result
    def create_enquiry(self, identity: Identity, project_name: str, content: str) -> Enquiry:
        """
        Raises:
            ValueError: If content is blank
        """
        self.gate.authorize(identity, Operation.CREATE_ENQUIRY)
        applicant = self.gate.applicant_profile(identity)
        project = self._tables.get_project(project_name)
        if project not in self.catalog.visible_to(identity):
            raise NotFound(f"Unknown project {project_name}", project_id=project_name)

        enquiry = self.enquiries.create(content, applicant, project)
        self._persist(enquiries=(enquiry,))
        return enquiry

    @returns_result
    def edit_enquiry(self, identity: Identity, enquiry_id: str, content: str) -> Enquiry:
        """
        Raises:
            ValueError: If content is blank
        """
        self.gate.authorize(identity, Operation.EDIT_ENQUIRY)
        enquiry = self._tables.get_enquiry(enquiry_id)
        self.gate.require_owner(identity, enquiry.applicant_id)

        self.enquiries.edit(enquiry, content).unwrap()
        self._persist(enquiries=(enquiry,))
        return enquiry

    @returns_result
    def delete_enquiry(self, identity: Identity, enquiry_id: str) -> Enquiry:
        self.gate.authorize(identity, Operation.DELETE_ENQUIRY)
        enquiry = self._tables.get_enquiry(enquiry_id)
        self.gate.require_owner(identity, enquiry.applicant_id)

        self.enquiries.delete(enquiry).unwrap()
        if self._write_through:
            self._store.delete_enquiry(enquiry.enquiry_id)
        return enquiry

    @returns_result
    def my_enquiries(self, identity: Identity) -> Tuple[Enquiry, ...]:
        self.gate.authorize(identity, Operation.VIEW_OWN_ENQUIRIES)
        return self.enquiries.list_by_applicant(self.gate.applicant_profile(identity))

    @returns_result
    def project_enquiries(self, identity: Identity, project_name: str) -> Tuple[Enquiry, ...]:
        self.gate.authorize(identity, Operation.VIEW_PROJECT_ENQUIRIES)
        project = self._tables.get_project(project_name)
        self.gate.require_project_staff(identity, project)
        return self.enquiries.list_by_project(project)

    @returns_result
    def all_enquiries(self, identity: Identity) -> Tuple[Enquiry, ...]:
        self.gate.authorize(identity, Operation.VIEW_ALL_ENQUIRIES)
        return self.enquiries.list_all()

    @returns_result
    def reply_enquiry(self, identity: Identity, enquiry_id: str, text: str) -> Enquiry:
        """
        Raises:
            ValueError: If text is blank
        """
        self.gate.authorize(identity, Operation.REPLY_ENQUIRY)
        enquiry = self._tables.get_enquiry(enquiry_id)
        self.gate.require_project_staff(identity, self._tables.get_project(enquiry.project_id))

        self.enquiries.reply(enquiry, text, identity.user_id).unwrap()
        self._persist(enquiries=(enquiry,))
        return enquiry

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    @property
    def _write_through(self) -> bool:
        return self._store is not None and self._config.persistence.write_through

    def _managed_application(self, identity: Identity, application_id: str) -> Application:
        application = self._tables.get_application(application_id)
        self.gate.require_project_manager(identity, self._tables.get_project(application.project_id))
        return application

    def _persist(
        self,
        applications: Tuple[Application, ...] = (),
        projects: Tuple[Project, ...] = (),
        assignments: Tuple[OfficerAssignment, ...] = (),
        enquiries: Tuple[Enquiry, ...] = (),
    ) -> None:
        if not self._write_through:
            return
        if projects:
            self._store.save_projects(projects)
        if applications:
            self._store.save_applications(applications)
        if assignments:
            self._store.save_officer_assignments(assignments)
        if enquiries:
            self._store.save_enquiries(enquiries)
        logger.debug(
            f"Saved {len(projects)} projects, {len(applications)} applications, "
            f"{len(assignments)} officer requests, {len(enquiries)} enquiries"
        )
