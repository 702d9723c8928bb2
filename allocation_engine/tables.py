"""
Allocation Engine - In-Memory Tables.

============================================================
PURPOSE
============================================================
Owned, in-memory tables of every record, indexed by id.

- Loaded once from the record store at session start
- Looked up by the engine components
- Dict insertion order is the listing order

Lookups raise NotFound for unknown ids. Listing helpers return
tuples so callers cannot mutate a table through them.

Per-project and per-applicant locks let a host drive the engine
from more than one thread; a single-session host never contends.

============================================================
"""

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Iterable, Optional, Set, Tuple

from .errors import NotFound
from .types import (
    Applicant,
    Application,
    AssignmentStatus,
    Enquiry,
    Manager,
    OfficerAssignment,
    Project,
)


class Tables:
    """Session-wide record tables."""

    def __init__(self) -> None:
        self.applicants: Dict[str, Applicant] = {}
        self.managers: Dict[str, Manager] = {}
        self.officer_ids: Set[str] = set()
        self.projects: Dict[str, Project] = {}
        self.applications: Dict[str, Application] = {}
        self.assignments: Dict[str, OfficerAssignment] = {}
        self.enquiries: Dict[str, Enquiry] = {}

        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # --------------------------------------------------------
    # LOADING
    # --------------------------------------------------------

    def load(
        self,
        applicants: Iterable[Applicant] = (),
        managers: Iterable[Manager] = (),
        officer_ids: Iterable[str] = (),
        projects: Iterable[Project] = (),
        applications: Iterable[Application] = (),
        assignments: Iterable[OfficerAssignment] = (),
        enquiries: Iterable[Enquiry] = (),
    ) -> None:
        """Populate tables; later records with the same id replace earlier ones."""
        self.applicants.update((a.nric, a) for a in applicants)
        self.managers.update((m.nric, m) for m in managers)
        self.officer_ids.update(officer_ids)
        self.projects.update((p.name, p) for p in projects)
        self.applications.update((a.application_id, a) for a in applications)
        self.assignments.update((a.assignment_id, a) for a in assignments)
        self.enquiries.update((e.enquiry_id, e) for e in enquiries)

    # --------------------------------------------------------
    # LOOKUPS
    # --------------------------------------------------------

    def get_applicant(self, nric: str) -> Applicant:
        try:
            return self.applicants[nric]
        except KeyError:
            raise NotFound(f"Unknown applicant {nric}", applicant_id=nric)

    def get_manager(self, nric: str) -> Manager:
        try:
            return self.managers[nric]
        except KeyError:
            raise NotFound(f"Unknown manager {nric}", manager_id=nric)

    def get_project(self, name: str) -> Project:
        try:
            return self.projects[name]
        except KeyError:
            raise NotFound(f"Unknown project {name}", project_id=name)

    def get_application(self, application_id: str) -> Application:
        try:
            return self.applications[application_id]
        except KeyError:
            raise NotFound(f"Unknown application {application_id}", application_id=application_id)

    def get_assignment(self, assignment_id: str) -> OfficerAssignment:
        try:
            return self.assignments[assignment_id]
        except KeyError:
            raise NotFound(f"Unknown officer request {assignment_id}", assignment_id=assignment_id)

    def get_enquiry(self, enquiry_id: str) -> Enquiry:
        try:
            return self.enquiries[enquiry_id]
        except KeyError:
            raise NotFound(f"Unknown enquiry {enquiry_id}", enquiry_id=enquiry_id)

    def is_officer(self, nric: str) -> bool:
        return nric in self.officer_ids

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def applications_of(self, applicant_id: str) -> Tuple[Application, ...]:
        return tuple(a for a in self.applications.values() if a.applicant_id == applicant_id)

    def applications_for_project(self, project_id: str) -> Tuple[Application, ...]:
        return tuple(a for a in self.applications.values() if a.project_id == project_id)

    def claim_of(self, applicant_id: str) -> Optional[Application]:
        """The applicant's application that still holds a claim, if any."""
        for application in self.applications.values():
            if application.applicant_id == applicant_id and application.status.holds_claim():
                return application
        return None

    def assignments_of(self, officer_id: str) -> Tuple[OfficerAssignment, ...]:
        return tuple(a for a in self.assignments.values() if a.officer_id == officer_id)

    def assignments_for_project(self, project_id: str) -> Tuple[OfficerAssignment, ...]:
        return tuple(a for a in self.assignments.values() if a.project_id == project_id)

    def approved_assignment_of(self, officer_id: str) -> Optional[OfficerAssignment]:
        for assignment in self.assignments.values():
            if assignment.officer_id == officer_id and assignment.status == AssignmentStatus.APPROVED:
                return assignment
        return None

    def projects_managed_by(self, manager_id: str) -> Tuple[Project, ...]:
        return tuple(p for p in self.projects.values() if p.manager_id == manager_id)

    # --------------------------------------------------------
    # LOCKING
    # --------------------------------------------------------

    @contextmanager
    def project_lock(self, project_id: str) -> Generator[None, None, None]:
        """Serialize inventory and officer-slot changes on one project."""
        with self._lock_for(f"project:{project_id}"):
            yield

    @contextmanager
    def applicant_lock(self, applicant_id: str) -> Generator[None, None, None]:
        """Serialize application-state changes for one applicant."""
        with self._lock_for(f"applicant:{applicant_id}"):
            yield

    def _lock_for(self, key: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock
