"""
Allocation Engine - Record Store Interface.

============================================================
PURPOSE
============================================================
Boundary between the engine and wherever records live.

- load_* is called once to fill the in-memory tables
- save_* is called with the records a successful operation
  changed (write-through; there is no transaction log)
- delete_* removes records the engine dropped

Implementations:
- InMemoryRecordStore (this module): tests and dry runs
- SqlRecordStore (database.persistence): SQLAlchemy

============================================================
"""

import copy
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Set

from .tables import Tables
from .types import (
    Applicant,
    Application,
    Enquiry,
    Manager,
    OfficerAssignment,
    Project,
)


class RecordStore(ABC):
    """Persistence collaborator."""

    # --------------------------------------------------------
    # LOAD
    # --------------------------------------------------------

    @abstractmethod
    def load_applicants(self) -> List[Applicant]:
        pass

    @abstractmethod
    def load_managers(self) -> List[Manager]:
        pass

    @abstractmethod
    def load_officer_ids(self) -> List[str]:
        pass

    @abstractmethod
    def load_projects(self) -> List[Project]:
        pass

    @abstractmethod
    def load_applications(self) -> List[Application]:
        pass

    @abstractmethod
    def load_officer_assignments(self) -> List[OfficerAssignment]:
        pass

    @abstractmethod
    def load_enquiries(self) -> List[Enquiry]:
        pass

    # --------------------------------------------------------
    # SAVE
    # --------------------------------------------------------

    @abstractmethod
    def save_applicants(self, applicants: Iterable[Applicant]) -> None:
        pass

    @abstractmethod
    def save_managers(self, managers: Iterable[Manager]) -> None:
        pass

    @abstractmethod
    def save_officer_ids(self, officer_ids: Iterable[str]) -> None:
        pass

    @abstractmethod
    def save_projects(self, projects: Iterable[Project]) -> None:
        pass

    @abstractmethod
    def save_applications(self, applications: Iterable[Application]) -> None:
        pass

    @abstractmethod
    def save_officer_assignments(self, assignments: Iterable[OfficerAssignment]) -> None:
        pass

    @abstractmethod
    def save_enquiries(self, enquiries: Iterable[Enquiry]) -> None:
        pass

    # --------------------------------------------------------
    # DELETE
    # --------------------------------------------------------

    @abstractmethod
    def delete_project(self, name: str) -> None:
        pass

    @abstractmethod
    def delete_enquiry(self, enquiry_id: str) -> None:
        pass

    # --------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------

    def load_tables(self) -> Tables:
        """Build session tables from every stored record."""
        tables = Tables()
        tables.load(
            applicants=self.load_applicants(),
            managers=self.load_managers(),
            officer_ids=self.load_officer_ids(),
            projects=self.load_projects(),
            applications=self.load_applications(),
            assignments=self.load_officer_assignments(),
            enquiries=self.load_enquiries(),
        )
        return tables

    def save_tables(self, tables: Tables) -> None:
        """Save every record in the tables."""
        self.save_applicants(tables.applicants.values())
        self.save_managers(tables.managers.values())
        self.save_officer_ids(tables.officer_ids)
        self.save_projects(tables.projects.values())
        self.save_applications(tables.applications.values())
        self.save_officer_assignments(tables.assignments.values())
        self.save_enquiries(tables.enquiries.values())


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store.

    Records are deep-copied in and out, so the engine never
    shares an object with the store.
    """

    def __init__(self) -> None:
        self.applicants: Dict[str, Applicant] = {}
        self.managers: Dict[str, Manager] = {}
        self.officer_ids: Set[str] = set()
        self.projects: Dict[str, Project] = {}
        self.applications: Dict[str, Application] = {}
        self.assignments: Dict[str, OfficerAssignment] = {}
        self.enquiries: Dict[str, Enquiry] = {}

    def load_applicants(self) -> List[Applicant]:
        return copy.deepcopy(list(self.applicants.values()))

    def load_managers(self) -> List[Manager]:
        return copy.deepcopy(list(self.managers.values()))

    def load_officer_ids(self) -> List[str]:
        return sorted(self.officer_ids)

    def load_projects(self) -> List[Project]:
        return copy.deepcopy(list(self.projects.values()))

    def load_applications(self) -> List[Application]:
        return copy.deepcopy(list(self.applications.values()))

    def load_officer_assignments(self) -> List[OfficerAssignment]:
        return copy.deepcopy(list(self.assignments.values()))

    def load_enquiries(self) -> List[Enquiry]:
        return copy.deepcopy(list(self.enquiries.values()))

    def save_applicants(self, applicants: Iterable[Applicant]) -> None:
        self.applicants.update((a.nric, copy.deepcopy(a)) for a in applicants)

    def save_managers(self, managers: Iterable[Manager]) -> None:
        self.managers.update((m.nric, copy.deepcopy(m)) for m in managers)

    def save_officer_ids(self, officer_ids: Iterable[str]) -> None:
        self.officer_ids.update(officer_ids)

    def save_projects(self, projects: Iterable[Project]) -> None:
        self.projects.update((p.name, copy.deepcopy(p)) for p in projects)

    def save_applications(self, applications: Iterable[Application]) -> None:
        self.applications.update((a.application_id, copy.deepcopy(a)) for a in applications)

    def save_officer_assignments(self, assignments: Iterable[OfficerAssignment]) -> None:
        self.assignments.update((a.assignment_id, copy.deepcopy(a)) for a in assignments)

    def save_enquiries(self, enquiries: Iterable[Enquiry]) -> None:
        self.enquiries.update((e.enquiry_id, copy.deepcopy(e)) for e in enquiries)

    def delete_project(self, name: str) -> None:
        self.projects.pop(name, None)

    def delete_enquiry(self, enquiry_id: str) -> None:
        self.enquiries.pop(enquiry_id, None)
