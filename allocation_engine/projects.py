"""
Allocation Engine - Project Catalogue.

============================================================
PURPOSE
============================================================
Manager-side project management and role-aware project listing.

RULES:
- Project names are unique
- A manager handles at most one project per application window:
  two projects of the same manager may not have overlapping
  [open_date, close_date) windows
- Slot capacity may not drop below the officers already assigned
- A project referenced by a live application, or by a pending or
  approved officer request, cannot be deleted

LISTING:
- Managers see every project
- Applicants see visible projects offering a flat type they are
  eligible for, plus the project of their own application
- Officers see what their applicant profile sees, plus the
  project they handle

Listings are sorted by project name.

============================================================
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Tuple

from .eligibility import EligibilityRules
from .errors import (
    DuplicateProject,
    InvalidTransition,
    ProjectInUse,
    ProjectWindowOverlap,
    returns_result,
)
from .tables import Tables
from .types import (
    AssignmentStatus,
    FlatInventory,
    FlatType,
    Identity,
    Project,
    Role,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectFilter:
    """Optional listing filters; None means no restriction."""

    neighborhood: Optional[str] = None
    flat_type: Optional[FlatType] = None

    def matches(self, project: Project) -> bool:
        if self.neighborhood and project.neighborhood.lower() != self.neighborhood.lower():
            return False
        if self.flat_type and self.flat_type not in project.flat_inventory:
            return False
        return True


class ProjectCatalog:
    """Create, edit, hide and list projects."""

    def __init__(self, tables: Tables, eligibility: EligibilityRules):
        self._tables = tables
        self._eligibility = eligibility

    # --------------------------------------------------------
    # MANAGEMENT
    # --------------------------------------------------------

    @returns_result
    def create_project(
        self,
        manager_id: str,
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
            ValueError: For malformed input (blank name, bad window, no flats)
        """
        name = name.strip() if name else ""
        if not name:
            raise ValueError("Project name must not be empty")
        if close_date <= open_date:
            raise ValueError("close_date must be after open_date")
        if not flat_inventory:
            raise ValueError("A project must offer at least one flat type")
        if officer_slot_capacity < 0:
            raise ValueError("officer_slot_capacity must be >= 0")

        if name in self._tables.projects:
            raise DuplicateProject(f"Project {name} already exists", project_id=name)
        self._ensure_no_overlap(manager_id, open_date, close_date)

        project = Project(
            name=name,
            neighborhood=neighborhood,
            open_date=open_date,
            close_date=close_date,
            manager_id=manager_id,
            officer_slot_capacity=officer_slot_capacity,
            flat_inventory=dict(flat_inventory),
            visible=visible,
        )
        self._tables.projects[name] = project
        logger.info(f"Project {name} created by {manager_id} ({open_date} to {close_date})")
        return project

    @returns_result
    def edit_project(
        self,
        project: Project,
        neighborhood: Optional[str] = None,
        open_date: Optional[date] = None,
        close_date: Optional[date] = None,
        officer_slot_capacity: Optional[int] = None,
        prices: Optional[Dict[FlatType, object]] = None,
    ) -> Project:
        """Change descriptive fields; unit counts only change through booking."""
        new_open = open_date or project.open_date
        new_close = close_date or project.close_date
        if new_close <= new_open:
            raise ValueError("close_date must be after open_date")

        if (new_open, new_close) != (project.open_date, project.close_date):
            self._ensure_no_overlap(project.manager_id, new_open, new_close, exclude=project.name)

        if officer_slot_capacity is not None and officer_slot_capacity < len(project.assigned_officer_ids):
            raise InvalidTransition(
                f"{project.name} already has {len(project.assigned_officer_ids)} officers",
                project_id=project.name,
            )

        for flat_type in (prices or {}):
            if flat_type not in project.flat_inventory:
                raise InvalidTransition(
                    f"{project.name} does not offer {flat_type.value}",
                    project_id=project.name,
                )

        if neighborhood:
            project.neighborhood = neighborhood
        project.open_date = new_open
        project.close_date = new_close
        if officer_slot_capacity is not None:
            project.officer_slot_capacity = officer_slot_capacity
        for flat_type, price in (prices or {}).items():
            project.flat_inventory[flat_type] = FlatInventory(
                units_remaining=project.flat_inventory[flat_type].units_remaining,
                price=price,
            )

        logger.info(f"Project {project.name} edited")
        return project

    @returns_result
    def set_visibility(self, project: Project, visible: bool) -> Project:
        project.visible = visible
        logger.info(f"Project {project.name} visibility set to {'on' if visible else 'off'}")
        return project

    @returns_result
    def delete_project(self, project: Project) -> Project:
        live = [a for a in self._tables.applications_for_project(project.name) if a.status.holds_claim()]
        officers = [
            r for r in self._tables.assignments_for_project(project.name)
            if r.status in (AssignmentStatus.PENDING, AssignmentStatus.APPROVED)
        ]
        if live or officers:
            raise ProjectInUse(
                f"{project.name} has {len(live)} live applications "
                f"and {len(officers)} pending or approved officer requests",
                project_id=project.name,
            )
        del self._tables.projects[project.name]
        logger.info(f"Project {project.name} deleted")
        return project

    # --------------------------------------------------------
    # LISTING
    # --------------------------------------------------------

    def list_projects(self, project_filter: Optional[ProjectFilter] = None) -> Tuple[Project, ...]:
        """Every project, filtered."""
        project_filter = project_filter or ProjectFilter()
        return tuple(
            p for p in sorted(self._tables.projects.values(), key=lambda p: p.name)
            if project_filter.matches(p)
        )

    def visible_to(
        self,
        identity: Identity,
        project_filter: Optional[ProjectFilter] = None,
    ) -> Tuple[Project, ...]:
        """Projects the identity is allowed to see, filtered."""
        projects = self.list_projects(project_filter)
        if identity.role == Role.MANAGER:
            return projects
        return tuple(p for p in projects if self._can_see(identity, p))

    def managed_by(self, manager_id: str) -> Tuple[Project, ...]:
        return tuple(sorted(self._tables.projects_managed_by(manager_id), key=lambda p: p.name))

    def _can_see(self, identity: Identity, project: Project) -> bool:
        if identity.role == Role.OFFICER:
            approved = self._tables.approved_assignment_of(identity.user_id)
            if approved is not None and approved.project_id == project.name:
                return True

        if identity.applicant is None:
            return False

        claim = self._tables.claim_of(identity.applicant.nric)
        if claim is not None and claim.project_id == project.name:
            return True

        if not project.visible:
            return False
        return bool(self._eligibility.eligible_flat_types(identity.applicant, project.offered_flat_types()))

    def _ensure_no_overlap(
        self,
        manager_id: str,
        open_date: date,
        close_date: date,
        exclude: Optional[str] = None,
    ) -> None:
        for other in self._tables.projects_managed_by(manager_id):
            if other.name != exclude and other.window_overlaps(open_date, close_date):
                raise ProjectWindowOverlap(
                    f"{manager_id} already manages {other.name} "
                    f"({other.open_date} to {other.close_date})",
                    manager_id=manager_id,
                    project_id=other.name,
                )
