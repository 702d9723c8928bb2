"""
Allocation Engine - Access Gate.

============================================================
PURPOSE
============================================================
Decides whether an authenticated identity may invoke an operation.

Two layers:
1. Role table: which Role tags may call each Operation
2. Scope checks: the record must belong to the caller
   - applicants act on their own applications and enquiries
   - managers act on projects they manage
   - officers act on the project they are approved to handle

Dispatch is on Identity.role only. An officer's applicant
profile lets it apply like any applicant, but never for the
project it handles or has a pending request for, and it may not
handle a project it has applied to.

Every refusal raises Unauthorized before the engine is touched.

============================================================
"""

import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .errors import Unauthorized
from .tables import Tables
from .types import Applicant, AssignmentStatus, Identity, Project, Role


logger = logging.getLogger(__name__)


class Operation(Enum):
    """Role-bound operations."""

    VIEW_PROJECTS = "view_projects"
    SUBMIT_APPLICATION = "submit_application"
    VIEW_OWN_APPLICATION = "view_own_application"
    REQUEST_WITHDRAWAL = "request_withdrawal"
    DECIDE_APPLICATION = "decide_application"
    APPROVE_WITHDRAWAL = "approve_withdrawal"
    REJECT_WITHDRAWAL = "reject_withdrawal"
    BOOK_FLAT = "book_flat"
    ISSUE_RECEIPT = "issue_receipt"
    REQUEST_ASSIGNMENT = "request_assignment"
    DECIDE_ASSIGNMENT = "decide_assignment"
    CREATE_ENQUIRY = "create_enquiry"
    EDIT_ENQUIRY = "edit_enquiry"
    DELETE_ENQUIRY = "delete_enquiry"
    VIEW_OWN_ENQUIRIES = "view_own_enquiries"
    VIEW_PROJECT_ENQUIRIES = "view_project_enquiries"
    VIEW_ALL_ENQUIRIES = "view_all_enquiries"
    REPLY_ENQUIRY = "reply_enquiry"
    MANAGE_PROJECT = "manage_project"
    GENERATE_REPORT = "generate_report"


_APPLYING = frozenset({Role.APPLICANT, Role.OFFICER})
_OFFICER = frozenset({Role.OFFICER})
_MANAGER = frozenset({Role.MANAGER})
_STAFF = frozenset({Role.OFFICER, Role.MANAGER})
_EVERYONE = frozenset(Role)

PERMISSIONS: Dict[Operation, FrozenSet[Role]] = {
    Operation.VIEW_PROJECTS: _EVERYONE,
    Operation.SUBMIT_APPLICATION: _APPLYING,
    Operation.VIEW_OWN_APPLICATION: _APPLYING,
    Operation.REQUEST_WITHDRAWAL: _APPLYING,
    Operation.DECIDE_APPLICATION: _MANAGER,
    Operation.APPROVE_WITHDRAWAL: _MANAGER,
    Operation.REJECT_WITHDRAWAL: _MANAGER,
    Operation.BOOK_FLAT: _OFFICER,
    Operation.ISSUE_RECEIPT: _OFFICER,
    Operation.REQUEST_ASSIGNMENT: _OFFICER,
    Operation.DECIDE_ASSIGNMENT: _MANAGER,
    Operation.CREATE_ENQUIRY: _APPLYING,
    Operation.EDIT_ENQUIRY: _APPLYING,
    Operation.DELETE_ENQUIRY: _APPLYING,
    Operation.VIEW_OWN_ENQUIRIES: _APPLYING,
    Operation.VIEW_PROJECT_ENQUIRIES: _STAFF,
    Operation.VIEW_ALL_ENQUIRIES: _MANAGER,
    Operation.REPLY_ENQUIRY: _STAFF,
    Operation.MANAGE_PROJECT: _MANAGER,
    Operation.GENERATE_REPORT: _MANAGER,
}


class AccessGate:
    """Role and scope authorization."""

    def __init__(self, tables: Tables):
        self._tables = tables

    def is_allowed(self, identity: Identity, operation: Operation) -> bool:
        return identity.role in PERMISSIONS.get(operation, frozenset())

    def authorize(self, identity: Identity, operation: Operation) -> None:
        """
        Raises:
            Unauthorized: If the role may not call the operation
        """
        if not self.is_allowed(identity, operation):
            self._deny(identity, f"{identity.role.value} may not {operation.value}")

    # --------------------------------------------------------
    # SCOPE CHECKS
    # --------------------------------------------------------

    def applicant_profile(self, identity: Identity) -> Applicant:
        """The caller's applicant profile; applying roles only."""
        if identity.applicant is None:
            self._deny(identity, f"{identity.role.value} has no applicant profile")
        return identity.applicant

    def require_owner(self, identity: Identity, applicant_id: str) -> None:
        if identity.user_id != applicant_id:
            self._deny(identity, f"record belongs to {applicant_id}")

    def require_project_manager(self, identity: Identity, project: Project) -> None:
        if identity.role != Role.MANAGER or project.manager_id != identity.user_id:
            self._deny(identity, f"not the manager of {project.name}")

    def require_project_officer(self, identity: Identity, project: Project) -> None:
        approved = self._tables.approved_assignment_of(identity.user_id)
        if identity.role != Role.OFFICER or approved is None or approved.project_id != project.name:
            self._deny(identity, f"not an officer of {project.name}")

    def require_project_staff(self, identity: Identity, project: Project) -> None:
        """Manager of the project, or an officer approved to it."""
        if identity.role == Role.MANAGER:
            self.require_project_manager(identity, project)
        else:
            self.require_project_officer(identity, project)

    def require_not_handling(self, identity: Identity, project: Project) -> None:
        """An officer may not apply for the project it handles or has asked to handle."""
        if identity.role != Role.OFFICER:
            return
        for request in self._tables.assignments_of(identity.user_id):
            if request.project_id != project.name:
                continue
            if request.status == AssignmentStatus.APPROVED:
                self._deny(identity, f"officer handles {project.name}")
            if request.status == AssignmentStatus.PENDING:
                self._deny(identity, f"officer has a pending request for {project.name}")

    def require_not_applicant_of(
        self,
        identity: Identity,
        project: Project,
        officer_id: Optional[str] = None,
    ) -> None:
        """
        An officer may not handle a project it has applied to.

        officer_id defaults to the caller; a manager approving a
        request passes the requesting officer's id.
        """
        officer_id = officer_id or identity.user_id
        claim = self._tables.claim_of(officer_id)
        if claim is not None and claim.project_id == project.name:
            self._deny(identity, f"officer {officer_id} has applied to {project.name}")

    @staticmethod
    def _deny(identity: Identity, reason: str) -> None:
        logger.warning(f"Denied {identity.user_id} ({identity.role.value}): {reason}")
        raise Unauthorized(
            f"Unauthorized: {reason}",
            user_id=identity.user_id,
            role=identity.role.value,
        )
