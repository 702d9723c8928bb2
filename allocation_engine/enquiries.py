"""
Allocation Engine - Enquiry Workflow.

An enquiry is editable and deletable by its author until it is
replied to. It takes exactly one reply; after that it is read-only.
Who may reply is decided by the access gate, not here.
"""

import logging
from typing import Optional, Tuple

from core.clock import ClockProtocol, get_clock

from .errors import AlreadyReplied, returns_result
from .tables import Tables
from .types import Applicant, Enquiry, Project, Reply


logger = logging.getLogger(__name__)


class EnquiryWorkflow:
    """Create, edit, delete and reply to enquiries."""

    def __init__(self, tables: Tables, clock: Optional[ClockProtocol] = None):
        self._tables = tables
        self._clock = clock or get_clock()

    def create(self, content: str, applicant: Applicant, project: Project) -> Enquiry:
        """
        Raises:
            ValueError: If content is blank
        """
        content = _require_text(content, "Enquiry content")
        enquiry = Enquiry(
            applicant_id=applicant.nric,
            project_id=project.name,
            content=content,
            created_at=self._clock.now(),
        )
        self._tables.enquiries[enquiry.enquiry_id] = enquiry
        logger.info(f"Enquiry {enquiry.enquiry_id} created by {applicant.nric} on {project.name}")
        return enquiry

    @returns_result
    def edit(self, enquiry: Enquiry, new_content: str) -> Enquiry:
        self._ensure_open(enquiry)
        enquiry.content = _require_text(new_content, "Enquiry content")
        logger.info(f"Enquiry {enquiry.enquiry_id} edited")
        return enquiry

    @returns_result
    def delete(self, enquiry: Enquiry) -> Enquiry:
        self._ensure_open(enquiry)
        self._tables.enquiries.pop(enquiry.enquiry_id, None)
        logger.info(f"Enquiry {enquiry.enquiry_id} deleted")
        return enquiry

    @returns_result
    def reply(self, enquiry: Enquiry, text: str, responder_id: str) -> Enquiry:
        self._ensure_open(enquiry)
        enquiry.reply = Reply(
            text=_require_text(text, "Reply"),
            responder_id=responder_id,
            timestamp=self._clock.now(),
        )
        logger.info(f"Enquiry {enquiry.enquiry_id} replied by {responder_id}")
        return enquiry

    # --------------------------------------------------------
    # SNAPSHOTS
    # --------------------------------------------------------

    def list_all(self) -> Tuple[Enquiry, ...]:
        return tuple(self._tables.enquiries.values())

    def list_by_applicant(self, applicant: Applicant) -> Tuple[Enquiry, ...]:
        return tuple(e for e in self._tables.enquiries.values() if e.applicant_id == applicant.nric)

    def list_by_project(self, project: Project) -> Tuple[Enquiry, ...]:
        return tuple(e for e in self._tables.enquiries.values() if e.project_id == project.name)

    @staticmethod
    def _ensure_open(enquiry: Enquiry) -> None:
        if enquiry.is_replied:
            raise AlreadyReplied(
                f"Enquiry {enquiry.enquiry_id} has already been replied to",
                enquiry_id=enquiry.enquiry_id,
            )


def _require_text(value: str, label: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{label} must not be empty")
    return value.strip()
