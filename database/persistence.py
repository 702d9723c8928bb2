"""
SQL Record Store.

============================================================
PURPOSE
============================================================
SQLAlchemy implementation of the engine's RecordStore and the
authentication CredentialStore.

- Saves are upserts (session.merge), one transaction per call
- Every write logs its row count
- Any database failure raises PersistenceError

============================================================
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from allocation_engine.storage import RecordStore
from allocation_engine.types import (
    Applicant,
    Application,
    ApplicationStatus,
    AssignmentStatus,
    Enquiry,
    FlatInventory,
    FlatType,
    Manager,
    MaritalStatus,
    OfficerAssignment,
    Project,
    Reply,
)
from auth.service import Credential, CredentialStore

from .engine import get_db_session, get_session_factory, transaction_scope
from .models import (
    ApplicantRow,
    ApplicationRow,
    CredentialRow,
    EnquiryRow,
    ManagerRow,
    OfficerAssignmentRow,
    OfficerRow,
    ProjectFlatRow,
    ProjectRow,
)


logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored timestamps are UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _status(value: Optional[str]) -> Optional[ApplicationStatus]:
    return ApplicationStatus(value) if value else None


class SqlRecordStore(RecordStore):
    """Record store backed by SQLAlchemy."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._factory = session_factory or get_session_factory()

    # --------------------------------------------------------
    # LOAD
    # --------------------------------------------------------

    def load_applicants(self) -> List[Applicant]:
        with get_db_session(self._factory) as session:
            return [
                Applicant(
                    nric=row.nric,
                    name=row.name,
                    age=row.age,
                    marital_status=MaritalStatus(row.marital_status),
                )
                for row in session.scalars(select(ApplicantRow))
            ]

    def load_managers(self) -> List[Manager]:
        with get_db_session(self._factory) as session:
            return [Manager(nric=row.nric, name=row.name) for row in session.scalars(select(ManagerRow))]

    def load_officer_ids(self) -> List[str]:
        with get_db_session(self._factory) as session:
            return list(session.scalars(select(OfficerRow.nric).order_by(OfficerRow.nric)))

    def load_projects(self) -> List[Project]:
        with get_db_session(self._factory) as session:
            projects = []
            for row in session.scalars(select(ProjectRow)):
                projects.append(Project(
                    name=row.name,
                    neighborhood=row.neighborhood,
                    open_date=row.open_date,
                    close_date=row.close_date,
                    manager_id=row.manager_id,
                    officer_slot_capacity=row.officer_slot_capacity,
                    flat_inventory={
                        FlatType(flat.flat_type): FlatInventory(
                            units_remaining=flat.units_remaining,
                            price=Decimal(str(flat.price)),
                        )
                        for flat in row.flats
                    },
                    visible=row.visible,
                    assigned_officer_ids=list(row.assigned_officer_ids or []),
                ))
            return projects

    def load_applications(self) -> List[Application]:
        with get_db_session(self._factory) as session:
            return [
                Application(
                    applicant_id=row.applicant_id,
                    project_id=row.project_id,
                    flat_type=FlatType(row.flat_type),
                    application_id=row.application_id,
                    status=ApplicationStatus(row.status),
                    withdrawal_requested=row.withdrawal_requested,
                    previous_status=_status(row.previous_status),
                    created_at=_aware(row.created_at),
                    updated_at=_aware(row.updated_at),
                    booked_at=_aware(row.booked_at),
                    booked_by=row.booked_by,
                )
                for row in session.scalars(select(ApplicationRow))
            ]

    def load_officer_assignments(self) -> List[OfficerAssignment]:
        with get_db_session(self._factory) as session:
            return [
                OfficerAssignment(
                    officer_id=row.officer_id,
                    project_id=row.project_id,
                    assignment_id=row.assignment_id,
                    status=AssignmentStatus(row.status),
                    requested_at=_aware(row.requested_at),
                    decided_at=_aware(row.decided_at),
                )
                for row in session.scalars(select(OfficerAssignmentRow))
            ]

    def load_enquiries(self) -> List[Enquiry]:
        with get_db_session(self._factory) as session:
            enquiries = []
            for row in session.scalars(select(EnquiryRow)):
                reply = None
                if row.reply_text is not None:
                    reply = Reply(
                        text=row.reply_text,
                        responder_id=row.reply_responder_id,
                        timestamp=_aware(row.reply_timestamp),
                    )
                enquiries.append(Enquiry(
                    applicant_id=row.applicant_id,
                    project_id=row.project_id,
                    content=row.content,
                    enquiry_id=row.enquiry_id,
                    reply=reply,
                    created_at=_aware(row.created_at),
                ))
            return enquiries

    # --------------------------------------------------------
    # SAVE
    # --------------------------------------------------------

    def save_applicants(self, applicants: Iterable[Applicant]) -> None:
        self._merge("applicants", [
            ApplicantRow(
                nric=a.nric,
                name=a.name,
                age=a.age,
                marital_status=a.marital_status.value,
            )
            for a in applicants
        ])

    def save_managers(self, managers: Iterable[Manager]) -> None:
        self._merge("managers", [ManagerRow(nric=m.nric, name=m.name) for m in managers])

    def save_officer_ids(self, officer_ids: Iterable[str]) -> None:
        self._merge("officers", [OfficerRow(nric=nric) for nric in officer_ids])

    def save_projects(self, projects: Iterable[Project]) -> None:
        self._merge("projects", [
            ProjectRow(
                name=p.name,
                neighborhood=p.neighborhood,
                open_date=p.open_date,
                close_date=p.close_date,
                manager_id=p.manager_id,
                officer_slot_capacity=p.officer_slot_capacity,
                visible=p.visible,
                assigned_officer_ids=list(p.assigned_officer_ids),
                flats=[
                    ProjectFlatRow(
                        project_name=p.name,
                        flat_type=flat_type.value,
                        units_remaining=inventory.units_remaining,
                        price=inventory.price,
                    )
                    for flat_type, inventory in p.flat_inventory.items()
                ],
            )
            for p in projects
        ])

    def save_applications(self, applications: Iterable[Application]) -> None:
        self._merge("applications", [
            ApplicationRow(
                application_id=a.application_id,
                applicant_id=a.applicant_id,
                project_id=a.project_id,
                flat_type=a.flat_type.value,
                status=a.status.value,
                withdrawal_requested=a.withdrawal_requested,
                previous_status=a.previous_status.value if a.previous_status else None,
                created_at=a.created_at,
                updated_at=a.updated_at,
                booked_at=a.booked_at,
                booked_by=a.booked_by,
            )
            for a in applications
        ])

    def save_officer_assignments(self, assignments: Iterable[OfficerAssignment]) -> None:
        self._merge("officer_assignments", [
            OfficerAssignmentRow(
                assignment_id=a.assignment_id,
                officer_id=a.officer_id,
                project_id=a.project_id,
                status=a.status.value,
                requested_at=a.requested_at,
                decided_at=a.decided_at,
            )
            for a in assignments
        ])

    def save_enquiries(self, enquiries: Iterable[Enquiry]) -> None:
        self._merge("enquiries", [
            EnquiryRow(
                enquiry_id=e.enquiry_id,
                applicant_id=e.applicant_id,
                project_id=e.project_id,
                content=e.content,
                created_at=e.created_at,
                reply_text=e.reply.text if e.reply else None,
                reply_responder_id=e.reply.responder_id if e.reply else None,
                reply_timestamp=e.reply.timestamp if e.reply else None,
            )
            for e in enquiries
        ])

    # --------------------------------------------------------
    # DELETE
    # --------------------------------------------------------

    def delete_project(self, name: str) -> None:
        with transaction_scope(self._factory) as session:
            row = session.get(ProjectRow, name)
            if row is not None:
                session.delete(row)
        logger.info(f"[DB] projects: deleted {name}")

    def delete_enquiry(self, enquiry_id: str) -> None:
        with transaction_scope(self._factory) as session:
            row = session.get(EnquiryRow, enquiry_id)
            if row is not None:
                session.delete(row)
        logger.info(f"[DB] enquiries: deleted {enquiry_id}")

    def _merge(self, table: str, rows: list) -> None:
        if not rows:
            return
        with transaction_scope(self._factory) as session:
            for row in rows:
                session.merge(row)
        logger.info(f"[DB] {table}: upserted {len(rows)} rows")


class SqlCredentialStore(CredentialStore):
    """Credential store backed by SQLAlchemy."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._factory = session_factory or get_session_factory()

    def get_credential(self, user_id: str) -> Optional[Credential]:
        with get_db_session(self._factory) as session:
            row = session.get(CredentialRow, user_id)
            if row is None:
                return None
            return Credential(
                user_id=row.user_id,
                salt=row.salt,
                password_hash=row.password_hash,
                iterations=row.iterations,
            )

    def save_credential(self, credential: Credential) -> None:
        with transaction_scope(self._factory) as session:
            session.merge(CredentialRow(
                user_id=credential.user_id,
                salt=credential.salt,
                password_hash=credential.password_hash,
                iterations=credential.iterations,
            ))
        logger.info(f"[DB] credentials: upserted {credential.user_id}")
