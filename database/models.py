"""
Housing Database Models.

Tables:
- applicants: people who may apply (officers included)
- managers: project managers
- officers: applicant ids that carry the officer capability
- projects / project_flats: projects and their per-flat-type inventory
- applications: applications and their status
- officer_assignments: officer requests to handle a project
- enquiries: applicant questions and their single reply
- credentials: salted password hashes

Enum values are stored as their display strings.
"""

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, Index, Integer,
    Numeric, String, Text,
)
from sqlalchemy.orm import relationship

from database.engine import Base


# =============================================================
# PEOPLE
# =============================================================

class ApplicantRow(Base):
    __tablename__ = "applicants"

    nric = Column(String(9), primary_key=True)
    name = Column(String(100), nullable=False)
    age = Column(Integer, nullable=False)
    marital_status = Column(String(20), nullable=False)


class ManagerRow(Base):
    __tablename__ = "managers"

    nric = Column(String(9), primary_key=True)
    name = Column(String(100), nullable=False)


class OfficerRow(Base):
    """Officer capability; the profile lives in applicants."""
    __tablename__ = "officers"

    nric = Column(String(9), ForeignKey("applicants.nric"), primary_key=True)


# =============================================================
# PROJECTS
# =============================================================

class ProjectRow(Base):
    __tablename__ = "projects"

    name = Column(String(100), primary_key=True)
    neighborhood = Column(String(100), nullable=False)
    open_date = Column(Date, nullable=False)
    close_date = Column(Date, nullable=False)
    manager_id = Column(String(9), nullable=False, index=True)
    officer_slot_capacity = Column(Integer, nullable=False)
    visible = Column(Boolean, nullable=False, default=True)
    assigned_officer_ids = Column(JSON, nullable=False, default=list)

    flats = relationship(
        "ProjectFlatRow",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectFlatRow.flat_type",
    )


class ProjectFlatRow(Base):
    """Units and price of one flat type in one project."""
    __tablename__ = "project_flats"

    project_name = Column(String(100), ForeignKey("projects.name"), primary_key=True)
    flat_type = Column(String(20), primary_key=True)
    units_remaining = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    project = relationship("ProjectRow", back_populates="flats")


# =============================================================
# WORKFLOW RECORDS
# =============================================================

class ApplicationRow(Base):
    __tablename__ = "applications"

    application_id = Column(String(20), primary_key=True)
    applicant_id = Column(String(9), nullable=False, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    flat_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, index=True)
    withdrawal_requested = Column(Boolean, nullable=False, default=False)
    previous_status = Column(String(20), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    booked_at = Column(DateTime(timezone=True), nullable=True)
    booked_by = Column(String(9), nullable=True)

    __table_args__ = (
        Index("idx_applications_project_status", "project_id", "status"),
    )


class OfficerAssignmentRow(Base):
    __tablename__ = "officer_assignments"

    assignment_id = Column(String(20), primary_key=True)
    officer_id = Column(String(9), nullable=False, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    requested_at = Column(DateTime(timezone=True), nullable=False)
    decided_at = Column(DateTime(timezone=True), nullable=True)


class EnquiryRow(Base):
    __tablename__ = "enquiries"

    enquiry_id = Column(String(20), primary_key=True)
    applicant_id = Column(String(9), nullable=False, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    # Reply (all null until replied)
    reply_text = Column(Text, nullable=True)
    reply_responder_id = Column(String(9), nullable=True)
    reply_timestamp = Column(DateTime(timezone=True), nullable=True)


# =============================================================
# CREDENTIALS
# =============================================================

class CredentialRow(Base):
    __tablename__ = "credentials"

    user_id = Column(String(9), primary_key=True)
    salt = Column(String(64), nullable=False)
    password_hash = Column(String(128), nullable=False)
    iterations = Column(Integer, nullable=False)
