"""
Allocation Engine - Types.

============================================================
PURPOSE
============================================================
All type definitions for the Allocation Engine.

RECORDS:
- Applicant / Manager: people known to the system
- Project: flat inventory, application window, officer slots
- Application: one applicant's claim on one flat type
- OfficerAssignment: an officer's request to handle a project
- Enquiry: an applicant question, answerable exactly once
- Identity: the authenticated caller, tagged by role

Records reference each other by id only. A Project owns its
inventory and officer-slot bookkeeping; nothing else does.

============================================================
"""

from datetime import date, datetime, timezone
from typing import Optional, Dict, List, Tuple
from dataclasses import dataclass, field
from enum import Enum
from decimal import Decimal
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Generate a short unique record id, e.g. ``APP-3F9A1C2B7D10``."""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


# ============================================================
# ENUMS
# ============================================================

class FlatType(Enum):
    """
    Housing-unit category.

    Declared smallest first; singles may only take the smallest.
    """

    TWO_ROOM = "2-Room"
    THREE_ROOM = "3-Room"

    @classmethod
    def smallest(cls) -> "FlatType":
        """The smallest flat category on offer."""
        return next(iter(cls))

    @classmethod
    def from_string(cls, text: str) -> "FlatType":
        """
        Parse a display value ("2-Room", "3-room") or member name.

        Raises:
            ValueError: If the text names no flat type
        """
        normalized = text.strip()
        for flat_type in cls:
            if normalized.lower() in (flat_type.value.lower(), flat_type.name.lower()):
                return flat_type
        raise ValueError(f"Unknown flat type: {text!r}")


class MaritalStatus(Enum):
    """Applicant marital status."""

    MARRIED = "Married"
    SINGLE = "Single"

    @classmethod
    def from_string(cls, text: str) -> "MaritalStatus":
        normalized = text.strip().lower()
        for status in cls:
            if status.value.lower() == normalized:
                return status
        raise ValueError(f"Unknown marital status: {text!r}")


class ApplicationStatus(Enum):
    """
    Application lifecycle state.

    State Machine:

        PENDING ──────► UNSUCCESSFUL
           │
           ▼
       SUCCESSFUL ───► BOOKED
           │              │
           └──────┬───────┘
                  ▼
              WITHDRAWN      (PENDING may also withdraw)

    Withdrawal only happens when a manager approves a request.
    """

    PENDING = "Pending"
    """Submitted, awaiting a manager decision."""

    SUCCESSFUL = "Successful"
    """Accepted; applicant may book through an officer."""

    UNSUCCESSFUL = "Unsuccessful"
    """Rejected by the manager."""

    BOOKED = "Booked"
    """A unit has been reserved for the applicant."""

    WITHDRAWN = "Withdrawn"
    """Withdrawal approved by the manager."""

    def is_active(self) -> bool:
        """Still awaiting a decision or a booking."""
        return self in {ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL}

    def is_terminal(self) -> bool:
        return not self.is_active()

    def holds_claim(self) -> bool:
        """Blocks the applicant from submitting another application."""
        return self in {
            ApplicationStatus.PENDING,
            ApplicationStatus.SUCCESSFUL,
            ApplicationStatus.BOOKED,
        }

    def allows_withdrawal(self) -> bool:
        return self.holds_claim()


class AssignmentStatus(Enum):
    """Officer-to-project registration state."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Role(Enum):
    """Role tag of an authenticated identity."""

    APPLICANT = "Applicant"
    OFFICER = "Officer"
    MANAGER = "Manager"


# ============================================================
# PEOPLE
# ============================================================

@dataclass
class Applicant:
    """A person who may apply for a flat."""

    nric: str
    """Unique NRIC-like identifier."""

    name: str
    age: int
    marital_status: MaritalStatus

    @property
    def is_married(self) -> bool:
        return self.marital_status == MaritalStatus.MARRIED


@dataclass
class Manager:
    """A manager in charge of projects."""

    nric: str
    name: str


@dataclass(frozen=True)
class Identity:
    """
    Authenticated caller.

    A closed variant over Role. Officers carry their applicant
    profile because an officer may also apply for a flat; the
    officer capability is the role tag, not a subclass.
    """

    role: Role
    user_id: str
    name: str
    applicant: Optional[Applicant] = None

    @classmethod
    def for_applicant(cls, applicant: Applicant) -> "Identity":
        return cls(Role.APPLICANT, applicant.nric, applicant.name, applicant)

    @classmethod
    def for_officer(cls, profile: Applicant) -> "Identity":
        return cls(Role.OFFICER, profile.nric, profile.name, profile)

    @classmethod
    def for_manager(cls, manager: Manager) -> "Identity":
        return cls(Role.MANAGER, manager.nric, manager.name, None)

    @property
    def can_apply(self) -> bool:
        """Has an applicant profile to apply with."""
        return self.applicant is not None


# ============================================================
# PROJECTS
# ============================================================

@dataclass
class FlatInventory:
    """Units and price of one flat type within a project."""

    units_remaining: int
    price: Decimal

    def __post_init__(self) -> None:
        if self.units_remaining < 0:
            raise ValueError("units_remaining must be >= 0")
        if not isinstance(self.price, Decimal):
            self.price = Decimal(str(self.price))


@dataclass
class Project:
    """
    A BTO project.

    Owns its flat inventory and its officer-slot bookkeeping.
    """

    name: str
    """Unique project key."""

    neighborhood: str
    open_date: date
    close_date: date
    manager_id: str
    officer_slot_capacity: int
    flat_inventory: Dict[FlatType, FlatInventory] = field(default_factory=dict)
    visible: bool = True
    assigned_officer_ids: List[str] = field(default_factory=list)

    def offered_flat_types(self) -> Tuple[FlatType, ...]:
        return tuple(ft for ft in FlatType if ft in self.flat_inventory)

    def window_overlaps(self, open_date: date, close_date: date) -> bool:
        """Whether [open_date, close_date) intersects this project's window."""
        return self.open_date < close_date and open_date < self.close_date


# ============================================================
# APPLICATIONS
# ============================================================

@dataclass
class Application:
    """An applicant's application for one flat type in one project."""

    applicant_id: str
    project_id: str
    flat_type: FlatType
    application_id: str = field(default_factory=lambda: new_id("APP"))
    status: ApplicationStatus = ApplicationStatus.PENDING
    withdrawal_requested: bool = False

    previous_status: Optional[ApplicationStatus] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    booked_at: Optional[datetime] = None
    booked_by: Optional[str] = None
    """Officer id that performed the booking."""


@dataclass
class OfficerAssignment:
    """An officer's registration to handle a project."""

    officer_id: str
    project_id: str
    assignment_id: str = field(default_factory=lambda: new_id("REG"))
    status: AssignmentStatus = AssignmentStatus.PENDING
    requested_at: datetime = field(default_factory=_utcnow)
    decided_at: Optional[datetime] = None


# ============================================================
# ENQUIRIES
# ============================================================

@dataclass(frozen=True)
class Reply:
    """The single reply to an enquiry."""

    text: str
    responder_id: str
    timestamp: datetime


@dataclass
class Enquiry:
    """An applicant-authored question attached to a project."""

    applicant_id: str
    project_id: str
    content: str
    enquiry_id: str = field(default_factory=lambda: new_id("ENQ"))
    reply: Optional[Reply] = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_replied(self) -> bool:
        return self.reply is not None


# ============================================================
# RECEIPTS
# ============================================================

@dataclass(frozen=True)
class Receipt:
    """Booking confirmation issued by an officer."""

    receipt_id: str
    application_id: str
    applicant_nric: str
    applicant_name: str
    applicant_age: int
    marital_status: MaritalStatus
    flat_type: FlatType
    project_name: str
    neighborhood: str
    price: Decimal
    booked_by: str
    booked_at: datetime
