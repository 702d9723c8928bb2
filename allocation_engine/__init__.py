"""
Allocation Engine Package.

============================================================
PURPOSE
============================================================
Lifecycle management for BTO public-housing applications.

CORE:
    - Eligibility of applicants for flat types
    - One live application per applicant
    - Application status transitions through booking or withdrawal
    - Officer-to-project assignment with bounded slots
    - Enquiries answered exactly once

AUTHORITY BOUNDARIES:
    The engine decides nothing about who is calling. The access
    gate authorizes every role-bound call before the engine runs.

============================================================
MODULES
============================================================
- types: Records, enums and the Identity variant
- errors: Error taxonomy, OperationResult
- config: Engine configuration
- tables: In-memory record tables and locks
- eligibility: Age and marital-status rules
- inventory: Units, prices and officer slots
- state_machine: Application status transitions
- applications: Application lifecycle
- officers: Officer assignment workflow
- enquiries: Enquiry workflow
- projects: Project catalogue and listing
- reporting: Receipts and booking reports
- access_gate: Role and scope authorization
- storage: Record store interface
- service: Role-checked facade
- schemas: Seed file validation
- cli: Administrative command line

============================================================
"""

# ============================================================
# TYPES
# ============================================================
from .types import (
    # Enums
    FlatType,
    MaritalStatus,
    ApplicationStatus,
    AssignmentStatus,
    Role,
    # Records
    Applicant,
    Manager,
    Identity,
    FlatInventory,
    Project,
    Application,
    OfficerAssignment,
    Reply,
    Enquiry,
    Receipt,
)

# ============================================================
# ERRORS
# ============================================================
from .errors import (
    ErrorCode,
    ErrorCodeInfo,
    ERROR_CODES,
    get_error_info,
    AllocationError,
    AlreadyHasActiveApplication,
    ProjectClosed,
    Ineligible,
    NoUnitsAvailable,
    InsufficientInventory,
    InvalidTransition,
    OfficerAlreadyAssigned,
    NoSlotsAvailable,
    AlreadyReplied,
    NotFound,
    Unauthorized,
    DuplicateProject,
    ProjectWindowOverlap,
    ProjectInUse,
    OperationResult,
    returns_result,
)

# ============================================================
# CONFIGURATION
# ============================================================
from .config import (
    EligibilityConfig,
    PersistenceConfig,
    AuthConfig,
    EngineConfig,
)

# ============================================================
# COMPONENTS
# ============================================================
from .tables import Tables
from .eligibility import EligibilityRules
from .inventory import ProjectInventory
from .state_machine import (
    VALID_TRANSITIONS,
    StateTransitionEvent,
    TransitionGuard,
    ApplicationStateMachine,
)
from .applications import ApplicationLifecycle
from .officers import OfficerAssignmentManager
from .enquiries import EnquiryWorkflow
from .projects import ProjectCatalog, ProjectFilter
from .reporting import BookingReport, BookingReportRow, ReportGenerator
from .access_gate import AccessGate, Operation, PERMISSIONS
from .storage import RecordStore, InMemoryRecordStore
from .service import HousingService


__all__ = [
    # Types
    "FlatType",
    "MaritalStatus",
    "ApplicationStatus",
    "AssignmentStatus",
    "Role",
    "Applicant",
    "Manager",
    "Identity",
    "FlatInventory",
    "Project",
    "Application",
    "OfficerAssignment",
    "Reply",
    "Enquiry",
    "Receipt",
    # Errors
    "ErrorCode",
    "ErrorCodeInfo",
    "ERROR_CODES",
    "get_error_info",
    "AllocationError",
    "AlreadyHasActiveApplication",
    "ProjectClosed",
    "Ineligible",
    "NoUnitsAvailable",
    "InsufficientInventory",
    "InvalidTransition",
    "OfficerAlreadyAssigned",
    "NoSlotsAvailable",
    "AlreadyReplied",
    "NotFound",
    "Unauthorized",
    "DuplicateProject",
    "ProjectWindowOverlap",
    "ProjectInUse",
    "OperationResult",
    "returns_result",
    # Config
    "EligibilityConfig",
    "PersistenceConfig",
    "AuthConfig",
    "EngineConfig",
    # Components
    "Tables",
    "EligibilityRules",
    "ProjectInventory",
    "VALID_TRANSITIONS",
    "StateTransitionEvent",
    "TransitionGuard",
    "ApplicationStateMachine",
    "ApplicationLifecycle",
    "OfficerAssignmentManager",
    "EnquiryWorkflow",
    "ProjectCatalog",
    "ProjectFilter",
    "BookingReport",
    "BookingReportRow",
    "ReportGenerator",
    "AccessGate",
    "Operation",
    "PERMISSIONS",
    "RecordStore",
    "InMemoryRecordStore",
    "HousingService",
]
