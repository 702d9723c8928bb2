"""
Allocation Engine - Error Taxonomy.

============================================================
PURPOSE
============================================================
Typed failures for every allocation operation.

Each failure kind has:
- an ErrorCode the presentation layer branches on
- an ErrorCodeInfo entry with a user-facing message
- an AllocationError subclass raised inside the engine

PROPAGATION:
- Engine internals validate first, then apply
- Validation raises an AllocationError subclass
- Public operations convert it to OperationResult.failure
- Nothing is mutated when a failure is returned

Infrastructure failures (persistence, configuration) are not
part of this taxonomy; see core.exceptions.

============================================================
"""

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from core.exceptions import HousingException, Severity


logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================
# ERROR CODES
# ============================================================

class ErrorCode(Enum):
    """Failure kinds surfaced to callers."""

    ALREADY_HAS_ACTIVE_APPLICATION = "ALREADY_HAS_ACTIVE_APPLICATION"
    PROJECT_CLOSED = "PROJECT_CLOSED"
    INELIGIBLE = "INELIGIBLE"
    NO_UNITS_AVAILABLE = "NO_UNITS_AVAILABLE"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    OFFICER_ALREADY_ASSIGNED = "OFFICER_ALREADY_ASSIGNED"
    NO_SLOTS_AVAILABLE = "NO_SLOTS_AVAILABLE"
    ALREADY_REPLIED = "ALREADY_REPLIED"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Project catalogue management
    DUPLICATE_PROJECT = "DUPLICATE_PROJECT"
    PROJECT_WINDOW_OVERLAP = "PROJECT_WINDOW_OVERLAP"
    PROJECT_IN_USE = "PROJECT_IN_USE"


@dataclass(frozen=True)
class ErrorCodeInfo:
    """Information about an error code."""

    code: ErrorCode
    description: str
    """Developer-facing description."""

    user_message: str
    """Message suitable for showing to the caller's role."""


ERROR_CODES: Dict[ErrorCode, ErrorCodeInfo] = {
    ErrorCode.ALREADY_HAS_ACTIVE_APPLICATION: ErrorCodeInfo(
        code=ErrorCode.ALREADY_HAS_ACTIVE_APPLICATION,
        description="Applicant already owns an application that has not ended",
        user_message="You already have an active application.",
    ),
    ErrorCode.PROJECT_CLOSED: ErrorCodeInfo(
        code=ErrorCode.PROJECT_CLOSED,
        description="Project is hidden or outside its application window",
        user_message="This project is not open for applications.",
    ),
    ErrorCode.INELIGIBLE: ErrorCodeInfo(
        code=ErrorCode.INELIGIBLE,
        description="Applicant age/marital status does not qualify for the flat type",
        user_message="You are not eligible for this flat type.",
    ),
    ErrorCode.NO_UNITS_AVAILABLE: ErrorCodeInfo(
        code=ErrorCode.NO_UNITS_AVAILABLE,
        description="No units of the flat type remain at submission time",
        user_message="No units of this flat type are available.",
    ),
    ErrorCode.INSUFFICIENT_INVENTORY: ErrorCodeInfo(
        code=ErrorCode.INSUFFICIENT_INVENTORY,
        description="Unit reservation failed because inventory is exhausted",
        user_message="All units of this flat type have been booked.",
    ),
    ErrorCode.INVALID_TRANSITION: ErrorCodeInfo(
        code=ErrorCode.INVALID_TRANSITION,
        description="Operation is not legal from the record's current state",
        user_message="This action is not allowed at the current stage.",
    ),
    ErrorCode.OFFICER_ALREADY_ASSIGNED: ErrorCodeInfo(
        code=ErrorCode.OFFICER_ALREADY_ASSIGNED,
        description="Officer already holds an approved project assignment",
        user_message="This officer is already handling a project.",
    ),
    ErrorCode.NO_SLOTS_AVAILABLE: ErrorCodeInfo(
        code=ErrorCode.NO_SLOTS_AVAILABLE,
        description="Project officer slots are all filled",
        user_message="This project has no officer slots left.",
    ),
    ErrorCode.ALREADY_REPLIED: ErrorCodeInfo(
        code=ErrorCode.ALREADY_REPLIED,
        description="Enquiry already carries a reply and is immutable",
        user_message="This enquiry has already been replied to.",
    ),
    ErrorCode.NOT_FOUND: ErrorCodeInfo(
        code=ErrorCode.NOT_FOUND,
        description="Referenced id is unknown",
        user_message="The requested record does not exist.",
    ),
    ErrorCode.UNAUTHORIZED: ErrorCodeInfo(
        code=ErrorCode.UNAUTHORIZED,
        description="Caller role or identity may not perform the operation",
        user_message="You are not allowed to perform this action.",
    ),
    ErrorCode.DUPLICATE_PROJECT: ErrorCodeInfo(
        code=ErrorCode.DUPLICATE_PROJECT,
        description="A project with this name already exists",
        user_message="A project with this name already exists.",
    ),
    ErrorCode.PROJECT_WINDOW_OVERLAP: ErrorCodeInfo(
        code=ErrorCode.PROJECT_WINDOW_OVERLAP,
        description="Manager already handles a project in an overlapping window",
        user_message="You already manage a project during this application period.",
    ),
    ErrorCode.PROJECT_IN_USE: ErrorCodeInfo(
        code=ErrorCode.PROJECT_IN_USE,
        description="Project is referenced by live applications or officer requests",
        user_message="This project still has active applications or officer requests.",
    ),
}


def get_error_info(code: ErrorCode) -> ErrorCodeInfo:
    """Get error info for a code."""
    return ERROR_CODES[code]


# ============================================================
# EXCEPTIONS
# ============================================================

class AllocationError(HousingException):
    """
    Base for business-rule failures.

    Always recoverable; never fatal to the session.
    """

    code: ErrorCode = ErrorCode.INVALID_TRANSITION
    default_severity = Severity.LOW
    default_recoverable = True

    def __init__(self, message: Optional[str] = None, **context: Any):
        super().__init__(
            message or get_error_info(self.code).description,
            context=context,
        )

    @property
    def user_message(self) -> str:
        return get_error_info(self.code).user_message


class AlreadyHasActiveApplication(AllocationError):
    code = ErrorCode.ALREADY_HAS_ACTIVE_APPLICATION


class ProjectClosed(AllocationError):
    code = ErrorCode.PROJECT_CLOSED


class Ineligible(AllocationError):
    code = ErrorCode.INELIGIBLE


class NoUnitsAvailable(AllocationError):
    code = ErrorCode.NO_UNITS_AVAILABLE


class InsufficientInventory(AllocationError):
    code = ErrorCode.INSUFFICIENT_INVENTORY


class InvalidTransition(AllocationError):
    code = ErrorCode.INVALID_TRANSITION


class OfficerAlreadyAssigned(AllocationError):
    code = ErrorCode.OFFICER_ALREADY_ASSIGNED


class NoSlotsAvailable(AllocationError):
    code = ErrorCode.NO_SLOTS_AVAILABLE


class AlreadyReplied(AllocationError):
    code = ErrorCode.ALREADY_REPLIED


class NotFound(AllocationError):
    code = ErrorCode.NOT_FOUND


class Unauthorized(AllocationError):
    code = ErrorCode.UNAUTHORIZED


class DuplicateProject(AllocationError):
    code = ErrorCode.DUPLICATE_PROJECT


class ProjectWindowOverlap(AllocationError):
    code = ErrorCode.PROJECT_WINDOW_OVERLAP


class ProjectInUse(AllocationError):
    code = ErrorCode.PROJECT_IN_USE


# ============================================================
# OPERATION RESULT
# ============================================================

@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of an engine operation.

    Exactly one of value/error is meaningful: a success carries
    the value (possibly None), a failure carries one AllocationError.
    """

    value: Optional[T] = None
    error: Optional[AllocationError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AllocationError) -> "OperationResult[T]":
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None

    def unwrap(self) -> T:
        """
        Return the value or raise the carried error.

        Raises:
            AllocationError: If the result is a failure
        """
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def returns_result(func: Callable[..., T]) -> Callable[..., OperationResult[T]]:
    """
    Wrap an operation that raises AllocationError into one that
    returns OperationResult.

    Only AllocationError is converted; anything else propagates.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> OperationResult[T]:
        try:
            return OperationResult.success(func(*args, **kwargs))
        except AllocationError as e:
            logger.log(e.severity.log_level, f"{func.__qualname__} refused: {e.to_log_format()}")
            return OperationResult.failure(e)

    return wrapper
