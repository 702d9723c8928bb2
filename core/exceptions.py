"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Base exception hierarchy for the housing system.

- Business-rule refusals and infrastructure faults share one root
- Every exception carries a severity that picks its log level
- Context is a flat dict of ids, safe to log and serialize

============================================================
EXCEPTION HIERARCHY
============================================================
HousingException
├── AllocationError            (allocation_engine.errors)
│   ├── AlreadyHasActiveApplication
│   ├── ...
│   └── Unauthorized
├── ConfigurationError
│   └── InvalidConfigError
└── PersistenceError

AllocationError is recoverable and returned to callers inside an
OperationResult. ConfigurationError and PersistenceError are
raised and end the current command.

============================================================
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .clock import get_clock


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """How bad a failure is, and where it lands in the log."""

    LOW = "low"
    """A business rule refused the request."""

    MEDIUM = "medium"
    """Unexpected input the caller can correct."""

    HIGH = "high"
    """The command cannot start."""

    CRITICAL = "critical"
    """Records could not be loaded or saved."""

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]


_LOG_LEVELS = {
    Severity.LOW: logging.WARNING,
    Severity.MEDIUM: logging.WARNING,
    Severity.HIGH: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


# ============================================================
# BASE EXCEPTION
# ============================================================

class HousingException(Exception):
    """
    Root of every error the housing system raises on purpose.

    Subclasses set default_severity / default_recoverable; callers
    may override either per instance.
    """

    default_severity: Severity = Severity.MEDIUM
    default_recoverable: bool = True

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity or self.default_severity
        self.context: Dict[str, Any] = dict(context or {})
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.cause = cause
        self.occurred_at: datetime = get_clock().now()

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "context": dict(self.context),
            "occurred_at": self.occurred_at.isoformat(),
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data

    def to_log_format(self) -> str:
        """One-line rendering: Type(severity) message [key=value ...]."""
        line = f"{type(self).__name__}({self.severity.value}) {self.message}"
        if self.context:
            line += " [" + " ".join(f"{k}={v}" for k, v in self.context.items()) + "]"
        return line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(HousingException):
    """Settings are missing or unusable."""

    default_severity = Severity.HIGH
    default_recoverable = False


class InvalidConfigError(ConfigurationError):
    """A single setting has an unusable value."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {reason}",
            context={
                "config_key": key,
                "actual_value": str(value)[:100],
                "reason": reason,
            },
        )


# ============================================================
# PERSISTENCE ERRORS
# ============================================================

class PersistenceError(HousingException):
    """Records could not be loaded from or saved to the store."""

    default_severity = Severity.CRITICAL
    default_recoverable = False

    def __init__(self, message: str, table: Optional[str] = None, **kwargs: Any):
        if table:
            kwargs["context"] = {**kwargs.get("context", {}), "table": table}
        super().__init__(message, **kwargs)
