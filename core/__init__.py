"""
Core Module Package.

This package contains the infrastructure components
that all other modules depend on.

Components:
- clock: Unified time abstraction
- exceptions: Base exception hierarchy
"""

from .clock import ClockProtocol, SystemClock, MockClock, get_clock, set_clock
from .exceptions import (
    Severity,
    HousingException,
    ConfigurationError,
    InvalidConfigError,
    PersistenceError,
)

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "get_clock",
    "set_clock",
    "Severity",
    "HousingException",
    "ConfigurationError",
    "InvalidConfigError",
    "PersistenceError",
]
