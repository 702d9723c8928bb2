"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
The one place the housing engine asks for the current time.

- Application windows are checked against clock.today()
- Decisions, bookings and replies are stamped with clock.now()
- Tests pin a calendar day with MockClock

All datetimes are timezone-aware UTC.

============================================================
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional, Union


Moment = Union[datetime, date]


def as_utc(moment: Moment) -> datetime:
    """A date becomes midnight UTC; a naive datetime is taken as UTC."""
    if not isinstance(moment, datetime):
        moment = datetime.combine(moment, time.min)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


# ============================================================
# CLOCKS
# ============================================================

class ClockProtocol(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def today(self) -> date:
        """Calendar day used for application windows."""
        return self.now().date()


class SystemClock(ClockProtocol):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Manually driven clock.

    Starts at the given day or instant (wall-clock time if omitted)
    and only moves when told to.
    """

    def __init__(self, start: Optional[Moment] = None):
        self._current = as_utc(start) if start is not None else datetime.now(timezone.utc)
        self._guard = threading.Lock()

    def now(self) -> datetime:
        with self._guard:
            return self._current

    def set_time(self, moment: Moment) -> None:
        with self._guard:
            self._current = as_utc(moment)

    def advance(self, seconds: float = 0, **delta: float) -> None:
        """Move forward; keyword arguments are timedelta fields (days=, hours=)."""
        with self._guard:
            self._current += timedelta(seconds=seconds, **delta)

    @contextmanager
    def freeze(self, moment: Moment) -> Iterator[None]:
        """Jump to moment for the duration of the block."""
        with self._guard:
            saved = self._current
            self._current = as_utc(moment)
        try:
            yield
        finally:
            with self._guard:
                self._current = saved


# ============================================================
# PROCESS-WIDE CLOCK
# ============================================================

_active: ClockProtocol = SystemClock()
_active_guard = threading.Lock()


def get_clock() -> ClockProtocol:
    with _active_guard:
        return _active


def set_clock(clock: ClockProtocol) -> None:
    """Install the clock used by components constructed without one."""
    global _active
    with _active_guard:
        _active = clock
