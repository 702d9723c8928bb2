"""
Allocation Engine - Application State Machine.

============================================================
PURPOSE
============================================================
Manages application status with strict transitions.

STATE MACHINE:

    PENDING ─────────────► UNSUCCESSFUL
       │
       ▼
    SUCCESSFUL ──────────► BOOKED
       │                     │
       ▼                     ▼
    WITHDRAWN ◄──────────────┘      (PENDING ─► WITHDRAWN too)

INVARIANTS:
- UNSUCCESSFUL and WITHDRAWN are final
- BOOKED only leaves through an approved withdrawal
- Each transition has a guard
- All transitions are logged and recorded

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from core.clock import ClockProtocol, get_clock

from .errors import InvalidTransition
from .types import Application, ApplicationStatus


logger = logging.getLogger(__name__)


# ============================================================
# STATE TRANSITION RULES
# ============================================================

VALID_TRANSITIONS: Dict[ApplicationStatus, Set[ApplicationStatus]] = {
    ApplicationStatus.PENDING: {
        ApplicationStatus.SUCCESSFUL,
        ApplicationStatus.UNSUCCESSFUL,
        ApplicationStatus.WITHDRAWN,
    },
    ApplicationStatus.SUCCESSFUL: {
        ApplicationStatus.BOOKED,
        ApplicationStatus.WITHDRAWN,
    },
    ApplicationStatus.BOOKED: {
        ApplicationStatus.WITHDRAWN,
    },
    # Final states
    ApplicationStatus.UNSUCCESSFUL: set(),
    ApplicationStatus.WITHDRAWN: set(),
}


# ============================================================
# STATE TRANSITION EVENT
# ============================================================

@dataclass
class StateTransitionEvent:
    """Event representing a status transition."""

    application_id: str
    from_state: ApplicationStatus
    to_state: ApplicationStatus
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: str = ""
    actor_id: Optional[str] = None
    """Manager or officer who caused the transition."""

    details: Dict[str, Any] = field(default_factory=dict)


# ============================================================
# STATE TRANSITION GUARD
# ============================================================

class TransitionGuard:
    """Decides whether a transition is allowed and why not."""

    @staticmethod
    def can_transition(
        from_state: ApplicationStatus,
        to_state: ApplicationStatus,
    ) -> tuple[bool, str]:
        """
        Check if transition is allowed.

        Returns:
            Tuple of (allowed, reason)
        """
        if to_state in VALID_TRANSITIONS.get(from_state, set()):
            return True, "Valid transition"

        if not VALID_TRANSITIONS.get(from_state):
            return False, f"Cannot transition from final state {from_state.value}"

        return False, f"Invalid transition: {from_state.value} -> {to_state.value}"

    @staticmethod
    def validate_application_for_state(
        application: Application,
        target_state: ApplicationStatus,
    ) -> tuple[bool, str]:
        """Check record-level preconditions for the target state."""
        if target_state == ApplicationStatus.WITHDRAWN and not application.withdrawal_requested:
            return False, "No withdrawal has been requested"

        return True, "Application valid for state"


# ============================================================
# APPLICATION STATE MACHINE
# ============================================================

class ApplicationStateMachine:
    """
    State machine for one application.

    Manages status transitions with:
    - Guard checks
    - Event emission
    - History tracking
    """

    def __init__(
        self,
        application: Application,
        clock: Optional[ClockProtocol] = None,
    ):
        self._application = application
        self._clock = clock or get_clock()
        self._history: List[StateTransitionEvent] = []
        self._listeners: List[Callable[[StateTransitionEvent], None]] = []

    @property
    def current_state(self) -> ApplicationStatus:
        return self._application.status

    @property
    def application(self) -> Application:
        return self._application

    @property
    def history(self) -> List[StateTransitionEvent]:
        return list(self._history)

    def add_listener(self, listener: Callable[[StateTransitionEvent], None]) -> None:
        self._listeners.append(listener)

    def can_transition_to(self, target_state: ApplicationStatus) -> tuple[bool, str]:
        allowed, reason = TransitionGuard.can_transition(self.current_state, target_state)
        if not allowed:
            return False, reason
        return TransitionGuard.validate_application_for_state(self._application, target_state)

    def check_transition(self, target_state: ApplicationStatus) -> None:
        """
        Raise unless the transition is allowed; changes nothing.

        Raises:
            InvalidTransition: If the transition is not allowed
        """
        allowed, reason = self.can_transition_to(target_state)
        if not allowed:
            raise InvalidTransition(
                f"Cannot move {self._application.application_id} from "
                f"{self.current_state.value} to {target_state.value}: {reason}",
                application_id=self._application.application_id,
                from_state=self.current_state.value,
                to_state=target_state.value,
            )

    def transition_to(
        self,
        target_state: ApplicationStatus,
        reason: str = "",
        actor_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> StateTransitionEvent:
        """
        Transition to a new status.

        Raises:
            InvalidTransition: If the transition is not allowed
        """
        self.check_transition(target_state)

        event = StateTransitionEvent(
            application_id=self._application.application_id,
            from_state=self.current_state,
            to_state=target_state,
            timestamp=self._clock.now(),
            reason=reason,
            actor_id=actor_id,
            details=details or {},
        )

        self._application.previous_status = self._application.status
        self._application.status = target_state
        self._application.updated_at = event.timestamp

        if target_state == ApplicationStatus.BOOKED:
            self._application.booked_at = event.timestamp

        self._history.append(event)

        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"State listener error: {e}")

        logger.info(
            f"Application {self._application.application_id}: "
            f"{event.from_state.value} -> {event.to_state.value} ({reason})"
        )

        return event

    # --------------------------------------------------------
    # CONVENIENCE METHODS
    # --------------------------------------------------------

    def mark_successful(self, manager_id: str) -> StateTransitionEvent:
        return self.transition_to(ApplicationStatus.SUCCESSFUL, "Approved by manager", manager_id)

    def mark_unsuccessful(self, manager_id: str) -> StateTransitionEvent:
        return self.transition_to(ApplicationStatus.UNSUCCESSFUL, "Rejected by manager", manager_id)

    def mark_booked(self, officer_id: str) -> StateTransitionEvent:
        self.check_transition(ApplicationStatus.BOOKED)
        self._application.booked_by = officer_id
        return self.transition_to(
            ApplicationStatus.BOOKED,
            "Flat booked",
            officer_id,
            details={"flat_type": self._application.flat_type.value},
        )

    def mark_withdrawn(self, manager_id: str) -> StateTransitionEvent:
        return self.transition_to(ApplicationStatus.WITHDRAWN, "Withdrawal approved", manager_id)
