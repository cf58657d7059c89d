"""Watch session state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- The lifecycle never regresses
- Every transition recorded in an in-memory history
"""

from __future__ import annotations

import logging

from extsync.models.session import (
    VALID_TRANSITIONS,
    SessionState,
    SessionTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class SessionMachine:
    """Tracks the lifecycle of a single watch session."""

    def __init__(self) -> None:
        self._state = SessionState.NOT_STARTED
        self._history: list[SessionTransition] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> list[SessionTransition]:
        """Return a copy of every transition taken so far."""
        return list(self._history)

    @property
    def is_started(self) -> bool:
        """True once ``start()`` has been entered, even if not yet ready."""
        return self._state != SessionState.NOT_STARTED

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY

    @property
    def is_stopped(self) -> bool:
        return self._state == SessionState.STOPPED

    def can_transition(self, target_state: SessionState) -> bool:
        return target_state in VALID_TRANSITIONS.get(self._state, set())

    def transition(self, target_state: SessionState) -> SessionTransition:
        """Move to *target_state*, recording the transition.

        Raises
        ------
        InvalidTransitionError
            If the table does not allow the move.
        """
        current = self._state
        if not self.can_transition(target_state):
            allowed = VALID_TRANSITIONS.get(current, set())
            raise InvalidTransitionError(
                f"Cannot transition session from {current.value} to "
                f"{target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
            )

        record = SessionTransition(from_state=current, to_state=target_state)
        self._history.append(record)
        self._state = target_state
        logger.debug("Session %s -> %s", current.value, target_state.value)
        return record
