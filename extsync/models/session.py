"""Watch session state models — monotonic lifecycle transitions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    """Lifecycle of a watch session."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    STOPPED = "stopped"


# Valid state transitions, enforced by SessionMachine.
# The lifecycle only moves forward; STOPPED is terminal.
VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.NOT_STARTED: {SessionState.STARTING, SessionState.STOPPED},
    SessionState.STARTING: {SessionState.READY, SessionState.STOPPED},
    SessionState.READY: {SessionState.STOPPED},
    SessionState.STOPPED: set(),  # terminal
}


class SessionTransition(BaseModel):
    """Records a single session state transition."""

    model_config = ConfigDict(frozen=True)

    from_state: SessionState
    to_state: SessionState
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
