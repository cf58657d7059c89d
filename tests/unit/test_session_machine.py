"""Tests for SessionMachine — forward-only lifecycle transitions."""

from __future__ import annotations

import pytest

from extsync.core.session_machine import InvalidTransitionError, SessionMachine
from extsync.models.session import VALID_TRANSITIONS, SessionState


class TestSessionMachine:
    def test_initial_state(self):
        machine = SessionMachine()
        assert machine.state == SessionState.NOT_STARTED
        assert not machine.is_started
        assert not machine.is_ready

    def test_happy_path(self):
        machine = SessionMachine()
        machine.transition(SessionState.STARTING)
        assert machine.is_started
        assert not machine.is_ready
        machine.transition(SessionState.READY)
        assert machine.is_ready
        machine.transition(SessionState.STOPPED)
        assert machine.is_stopped

    def test_history_recorded(self):
        machine = SessionMachine()
        machine.transition(SessionState.STARTING)
        machine.transition(SessionState.READY)
        history = machine.history
        assert [(t.from_state, t.to_state) for t in history] == [
            (SessionState.NOT_STARTED, SessionState.STARTING),
            (SessionState.STARTING, SessionState.READY),
        ]

    def test_cannot_skip_starting(self):
        machine = SessionMachine()
        with pytest.raises(InvalidTransitionError, match="not_started to ready"):
            machine.transition(SessionState.READY)

    def test_never_regresses(self):
        machine = SessionMachine()
        machine.transition(SessionState.STARTING)
        machine.transition(SessionState.READY)
        with pytest.raises(InvalidTransitionError):
            machine.transition(SessionState.STARTING)
        assert machine.state == SessionState.READY

    def test_starting_twice_is_invalid(self):
        machine = SessionMachine()
        machine.transition(SessionState.STARTING)
        assert not machine.can_transition(SessionState.STARTING)

    def test_stopped_is_terminal(self):
        assert VALID_TRANSITIONS[SessionState.STOPPED] == set()
        machine = SessionMachine()
        machine.transition(SessionState.STOPPED)
        for state in SessionState:
            assert not machine.can_transition(state)
