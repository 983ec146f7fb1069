"""
Finite state machine for a chat session's turn lifecycle.

A session starts in INITIALIZING, waits for input, processes exactly one
turn at a time, and either returns to waiting or lands in CHECKOUT_READY
once a reply carries the completion marker. RESET re-enters
INITIALIZING from any live state; CLOSE is terminal.

Usage:
    sm = SessionStateMachine()
    sm.transition(TransitionTrigger.GREETING_SEEDED)
    assert sm.current_state == SessionState.AWAITING_USER_INPUT
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """All possible states of a chat session."""
    INITIALIZING = "initializing"
    AWAITING_USER_INPUT = "awaiting_user_input"
    PROCESSING_TURN = "processing_turn"
    CHECKOUT_READY = "checkout_ready"
    CLOSED = "closed"


class TransitionTrigger(str, Enum):
    """Session events that move the lifecycle forward."""
    GREETING_SEEDED = "greeting_seeded"
    USER_MESSAGE = "user_message"
    REPLY_DELIVERED = "reply_delivered"
    CHECKOUT_SIGNALLED = "checkout_signalled"
    RESET = "reset"
    CLOSE = "close"


@dataclass
class Transition:
    """One edge of the session lifecycle graph."""
    from_state: SessionState
    to_state: SessionState
    trigger: TransitionTrigger


@dataclass
class StateEntry:
    """A state the session entered, and what moved it there."""
    state: SessionState
    entered_at: datetime
    trigger: Optional[TransitionTrigger] = None


class InvalidTransitionError(Exception):
    """Raised for a trigger the current state does not accept."""


_LIVE_STATES = [
    SessionState.INITIALIZING,
    SessionState.AWAITING_USER_INPUT,
    SessionState.PROCESSING_TURN,
    SessionState.CHECKOUT_READY,
]


class SessionStateMachine:
    """Deterministic state machine guarding the turn-taking protocol."""

    TRANSITIONS: list[Transition] = [
        # --- Start ---
        Transition(SessionState.INITIALIZING, SessionState.AWAITING_USER_INPUT,
                   TransitionTrigger.GREETING_SEEDED),

        # --- Turn taking ---
        Transition(SessionState.AWAITING_USER_INPUT, SessionState.PROCESSING_TURN,
                   TransitionTrigger.USER_MESSAGE),
        Transition(SessionState.CHECKOUT_READY, SessionState.PROCESSING_TURN,
                   TransitionTrigger.USER_MESSAGE),
        Transition(SessionState.PROCESSING_TURN, SessionState.AWAITING_USER_INPUT,
                   TransitionTrigger.REPLY_DELIVERED),
        Transition(SessionState.PROCESSING_TURN, SessionState.CHECKOUT_READY,
                   TransitionTrigger.CHECKOUT_SIGNALLED),

        # --- Restart and teardown ---
        *[Transition(state, SessionState.INITIALIZING, TransitionTrigger.RESET)
          for state in _LIVE_STATES],
        *[Transition(state, SessionState.CLOSED, TransitionTrigger.CLOSE)
          for state in _LIVE_STATES],
    ]

    def __init__(self) -> None:
        self._table: dict[tuple[SessionState, TransitionTrigger], SessionState] = {
            (t.from_state, t.trigger): t.to_state for t in self.TRANSITIONS
        }
        self._history: list[StateEntry] = []
        self._enter(SessionState.INITIALIZING, None)

    def _enter(self, state: SessionState, trigger: Optional[TransitionTrigger]) -> None:
        self._history.append(StateEntry(state, datetime.now(timezone.utc), trigger))

    @property
    def current_state(self) -> SessionState:
        return self._history[-1].state

    def can_transition(self, trigger: TransitionTrigger) -> bool:
        return (self.current_state, trigger) in self._table

    def transition(self, trigger: TransitionTrigger) -> SessionState:
        """
        Move to the state the trigger leads to from the current one.

        Raises:
            InvalidTransitionError: If the trigger is not allowed here.
        """
        source = self.current_state
        target = self._table.get((source, trigger))
        if target is None:
            allowed = ", ".join(t.value for t in self.get_valid_triggers()) or "none"
            raise InvalidTransitionError(
                f"Trigger '{trigger.value}' not allowed in state '{source.value}' "
                f"(allowed: {allowed})"
            )
        self._enter(target, trigger)
        logger.debug("Session state %s -> %s on %s", source.value, target.value, trigger.value)
        return target

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        return [trigger for state, trigger in self._table if state == self.current_state]

    def get_history(self) -> list[StateEntry]:
        """Copy of every state entered so far, oldest first."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self.current_state == SessionState.CLOSED
