"""
Split reader lifecycle state machine definitions.

This module defines the canonical reader states and the allowed transitions
between them. It is passive: the reader consults it before moving and
decides itself how to fail.
"""

from __future__ import annotations

UNOPENED = "unopened"
READY = "ready"
EXHAUSTED = "exhausted"
CLOSED = "closed"

# Terminal reader states: no further records can be produced.
READER_TERMINAL_STATES: frozenset[str] = frozenset(
    {
        EXHAUSTED,
        CLOSED,
    }
)


# Allowed reader state transitions.
#
# Key   : previous state
# Value : set of allowed next states
#
# Notes:
# - ready -> ready is a normal record read.
# - close() is allowed from every state; closed -> closed is the idempotent
#   repeat.
READER_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    UNOPENED: frozenset(
        {
            READY,
            CLOSED,
        }
    ),

    READY: frozenset(
        {
            READY,
            EXHAUSTED,
            CLOSED,
        }
    ),

    EXHAUSTED: frozenset({CLOSED}),

    CLOSED: frozenset({CLOSED}),
}


def is_terminal_state(state: str) -> bool:
    """Return True if the given state is terminal."""
    return state in READER_TERMINAL_STATES


def is_valid_transition(prev_state: str, next_state: str) -> bool:
    """Return True if the transition prev_state -> next_state is allowed."""
    allowed = READER_ALLOWED_TRANSITIONS.get(prev_state)
    if allowed is None:
        return False
    return next_state in allowed
