"""
Exports públicos do módulo fsm/states.

Status canônicos de uma sessão de coaching.
"""

from fsm.states.session import (
    ACTIVE_STATES,
    DEFAULT_INITIAL_STATE,
    TERMINAL_STATES,
    SessionStatus,
    is_active,
    is_terminal,
    is_valid_state,
)

__all__ = [
    "ACTIVE_STATES",
    "DEFAULT_INITIAL_STATE",
    "TERMINAL_STATES",
    "SessionStatus",
    "is_active",
    "is_terminal",
    "is_valid_state",
]
