"""
Exports públicos do módulo fsm/manager.

Máquina de estados (SessionStateMachine) para o status de sessões.
"""

from fsm.manager.machine import (
    INITIAL_STATES,
    SessionStateMachine,
    create_fsm,
)

__all__ = [
    "INITIAL_STATES",
    "SessionStateMachine",
    "create_fsm",
]
