"""
Módulo FSM — Máquina de estados do status de sessões de coaching.

Este módulo implementa a FSM determinística que governa
as transições de status das sessões.

Estrutura:
    - states/: Definições dos status (SessionStatus enum)
    - transitions/: Tabela de transições (VALID_TRANSITIONS)
    - rules/: Guards temporais
    - manager/: Máquina de estados (SessionStateMachine)
    - types/: Tipos de dados (StateTransition, TransitionResult)
"""

# Manager
from fsm.manager import (
    INITIAL_STATES,
    SessionStateMachine,
    create_fsm,
)

# Guards/Rules
from fsm.rules import (
    GuardResult,
    TransitionContext,
    evaluate_guards,
)
from fsm.states import (
    ACTIVE_STATES,
    DEFAULT_INITIAL_STATE,
    TERMINAL_STATES,
    SessionStatus,
    is_active,
    is_terminal,
    is_valid_state,
)

# Transições
from fsm.transitions import (
    VALID_TRANSITIONS,
    get_valid_targets,
    is_transition_valid,
    validate_transition_map,
)

# Types
from fsm.types import (
    StateTransition,
    TransitionResult,
)

__all__ = [
    "ACTIVE_STATES",
    "DEFAULT_INITIAL_STATE",
    "INITIAL_STATES",
    "TERMINAL_STATES",
    # Transições
    "VALID_TRANSITIONS",
    # Guards
    "GuardResult",
    # Manager
    "SessionStateMachine",
    # Estados
    "SessionStatus",
    # Types
    "StateTransition",
    "TransitionContext",
    "TransitionResult",
    "create_fsm",
    "evaluate_guards",
    "get_valid_targets",
    "is_active",
    "is_terminal",
    "is_transition_valid",
    "is_valid_state",
    "validate_transition_map",
]
