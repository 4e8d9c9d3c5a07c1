"""
Regras de transição válidas entre status de sessão.

Este módulo define o grafo de transições da máquina de estados.
Guards temporais ficam em fsm/rules; aqui só existe a tabela.
"""

from fsm.states.session import SessionStatus

TransitionMap = dict[SessionStatus, frozenset[SessionStatus]]

# Chave: status de origem
# Valor: conjunto de status de destino permitidos
VALID_TRANSITIONS: TransitionMap = {
    SessionStatus.PENDING: frozenset({
        SessionStatus.IN_PROGRESS,
        SessionStatus.CANCELLED,
        SessionStatus.RESCHEDULED,
    }),

    SessionStatus.IN_PROGRESS: frozenset({
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
    }),

    # Concluída não aceita nenhuma transição
    SessionStatus.COMPLETED: frozenset(),

    # Cancelada só volta para pendente via reset explícito
    SessionStatus.CANCELLED: frozenset({
        SessionStatus.PENDING,
    }),

    SessionStatus.RESCHEDULED: frozenset({
        SessionStatus.PENDING,
        SessionStatus.IN_PROGRESS,
        SessionStatus.CANCELLED,
    }),
}


def get_valid_targets(state: SessionStatus) -> frozenset[SessionStatus]:
    """
    Retorna os status de destino válidos para um status de origem.

    Args:
        state: Status de origem

    Returns:
        Conjunto de status de destino permitidos (vazio se não há saída)
    """
    return VALID_TRANSITIONS.get(state, frozenset())


def is_transition_valid(from_state: SessionStatus, to_state: SessionStatus) -> bool:
    """
    Verifica se uma transição consta na tabela.

    Args:
        from_state: Status de origem
        to_state: Status de destino

    Returns:
        True se a transição é permitida, False caso contrário
    """
    return to_state in get_valid_targets(from_state)


def validate_transition_map() -> list[str]:
    """
    Valida a integridade do mapa de transições.

    Verifica:
    - Todos os status do enum estão no mapa
    - COMPLETED não tem saída
    - Nenhuma transição aponta para status inexistente

    Returns:
        Lista de erros encontrados (vazia se válido)
    """
    errors: list[str] = []

    for state in SessionStatus:
        if state not in VALID_TRANSITIONS:
            errors.append(f"Status {state.name} ausente em VALID_TRANSITIONS")

    if VALID_TRANSITIONS.get(SessionStatus.COMPLETED):
        errors.append("Status COMPLETED não deveria ter transições")

    for from_state, targets in VALID_TRANSITIONS.items():
        for target in targets:
            if not isinstance(target, SessionStatus):
                errors.append(
                    f"Transição {from_state.name} → {target}: destino inválido"
                )

    return errors
