"""
Status canônicos de uma sessão de coaching.

Este módulo define os status que uma sessão pode assumir durante
seu ciclo de vida. Os valores são estáveis para persistência.
"""

from enum import StrEnum


class SessionStatus(StrEnum):
    """
    Status de uma sessão de coaching.

    Status ativos:
        - PENDING: Sessão agendada, ainda não iniciada
        - IN_PROGRESS: Sessão em andamento
        - RESCHEDULED: Sessão remarcada (reentrante: volta a um status ativo)

    Status terminais:
        - COMPLETED: Sessão concluída (nenhuma transição aceita)
        - CANCELLED: Sessão cancelada (aceita apenas reset explícito para PENDING)
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"

    def __str__(self) -> str:
        return self.value


# CANCELLED é terminal para o fluxo normal; o reset para PENDING é a única saída
TERMINAL_STATES: frozenset[SessionStatus] = frozenset({
    SessionStatus.COMPLETED,
    SessionStatus.CANCELLED,
})

# Status em que a sessão ainda vai acontecer e precisa de lembretes
ACTIVE_STATES: frozenset[SessionStatus] = frozenset({
    SessionStatus.PENDING,
    SessionStatus.IN_PROGRESS,
    SessionStatus.RESCHEDULED,
})

DEFAULT_INITIAL_STATE: SessionStatus = SessionStatus.PENDING


def is_terminal(state: SessionStatus) -> bool:
    """
    Verifica se o status é terminal.

    Args:
        state: Status a ser verificado

    Returns:
        True se o status é terminal, False caso contrário
    """
    return state in TERMINAL_STATES


def is_active(state: SessionStatus) -> bool:
    """Verifica se a sessão ainda está ativa (pendente, em andamento ou remarcada)."""
    return state in ACTIVE_STATES


def is_valid_state(state: object) -> bool:
    """
    Verifica se o valor é um status válido do enum.

    Args:
        state: Valor a ser verificado

    Returns:
        True se é um SessionStatus válido
    """
    return isinstance(state, SessionStatus)
