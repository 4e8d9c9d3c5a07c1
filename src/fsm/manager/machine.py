"""
Máquina de estados (SessionStateMachine) para o status de uma sessão.

Valida a transição contra a tabela, avalia os guards temporais e
mantém histórico rastreável. Não persiste nada: quem aplica o
resultado na sessão é o serviço de ciclo de vida.
"""

from typing import Any

from fsm.rules.guards import GuardResult, TransitionContext, evaluate_guards
from fsm.states.session import (
    DEFAULT_INITIAL_STATE,
    SessionStatus,
    is_terminal,
)
from fsm.transitions.rules import get_valid_targets, is_transition_valid
from fsm.types.transition import StateTransition, TransitionResult
from utils.errors import TransitionErrorKind


class SessionStateMachine:
    """
    Máquina de estados de uma sessão de coaching.

    Attributes:
        current_state: Status atual da máquina
        history: Histórico de transições realizadas
    """

    __slots__ = ("_current_state", "_history", "_session_id")

    def __init__(
        self,
        initial_state: SessionStatus | None = None,
        session_id: str = "",
    ) -> None:
        """
        Inicializa a máquina de estados.

        Args:
            initial_state: Status inicial (usa DEFAULT_INITIAL_STATE se None)
            session_id: Identificador da sessão para logs
        """
        self._current_state = initial_state or DEFAULT_INITIAL_STATE
        self._history: list[StateTransition] = []
        self._session_id = session_id

    @property
    def current_state(self) -> SessionStatus:
        """Status atual da máquina."""
        return self._current_state

    @property
    def history(self) -> list[StateTransition]:
        """Histórico de transições (cópia para evitar mutação externa)."""
        return list(self._history)

    @property
    def session_id(self) -> str:
        """Identificador da sessão."""
        return self._session_id

    @property
    def is_terminal(self) -> bool:
        """Verifica se está em status terminal."""
        return is_terminal(self._current_state)

    def get_valid_targets(self) -> frozenset[SessionStatus]:
        """Retorna status de destino válidos a partir do status atual."""
        return get_valid_targets(self._current_state)

    def can_transition_to(self, target: SessionStatus, context: TransitionContext) -> bool:
        """Verifica se pode transitar para o status alvo."""
        if not is_transition_valid(self._current_state, target):
            return False
        return evaluate_guards(self._current_state, target, context).allowed

    def transition(
        self,
        target: SessionStatus,
        trigger: str,
        context: TransitionContext,
        metadata: dict[str, Any] | None = None,
    ) -> TransitionResult:
        """
        Tenta realizar uma transição de status.

        Args:
            target: Status de destino
            trigger: Identificador do gatilho (ex: 'update_status', 'cancel')
            context: Contexto temporal para os guards
            metadata: Dados adicionais para auditoria (nunca PII)

        Returns:
            TransitionResult com sucesso/falha e dados da transição
        """
        allowed = self.get_valid_targets()

        if not is_transition_valid(self._current_state, target):
            valid = ", ".join(sorted(s.value for s in allowed)) or "nenhuma"
            return TransitionResult(
                success=False,
                error_kind=TransitionErrorKind.INVALID_TRANSITION,
                error_reason=(
                    f'Não é possível mudar o status de "{self._current_state.value}" '
                    f'para "{target.value}". Transições válidas: {valid}'
                ),
                allowed_targets=allowed,
            )

        guard_result: GuardResult = evaluate_guards(self._current_state, target, context)
        if not guard_result.allowed:
            return TransitionResult(
                success=False,
                error_kind=guard_result.kind,
                error_reason=guard_result.reason,
                allowed_targets=allowed,
            )

        transition = StateTransition(
            from_state=self._current_state,
            to_state=target,
            trigger=trigger,
            metadata=metadata or {},
            timestamp=context.now,
        )

        self._current_state = target
        self._history.append(transition)

        return TransitionResult(
            success=True,
            transition=transition,
            allowed_targets=allowed,
        )

    def get_state_summary(self) -> dict[str, Any]:
        """
        Retorna resumo do status atual para observability.

        Returns:
            Dict com informações do status (seguro para logs)
        """
        return {
            "session_id": self._session_id,
            "current_state": self._current_state.value,
            "is_terminal": self.is_terminal,
            "transition_count": len(self._history),
            "valid_targets": sorted(s.value for s in self.get_valid_targets()),
        }

    def get_history_summary(self) -> list[dict[str, Any]]:
        """Retorna histórico em formato seguro para logs."""
        return [t.to_log_dict() for t in self._history]


def create_fsm(
    session_id: str,
    initial_state: SessionStatus | None = None,
) -> SessionStateMachine:
    """
    Factory function para criar uma máquina de estados.

    Args:
        session_id: Identificador da sessão
        initial_state: Status inicial (opcional)

    Returns:
        SessionStateMachine configurada
    """
    return SessionStateMachine(
        initial_state=initial_state,
        session_id=session_id,
    )


INITIAL_STATES = frozenset({DEFAULT_INITIAL_STATE})
