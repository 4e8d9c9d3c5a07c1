"""
Tipos e estruturas de dados para transições de status.

Este módulo define os tipos usados para representar e rastrear
transições entre status de sessão.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fsm.states.session import SessionStatus
from utils.errors import TRANSITION_ERRORS, SessionTransitionError, TransitionErrorKind


@dataclass(frozen=True, slots=True)
class StateTransition:
    """
    Representa uma transição de status aceita.

    Registro imutável de uma mudança de status, incluindo:
    - Status de origem e destino
    - Gatilho que causou a transição
    - Metadados para auditoria (sem PII)
    - Timestamp da transição

    Attributes:
        from_state: Status de origem da transição
        to_state: Status de destino da transição
        trigger: Identificador do gatilho (ex: 'update_status', 'cancel')
        metadata: Dados adicionais para auditoria (nunca conter PII)
        timestamp: Momento da transição (UTC)
    """

    from_state: SessionStatus
    to_state: SessionStatus
    trigger: str
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(UTC)
    )

    def __post_init__(self) -> None:
        """Valida invariantes do objeto após inicialização."""
        if not self.trigger or not self.trigger.strip():
            raise ValueError("trigger não pode ser vazio")

    def to_log_dict(self) -> dict[str, Any]:
        """
        Retorna representação segura para logs (sem PII).

        Returns:
            Dict com dados seguros para logging estruturado
        """
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "trigger": self.trigger,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """
    Resultado de uma tentativa de transição.

    Attributes:
        success: Se a transição foi bem-sucedida
        transition: Dados da transição (se success=True)
        error_kind: Tipo do erro (se success=False)
        error_reason: Mensagem acionável (se success=False)
        allowed_targets: Destinos válidos a partir do status atual
    """

    success: bool
    transition: StateTransition | None = None
    error_kind: TransitionErrorKind | None = None
    error_reason: str | None = None
    allowed_targets: frozenset[SessionStatus] = frozenset()

    def __post_init__(self) -> None:
        """Valida consistência do resultado."""
        if self.success and self.transition is None:
            raise ValueError("Transição bem-sucedida deve incluir transition")
        if not self.success and (self.error_reason is None or self.error_kind is None):
            raise ValueError("Transição falha deve incluir error_kind e error_reason")

    def to_error(self) -> SessionTransitionError:
        """Converte uma falha na exceção específica do tipo do erro."""
        if self.success or self.error_kind is None:
            raise ValueError("Apenas resultados com falha podem virar exceção")
        error_cls = TRANSITION_ERRORS[self.error_kind]
        return error_cls(
            self.error_reason or "",
            allowed_targets=frozenset(s.value for s in self.allowed_targets),
        )
