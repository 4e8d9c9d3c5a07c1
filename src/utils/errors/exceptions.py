"""Exceções de domínio do núcleo de agendamento.

Dois grupos:
- Erros de transição de sessão: voltados ao chamador, recuperáveis
  (o chamador escolhe outra ação). Carregam o tipo do erro e o conjunto
  de transições válidas a partir do estado atual.
- Falhas de infraestrutura: internas, registradas em log e nunca
  propagadas para quem solicitou a transição.
"""

from __future__ import annotations

from enum import StrEnum


class TransitionErrorKind(StrEnum):
    """Tipos de rejeição de transição de status."""

    INVALID_TRANSITION = "InvalidTransition"
    FUTURE_COMPLETION = "FutureCompletion"
    SKIPPED_IN_PROGRESS = "SkippedInProgress"
    OUT_OF_WINDOW = "OutOfWindow"
    LATE_CANCELLATION = "LateCancellation"
    SCHEDULING_CONFLICT = "SchedulingConflict"


class SessionTransitionError(Exception):
    """Base para transições rejeitadas pela máquina de estados."""

    kind: TransitionErrorKind = TransitionErrorKind.INVALID_TRANSITION

    def __init__(
        self,
        message: str,
        *,
        allowed_targets: frozenset[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.allowed_targets: frozenset[str] = allowed_targets or frozenset()

    def to_dict(self) -> dict[str, object]:
        """Representação estável para respostas de API e logs."""
        return {
            "error": str(self.kind),
            "message": self.message,
            "allowed_transitions": sorted(self.allowed_targets),
        }


class InvalidTransitionError(SessionTransitionError):
    """Par (origem, destino) ausente da tabela de transições."""

    kind = TransitionErrorKind.INVALID_TRANSITION


class FutureCompletionError(SessionTransitionError):
    """Sessão marcada como concluída antes do horário de início."""

    kind = TransitionErrorKind.FUTURE_COMPLETION


class SkippedInProgressError(SessionTransitionError):
    """Conclusão direta de sessão pendente fora do mesmo dia."""

    kind = TransitionErrorKind.SKIPPED_IN_PROGRESS


class OutOfWindowError(SessionTransitionError):
    """Início de sessão a mais de 1 dia do horário agendado."""

    kind = TransitionErrorKind.OUT_OF_WINDOW


class LateCancellationError(SessionTransitionError):
    """Cancelamento a menos de 2 horas do início."""

    kind = TransitionErrorKind.LATE_CANCELLATION


class SchedulingConflictError(SessionTransitionError):
    """Novo horário no passado ou em conflito com outra sessão do coach."""

    kind = TransitionErrorKind.SCHEDULING_CONFLICT


TRANSITION_ERRORS: dict[TransitionErrorKind, type[SessionTransitionError]] = {
    TransitionErrorKind.INVALID_TRANSITION: InvalidTransitionError,
    TransitionErrorKind.FUTURE_COMPLETION: FutureCompletionError,
    TransitionErrorKind.SKIPPED_IN_PROGRESS: SkippedInProgressError,
    TransitionErrorKind.OUT_OF_WINDOW: OutOfWindowError,
    TransitionErrorKind.LATE_CANCELLATION: LateCancellationError,
    TransitionErrorKind.SCHEDULING_CONFLICT: SchedulingConflictError,
}


class InvalidCancellationReasonError(ValueError):
    """Motivo de cancelamento fora do enum aceito."""


class SessionNotFoundError(LookupError):
    """Sessão inexistente no store."""


class InvalidOptOutTokenError(ValueError):
    """Token de opt-out malformado ou com assinatura inválida."""


class InfrastructureError(RuntimeError):
    """Base para falhas de infraestrutura transitórias."""


class RedisConnectionError(InfrastructureError):
    """Falha de conexão/timeout ao acessar Redis."""


class DispatchFailure(InfrastructureError):
    """Falha ao entregar um job; a fila aplica retry com backoff."""


class PermanentDispatchFailure(DispatchFailure):
    """Falha que nenhuma nova tentativa resolve; o job vai direto para a dead-letter."""


class SchedulingFailure(InfrastructureError):
    """Efeito colateral de agendamento falhou após transição aceita."""
