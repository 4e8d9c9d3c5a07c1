"""
Guards temporais para transições de status.

Cada guard recebe origem, destino e o contexto temporal da sessão
(horário de início e "agora") e decide se a transição pode ocorrer.
Todos são puros: o relógio vem do contexto, nunca de datetime.now().
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fsm.states.session import SessionStatus
from utils.errors import TransitionErrorKind

# Cancelamentos exigem pelo menos 2h de antecedência
LATE_CANCELLATION_HOURS = 2
# Janela (para mais ou para menos) em que a sessão pode ser iniciada
IN_PROGRESS_WINDOW = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class TransitionContext:
    """
    Contexto temporal necessário para avaliar guards.

    Attributes:
        session_id: Identificador da sessão (apenas para mensagens/logs)
        start_at: Horário agendado de início (UTC, aware)
        now: Instante de referência da avaliação (UTC, aware)
    """

    session_id: str
    start_at: datetime
    now: datetime

    @property
    def hours_until_start(self) -> float:
        """Horas até o início (negativo se a sessão já começou)."""
        return (self.start_at - self.now).total_seconds() / 3600


class GuardResult:
    """
    Resultado da avaliação de um guard.

    Attributes:
        allowed: Se a transição é permitida
        kind: Tipo do erro (se allowed=False)
        reason: Mensagem acionável para o chamador (se allowed=False)
    """

    __slots__ = ("allowed", "kind", "reason")

    def __init__(
        self,
        allowed: bool,
        kind: TransitionErrorKind | None = None,
        reason: str | None = None,
    ) -> None:
        self.allowed = allowed
        self.kind = kind
        self.reason = reason

    @classmethod
    def allow(cls) -> GuardResult:
        """Cria resultado permitindo a transição."""
        return cls(allowed=True)

    @classmethod
    def deny(cls, kind: TransitionErrorKind, reason: str) -> GuardResult:
        """Cria resultado negando a transição."""
        return cls(allowed=False, kind=kind, reason=reason)


Guard = Callable[[SessionStatus, SessionStatus, TransitionContext], GuardResult]


def guard_future_completion(
    from_state: SessionStatus,
    to_state: SessionStatus,
    context: TransitionContext,
) -> GuardResult:
    """Guard: sessão só pode ser concluída no horário de início ou depois."""
    del from_state
    if to_state != SessionStatus.COMPLETED:
        return GuardResult.allow()
    if context.start_at > context.now:
        return GuardResult.deny(
            TransitionErrorKind.FUTURE_COMPLETION,
            (
                "Não é possível concluir uma sessão futura: agendada para "
                f"{context.start_at.isoformat()}, agora é {context.now.isoformat()}"
            ),
        )
    return GuardResult.allow()


def guard_skipped_in_progress(
    from_state: SessionStatus,
    to_state: SessionStatus,
    context: TransitionContext,
) -> GuardResult:
    """
    Guard: sessão pendente precisa passar por in-progress antes de concluir.

    Sessões do mesmo dia (UTC) podem ser concluídas diretamente.
    """
    if to_state != SessionStatus.COMPLETED or from_state != SessionStatus.PENDING:
        return GuardResult.allow()
    if context.start_at.astimezone(UTC).date() == context.now.astimezone(UTC).date():
        return GuardResult.allow()
    return GuardResult.deny(
        TransitionErrorKind.SKIPPED_IN_PROGRESS,
        "Marque a sessão como in-progress antes de concluí-la",
    )


def guard_in_progress_window(
    from_state: SessionStatus,
    to_state: SessionStatus,
    context: TransitionContext,
) -> GuardResult:
    """Guard: sessão só pode ser iniciada até 1 dia antes/depois do horário."""
    del from_state
    if to_state != SessionStatus.IN_PROGRESS:
        return GuardResult.allow()
    distance = abs(context.start_at - context.now)
    if distance > IN_PROGRESS_WINDOW:
        days = distance.total_seconds() / 86400
        return GuardResult.deny(
            TransitionErrorKind.OUT_OF_WINDOW,
            (
                "Data da sessão muito distante da data atual: "
                f"{days:.1f} dia(s) de diferença"
            ),
        )
    return GuardResult.allow()


def guard_late_cancellation(
    from_state: SessionStatus,
    to_state: SessionStatus,
    context: TransitionContext,
) -> GuardResult:
    """
    Guard: cancelamento proibido nas 2h que antecedem o início.

    Sessões que já começaram (ou passaram) podem ser canceladas.
    """
    if to_state != SessionStatus.CANCELLED or from_state == SessionStatus.CANCELLED:
        return GuardResult.allow()
    hours = context.hours_until_start
    if 0 < hours < LATE_CANCELLATION_HOURS:
        return GuardResult.deny(
            TransitionErrorKind.LATE_CANCELLATION,
            (
                f"Não é possível cancelar a menos de {LATE_CANCELLATION_HOURS} horas "
                f"do início (faltam {hours:.1f}h)"
            ),
        )
    return GuardResult.allow()


# Ordem de avaliação; o primeiro deny interrompe
DEFAULT_GUARDS: list[Guard] = [
    guard_future_completion,
    guard_skipped_in_progress,
    guard_in_progress_window,
    guard_late_cancellation,
]


def evaluate_guards(
    from_state: SessionStatus,
    to_state: SessionStatus,
    context: TransitionContext,
    guards: list[Guard] | None = None,
) -> GuardResult:
    """
    Avalia todos os guards para uma transição.

    Args:
        from_state: Status de origem
        to_state: Status de destino
        context: Contexto temporal da sessão
        guards: Lista de guards a aplicar (usa DEFAULT_GUARDS se None)

    Returns:
        GuardResult do primeiro guard que negar, ou allow() se todos passarem
    """
    guards_to_apply = guards if guards is not None else DEFAULT_GUARDS

    for guard in guards_to_apply:
        result = guard(from_state, to_state, context)
        if not result.allowed:
            return result

    return GuardResult.allow()
