"""Ciclo de vida das sessões de coaching.

Único ponto que muta sessões. Cada mudança de status passa pela
SessionStateMachine (tabela + guards temporais); rejeições sobem ao
chamador como SessionTransitionError com o tipo e os destinos válidos.

Depois de persistir, os efeitos de agendamento (lembretes, feedback,
confirmação e avisos de mudança) rodam em modo best-effort: falhas viram log de
SchedulingFailure e a transição não é desfeita.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.domain.job import JobPriority
from app.domain.preferences import NotificationChannel
from app.domain.session import (
    DEFAULT_DURATION_MINUTES,
    CancellationReason,
    CancellationRecord,
    RescheduleRecord,
    Session,
)
from app.observability.metrics import record_transition
from app.services.clock import Clock, utc_now
from app.services.reminder_scheduler import session_participants
from config.logging import log_side_effect_failure
from fsm import (
    SessionStatus,
    TransitionContext,
    create_fsm,
    get_valid_targets,
    is_transition_valid,
)
from utils.errors import (
    InvalidCancellationReasonError,
    InvalidTransitionError,
    SchedulingConflictError,
    SchedulingFailure,
    SessionNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from app.protocols.session_store import SessionStoreProtocol
    from app.services.feedback_trigger import FeedbackTriggerEngine
    from app.services.notification_delivery import NotificationDispatcher
    from app.services.preference_resolver import PreferenceResolver
    from app.services.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

CONFIRMATION_KIND = "session_confirmed"
CANCELLATION_KIND = "session_cancelled"
RESCHEDULE_KIND = "session_rescheduled"

# Status que ocupam o horário do coach
_BLOCKING_STATES = frozenset(
    {SessionStatus.PENDING, SessionStatus.IN_PROGRESS, SessionStatus.RESCHEDULED}
)


def _format_start(start_at: datetime) -> str:
    return start_at.strftime("%Y-%m-%d %H:%M UTC")


class SessionLifecycle:
    """Aplica transições de status e dispara os efeitos de agendamento.

    Args:
        session_store: Store de sessões
        reminders: ReminderScheduler
        feedback: FeedbackTriggerEngine
        resolver: PreferenceResolver (avisos de mudança)
        dispatcher: Entrada de notificações na fila
        clock: Relógio UTC
    """

    def __init__(
        self,
        *,
        session_store: SessionStoreProtocol,
        reminders: ReminderScheduler,
        feedback: FeedbackTriggerEngine,
        resolver: PreferenceResolver,
        dispatcher: NotificationDispatcher,
        clock: Clock = utc_now,
    ) -> None:
        self._sessions = session_store
        self._reminders = reminders
        self._feedback = feedback
        self._resolver = resolver
        self._dispatcher = dispatcher
        self._clock = clock

    async def get_session(self, session_id: str) -> Session:
        """Carrega a sessão.

        Raises:
            SessionNotFoundError: Sessão inexistente.
        """
        session = await self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Sessão não encontrada: {session_id}")
        return session

    async def create_session(
        self,
        *,
        coach_id: str,
        client_id: str,
        start_at: datetime,
        session_id: str | None = None,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
        notes: str = "",
    ) -> Session:
        """Persiste uma sessão `pending`, agenda lembretes e envia a confirmação."""
        session = Session(
            session_id=session_id or uuid.uuid4().hex,
            coach_id=coach_id,
            client_id=client_id,
            start_at=start_at,
            duration_minutes=duration_minutes,
            notes=notes,
        )
        session.stamp(SessionStatus.PENDING, self._clock())
        await self._sessions.save(session)
        logger.info(
            "session_created",
            extra={"session_id": session.session_id, "coach_id": coach_id},
        )
        await self._best_effort(
            "schedule_session_reminders",
            session.session_id,
            lambda: self._reminders.schedule_session_reminders(session),
        )
        await self._best_effort(
            "notify_session_confirmed",
            session.session_id,
            lambda: self._notify_participants(
                session,
                kind=CONFIRMATION_KIND,
                subject="Coaching Session Confirmed",
                body=(
                    f"Your coaching session is confirmed for {_format_start(session.start_at)} "
                    f"({session.duration_minutes} minutes)."
                ),
                preference="session_confirmations",
            ),
        )
        return session

    async def update_status(
        self,
        session_id: str,
        new_status: SessionStatus | str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """Aplica uma mudança de status validada.

        Args:
            session_id: Sessão alvo
            new_status: Status de destino
            metadata: Dados de auditoria (sem PII)

        Returns:
            Sessão atualizada.

        Raises:
            SessionNotFoundError: Sessão inexistente.
            SessionTransitionError: Transição fora da tabela ou negada por guard.
        """
        session = await self.get_session(session_id)
        try:
            target = SessionStatus(new_status)
        except ValueError:
            allowed = frozenset(s.value for s in get_valid_targets(session.status))
            raise InvalidTransitionError(
                f"Status desconhecido: {new_status!r}",
                allowed_targets=allowed,
            ) from None
        previous = self._apply_transition(session, target, "update_status", metadata)
        await self._sessions.save(session)
        await self._after_transition(session, previous)
        return session

    def _apply_transition(
        self,
        session: Session,
        target: SessionStatus,
        trigger: str,
        metadata: dict[str, Any] | None = None,
    ) -> SessionStatus:
        """Valida e aplica a transição na sessão (sem persistir).

        Returns:
            Status anterior.
        """
        now = self._clock()
        previous = session.status
        machine = create_fsm(session.session_id, previous)
        context = TransitionContext(
            session_id=session.session_id,
            start_at=session.start_at,
            now=now,
        )
        result = machine.transition(target, trigger, context, metadata)
        record_transition(
            previous.value,
            target.value,
            accepted=result.success,
            error_kind=result.error_kind.value if result.error_kind else None,
        )
        if not result.success:
            logger.info(
                "session_transition_rejected",
                extra={
                    "session_id": session.session_id,
                    "from_state": previous.value,
                    "to_state": target.value,
                    "error_kind": result.error_kind.value if result.error_kind else None,
                },
            )
            raise result.to_error()

        session.stamp(target, now)
        if result.transition is not None:
            logger.info(
                "session_status_changed",
                extra={"session_id": session.session_id, **result.transition.to_log_dict()},
            )
        return previous

    async def _after_transition(self, session: Session, previous: SessionStatus) -> None:
        session_id = session.session_id
        if session.status is SessionStatus.CANCELLED:
            await self._cancel_scheduled_work(session_id)
        elif previous is SessionStatus.CANCELLED and session.status is SessionStatus.PENDING:
            await self._best_effort(
                "schedule_session_reminders",
                session_id,
                lambda: self._reminders.schedule_session_reminders(session),
            )
        elif session.status is SessionStatus.COMPLETED:
            await self._best_effort(
                "on_session_completed",
                session_id,
                lambda: self._feedback.on_session_completed(session),
            )

    async def _cancel_scheduled_work(self, session_id: str) -> None:
        await self._best_effort(
            "cancel_session_reminders",
            session_id,
            lambda: self._reminders.cancel_session_reminders(session_id),
        )
        await self._best_effort(
            "cancel_session_requests",
            session_id,
            lambda: self._feedback.cancel_session_requests(session_id),
        )

    async def _best_effort(
        self,
        operation: str,
        session_id: str,
        action: Callable[[], Awaitable[Any]],
    ) -> None:
        try:
            await action()
        except Exception as exc:
            failure = SchedulingFailure(f"{operation} falhou para a sessão {session_id}")
            failure.__cause__ = exc
            log_side_effect_failure(
                logger,
                operation,
                failure,
                session_id=session_id,
                cause_type=type(exc).__name__,
            )

    async def cancel_session(
        self,
        session_id: str,
        reason: CancellationReason | str,
        *,
        cancelled_by: str,
        reason_text: str = "",
    ) -> Session:
        """Cancela a sessão registrando motivo e autor.

        Raises:
            InvalidCancellationReasonError: Motivo fora do enum.
            SessionNotFoundError: Sessão inexistente.
            SessionTransitionError: Transição negada (ex: LateCancellation).
        """
        try:
            cancellation_reason = CancellationReason(reason)
        except ValueError:
            valid = ", ".join(r.value for r in CancellationReason)
            raise InvalidCancellationReasonError(
                f"Motivo de cancelamento inválido: {reason!r}. Válidos: {valid}"
            ) from None

        session = await self.get_session(session_id)
        previous = self._apply_transition(
            session,
            SessionStatus.CANCELLED,
            "cancel",
            {"reason": cancellation_reason.value},
        )
        session.cancellation = CancellationRecord(
            reason=cancellation_reason,
            reason_text=reason_text,
            cancelled_by=cancelled_by,
            cancelled_at=self._clock(),
        )
        await self._sessions.save(session)
        await self._after_transition(session, previous)
        await self._best_effort(
            "notify_session_cancelled",
            session_id,
            lambda: self._notify_participants(
                session,
                kind=CANCELLATION_KIND,
                subject="Coaching Session Cancelled",
                body=(
                    f"Your coaching session scheduled for {_format_start(session.start_at)} "
                    f"has been cancelled. Reason: {cancellation_reason.value}."
                ),
                preference="session_cancellations",
            ),
        )
        return session

    async def reschedule_session(
        self,
        session_id: str,
        new_start: datetime,
        *,
        rescheduled_by: str,
        reason: str = "",
    ) -> Session:
        """Remarca a sessão para `new_start`.

        Sessão já remarcada continua `rescheduled`; o registro preserva a
        data original da primeira remarcação e acumula o contador.

        Raises:
            SessionNotFoundError: Sessão inexistente.
            SchedulingConflictError: Novo horário não futuro ou ocupado pelo coach.
            SessionTransitionError: Transição negada pela tabela.
        """
        if new_start.tzinfo is None:
            raise ValueError("new_start deve ser timezone-aware")

        session = await self.get_session(session_id)
        if session.status is not SessionStatus.RESCHEDULED and not is_transition_valid(
            session.status, SessionStatus.RESCHEDULED
        ):
            self._apply_transition(session, SessionStatus.RESCHEDULED, "reschedule")
        await self._check_conflicts(session, new_start)

        previous = session.status
        if previous is SessionStatus.RESCHEDULED:
            session.stamp(SessionStatus.RESCHEDULED, self._clock())
        else:
            self._apply_transition(session, SessionStatus.RESCHEDULED, "reschedule")

        old_start = session.start_at
        prior = session.reschedule
        session.reschedule = RescheduleRecord(
            original_date=prior.original_date if prior else old_start,
            rescheduled_by=rescheduled_by,
            rescheduled_at=self._clock(),
            reason=reason,
            reschedule_count=(prior.reschedule_count + 1) if prior else 1,
        )
        session.start_at = new_start
        await self._sessions.save(session)
        logger.info(
            "session_rescheduled",
            extra={
                "session_id": session_id,
                "reschedule_count": session.reschedule.reschedule_count,
            },
        )

        await self._best_effort(
            "reschedule_session_reminders",
            session_id,
            lambda: self._reminders.reschedule_session_reminders(session),
        )
        await self._best_effort(
            "notify_session_rescheduled",
            session_id,
            lambda: self._notify_participants(
                session,
                kind=RESCHEDULE_KIND,
                subject="Coaching Session Rescheduled",
                body=(
                    f"Your coaching session originally scheduled for {_format_start(old_start)} "
                    f"has been moved to {_format_start(new_start)}."
                ),
                preference="session_rescheduling",
            ),
        )
        return session

    async def _check_conflicts(self, session: Session, new_start: datetime) -> None:
        allowed = frozenset(s.value for s in get_valid_targets(session.status))
        if new_start <= self._clock():
            record_transition(
                session.status.value,
                SessionStatus.RESCHEDULED.value,
                accepted=False,
                error_kind=SchedulingConflictError.kind.value,
            )
            raise SchedulingConflictError(
                "O novo horário deve estar no futuro",
                allowed_targets=allowed,
            )

        for other in await self._sessions.find_coach_sessions(session.coach_id):
            if (
                other.session_id != session.session_id
                and other.status in _BLOCKING_STATES
                and other.start_at == new_start
            ):
                record_transition(
                    session.status.value,
                    SessionStatus.RESCHEDULED.value,
                    accepted=False,
                    error_kind=SchedulingConflictError.kind.value,
                )
                raise SchedulingConflictError(
                    "O coach já possui uma sessão nesse horário",
                    allowed_targets=allowed,
                )

    async def _notify_participants(
        self,
        session: Session,
        *,
        kind: str,
        subject: str,
        body: str,
        preference: str,
    ) -> None:
        """Envia aviso de mudança por email a quem tem o tipo habilitado."""
        for recipient_id, _ in session_participants(session):
            prefs = await self._resolver.resolve(recipient_id)
            if not getattr(prefs, preference) or NotificationChannel.EMAIL not in prefs.channels:
                continue
            await self._dispatcher.dispatch_email(
                recipient_id=recipient_id,
                subject=subject,
                body=body,
                kind=kind,
                session_id=session.session_id,
                priority=JobPriority.HIGH,
            )

    async def delete_session(self, session_id: str) -> bool:
        """Remove a sessão após cancelar lembretes e feedback pendentes.

        Raises:
            SessionNotFoundError: Sessão inexistente.
        """
        await self.get_session(session_id)
        await self._cancel_scheduled_work(session_id)
        deleted = await self._sessions.delete(session_id)
        logger.info("session_deleted", extra={"session_id": session_id})
        return deleted
