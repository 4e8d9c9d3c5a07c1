"""Agendamento e envio de lembretes de sessão.

Para cada sessão (re)agendada calcula, por destinatário, os instantes
de lembrete a partir das preferências e grava na tabela de lembretes.
O tick periódico envia os devidos pela DispatchQueue, revalidando o
status da sessão imediatamente antes do envio: cancelar é idempotente
mesmo que a remoção dos lembretes ainda não tenha sido observada.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from app.domain.job import JobPriority
from app.domain.recipient import RecipientType
from app.domain.reminder import ScheduledReminder
from app.services.clock import Clock, utc_now
from fsm.states import SessionStatus

if TYPE_CHECKING:
    from app.domain.session import Session
    from app.protocols.scheduling_store import ReminderStoreProtocol
    from app.protocols.session_store import SessionStoreProtocol
    from app.services.notification_delivery import NotificationDispatcher
    from app.services.preference_resolver import PreferenceResolver, ResolvedPreferences

logger = logging.getLogger(__name__)

REMINDER_KIND = "session_reminder"
REMINDER_SUBJECT = "Upcoming Coaching Session Reminder"
DEFAULT_RETENTION_DAYS = 7


def compute_reminder_times(
    start_at: datetime,
    prefs: ResolvedPreferences,
    now: datetime,
) -> list[datetime]:
    """Instantes de lembrete futuros, sem duplicatas, em ordem crescente.

    Principal = start_at - hours_before; com múltiplos lembretes
    habilitados, soma start_at - h para cada hora adicional.
    """
    hours = {prefs.reminder_hours_before}
    if prefs.multiple_reminders:
        hours.update(prefs.additional_reminder_hours)
    times = {start_at - timedelta(hours=h) for h in hours}
    return sorted(t for t in times if t > now)


def session_participants(session: Session) -> list[tuple[str, RecipientType]]:
    """Destinatários de uma sessão: coach e cliente."""
    return [
        (session.coach_id, RecipientType.COACH),
        (session.client_id, RecipientType.CLIENT),
    ]


def render_reminder(session: Session) -> tuple[str, str]:
    """Assunto e corpo do lembrete (sem dados pessoais)."""
    when = session.start_at.strftime("%Y-%m-%d %H:%M UTC")
    body = (
        f"This is a reminder that you have a coaching session at {when} "
        f"({session.duration_minutes} minutes)."
    )
    return REMINDER_SUBJECT, body


class ReminderScheduler:
    """Dono da tabela de lembretes.

    Args:
        reminder_store: Tabela de lembretes
        session_store: Store de sessões (revalidação no tick)
        resolver: PreferenceResolver
        dispatcher: Entrada de notificações na fila
        retention_days: Retenção de lembretes enviados
        clock: Relógio UTC
    """

    def __init__(
        self,
        *,
        reminder_store: ReminderStoreProtocol,
        session_store: SessionStoreProtocol,
        resolver: PreferenceResolver,
        dispatcher: NotificationDispatcher,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Clock = utc_now,
    ) -> None:
        self._store = reminder_store
        self._sessions = session_store
        self._resolver = resolver
        self._dispatcher = dispatcher
        self._retention = timedelta(days=retention_days)
        self._clock = clock

    async def schedule_session_reminders(self, session: Session) -> list[ScheduledReminder]:
        """Grava os lembretes de coach e cliente da sessão.

        Destinatários com lembretes de sessão desabilitados são pulados.

        Returns:
            Lembretes gravados.
        """
        now = self._clock()
        created: list[ScheduledReminder] = []
        for recipient_id, recipient_type in session_participants(session):
            prefs = await self._resolver.resolve(recipient_id)
            if not prefs.session_reminders:
                logger.debug(
                    "reminders_disabled_for_recipient",
                    extra={"session_id": session.session_id, "recipient_id": recipient_id},
                )
                continue
            for scheduled_for in compute_reminder_times(session.start_at, prefs, now):
                reminder = ScheduledReminder(
                    session_id=session.session_id,
                    recipient_id=recipient_id,
                    recipient_type=recipient_type,
                    scheduled_for=scheduled_for,
                )
                await self._store.upsert(reminder)
                created.append(reminder)

        logger.info(
            "session_reminders_scheduled",
            extra={"session_id": session.session_id, "count": len(created)},
        )
        return created

    async def cancel_session_reminders(self, session_id: str) -> int:
        """Remove os lembretes ainda não enviados da sessão."""
        removed = await self._store.delete_unsent_for_session(session_id)
        logger.info(
            "session_reminders_cancelled",
            extra={"session_id": session_id, "count": removed},
        )
        return removed

    async def reschedule_session_reminders(self, session: Session) -> list[ScheduledReminder]:
        """Cancela os pendentes e agenda de novo a partir do início atual."""
        await self.cancel_session_reminders(session.session_id)
        return await self.schedule_session_reminders(session)

    async def tick(self) -> int:
        """Processa lembretes devidos em ordem de scheduled_for.

        Um lembrete que falha fica não enviado para o próximo tick.

        Returns:
            Quantidade de notificações enfileiradas.
        """
        now = self._clock()
        due = await self._store.list_due(now)
        dispatched = 0
        for reminder in due:
            try:
                if await self._process(reminder, now):
                    dispatched += 1
            except Exception as exc:
                logger.warning(
                    "reminder_processing_failed",
                    extra={
                        "session_id": reminder.session_id,
                        "recipient_id": reminder.recipient_id,
                        "error_type": type(exc).__name__,
                    },
                )
        logger.info(
            "reminder_tick_completed",
            extra={"due": len(due), "dispatched": dispatched},
        )
        return dispatched

    async def _process(self, reminder: ScheduledReminder, now: datetime) -> bool:
        session = await self._sessions.get(reminder.session_id)
        if session is None or session.status is SessionStatus.CANCELLED:
            await self._store.mark_sent(reminder.key, now, suppressed=True)
            logger.info(
                "reminder_suppressed_inactive_session",
                extra={
                    "session_id": reminder.session_id,
                    "session_found": session is not None,
                },
            )
            return False

        prefs = await self._resolver.resolve(reminder.recipient_id)
        channels = prefs.channels if prefs.session_reminders else frozenset()
        if not channels:
            await self._store.mark_sent(reminder.key, now, suppressed=True)
            logger.info(
                "reminder_suppressed_no_channels",
                extra={"session_id": reminder.session_id, "recipient_id": reminder.recipient_id},
            )
            return False

        subject, body = render_reminder(session)
        await self._dispatcher.dispatch(
            prefs=prefs,
            recipient_type=reminder.recipient_type,
            channels=channels,
            subject=subject,
            body=body,
            kind=REMINDER_KIND,
            session_id=session.session_id,
            priority=JobPriority.MEDIUM,
            metadata={"scheduled_for": reminder.scheduled_for.isoformat()},
        )
        await self._store.mark_sent(reminder.key, now)
        return True

    async def cleanup(self) -> int:
        """Remove lembretes enviados mais antigos que a retenção."""
        cutoff = self._clock() - self._retention
        removed = await self._store.purge_sent_before(cutoff)
        logger.info("reminder_cleanup_completed", extra={"removed": removed})
        return removed

    async def list_reminders(self, session_id: str | None = None) -> list[ScheduledReminder]:
        """Lembretes da tabela (opcionalmente filtrados por sessão)."""
        reminders = await self._store.list_all()
        if session_id is not None:
            reminders = [r for r in reminders if r.session_id == session_id]
        return reminders

    async def stats(self) -> dict[str, Any]:
        """Contadores para o endpoint operacional."""
        now = self._clock()
        reminders = await self._store.list_all()
        pending = [r for r in reminders if not r.sent]
        return {
            "total": len(reminders),
            "pending": len(pending),
            "sent": sum(1 for r in reminders if r.sent),
            "suppressed": sum(1 for r in reminders if r.suppressed),
            "upcoming_24h": sum(
                1 for r in pending if now <= r.scheduled_for <= now + timedelta(hours=24)
            ),
        }
