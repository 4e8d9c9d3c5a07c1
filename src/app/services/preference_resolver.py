"""Resolução de preferências de notificação.

Transforma o registro persistido em uma visão pronta para os
schedulers: canais habilitados, antecedência dos lembretes e janela
de silêncio. Usuário sem registro recebe os defaults, que são gravados
no primeiro acesso.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from app.domain.preferences import NotificationChannel, NotificationPreferences, QuietHours
from app.services.clock import Clock, utc_now

if TYPE_CHECKING:
    from app.protocols.session_store import PreferenceStoreProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedPreferences:
    """Preferências efetivas de um destinatário.

    Atributos:
        user_id: Id do usuário
        channels: Canais habilitados
        reminder_hours_before: Antecedência do lembrete principal
        additional_reminder_hours: Antecedências extras
        multiple_reminders: Se as antecedências extras valem
        quiet_hours: Janela de silêncio (None quando desabilitada)
        session_reminders: Lembretes de sessão habilitados
        feedback_requests: Solicitações de feedback habilitadas
        session_confirmations: Confirmações de agendamento habilitadas
        session_cancellations: Avisos de cancelamento habilitados
        session_rescheduling: Avisos de remarcação habilitados
        language: Idioma preferido
    """

    user_id: str
    channels: frozenset[NotificationChannel]
    reminder_hours_before: int
    additional_reminder_hours: tuple[int, ...]
    multiple_reminders: bool
    quiet_hours: QuietHours | None
    session_reminders: bool
    feedback_requests: bool
    session_confirmations: bool = True
    session_cancellations: bool = True
    session_rescheduling: bool = True
    language: str = "en"

    def is_quiet_hour(self, instant: datetime) -> bool:
        """Atalho para is_quiet_hour com a janela deste destinatário."""
        return is_quiet_hour(self.quiet_hours, instant)

    @classmethod
    def from_preferences(cls, prefs: NotificationPreferences) -> ResolvedPreferences:
        """Constrói a visão efetiva a partir do registro."""
        timing = prefs.reminder_timing
        return cls(
            user_id=prefs.user_id,
            channels=prefs.channels.enabled(),
            reminder_hours_before=timing.hours_before,
            additional_reminder_hours=tuple(timing.additional_reminder_hours),
            multiple_reminders=timing.enable_multiple_reminders,
            quiet_hours=prefs.quiet_hours if prefs.quiet_hours.enabled else None,
            session_reminders=prefs.notification_types.session_reminders,
            feedback_requests=prefs.notification_types.feedback_requests,
            session_confirmations=prefs.notification_types.session_confirmations,
            session_cancellations=prefs.notification_types.session_cancellations,
            session_rescheduling=prefs.notification_types.session_rescheduling,
            language=prefs.language,
        )


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def is_quiet_hour(quiet_hours: QuietHours | None, instant: datetime) -> bool:
    """Verifica se o instante cai na janela [start, end) do destinatário.

    O instante é convertido para HH:MM no timezone da janela. Quando
    start > end a janela atravessa a meia-noite e a pertinência vira
    `t >= start or t < end`. start == end é janela vazia.
    """
    if quiet_hours is None or not quiet_hours.enabled:
        return False

    local = instant.astimezone(ZoneInfo(quiet_hours.timezone))
    current = time(local.hour, local.minute)
    start = _parse_hhmm(quiet_hours.start_time)
    end = _parse_hhmm(quiet_hours.end_time)

    if start == end:
        return False
    if start < end:
        return start <= current < end
    return current >= start or current < end


def quiet_hours_end(quiet_hours: QuietHours | None, instant: datetime) -> datetime | None:
    """Próximo instante (UTC) em que a janela de silêncio termina.

    Retorna None quando o instante não está em quiet hours.
    """
    if quiet_hours is None or not is_quiet_hour(quiet_hours, instant):
        return None

    tz = ZoneInfo(quiet_hours.timezone)
    local = instant.astimezone(tz)
    end = _parse_hhmm(quiet_hours.end_time)
    candidate = local.replace(hour=end.hour, minute=end.minute, second=0, microsecond=0)
    if candidate <= local:
        candidate += timedelta(days=1)
    return candidate.astimezone(UTC)


class PreferenceResolver:
    """Resolve e mantém preferências de notificação.

    Args:
        store: Store de preferências
        clock: Relógio UTC para updated_at
    """

    def __init__(self, store: PreferenceStoreProtocol, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def get_or_create(self, user_id: str) -> NotificationPreferences:
        """Retorna o registro do usuário, criando os defaults se não existir."""
        prefs = await self._store.get(user_id)
        if prefs is None:
            prefs = NotificationPreferences.defaults_for(user_id)
            await self._store.save(prefs)
            logger.info("preferences_created_with_defaults", extra={"user_id": user_id})
        return prefs

    async def resolve(self, user_id: str) -> ResolvedPreferences:
        """Visão efetiva das preferências do usuário."""
        return ResolvedPreferences.from_preferences(await self.get_or_create(user_id))

    async def disable_feedback(self, user_id: str) -> NotificationPreferences:
        """Desliga solicitações de feedback (usado pelo opt-out)."""
        prefs = await self.get_or_create(user_id)
        prefs.notification_types.feedback_requests = False
        prefs.updated_at = self._clock()
        await self._store.save(prefs)
        logger.info("feedback_requests_disabled", extra={"user_id": user_id})
        return prefs

    async def update(self, preferences: NotificationPreferences) -> NotificationPreferences:
        """Substitui o registro do usuário."""
        preferences.updated_at = self._clock()
        await self._store.save(preferences)
        return preferences
