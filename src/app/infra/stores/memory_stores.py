"""Stores em memória — apenas para desenvolvimento e testes.

ATENÇÃO: Não usar em staging/production. Lembretes e solicitações
pendentes se perdem no restart.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from app.domain.feedback import FeedbackRequest, FeedbackStatus
from app.domain.reminder import ScheduledReminder
from app.domain.session import Session
from app.protocols.recipient_directory import RecipientDirectoryProtocol
from app.protocols.scheduling_store import (
    FeedbackRequestStoreProtocol,
    FeedbackSubmissionLookupProtocol,
    ReminderStoreProtocol,
)
from app.protocols.session_store import PreferenceStoreProtocol, SessionStoreProtocol

if TYPE_CHECKING:
    from datetime import datetime

    from app.domain.feedback import FeedbackKey
    from app.domain.preferences import NotificationPreferences
    from app.domain.recipient import Recipient
    from app.domain.reminder import ReminderKey

_PURGEABLE_FEEDBACK = frozenset({FeedbackStatus.COMPLETED, FeedbackStatus.FAILED})


class MemorySessionStore(SessionStoreProtocol):
    """Store de sessões em memória — apenas para dev/test.

    Guarda a forma serializada para que mutações do chamador não
    vazem para o store sem um save explícito.
    """

    def __init__(self) -> None:
        self._store: dict[str, dict] = {}

    async def get(self, session_id: str) -> Session | None:
        data = self._store.get(session_id)
        return Session.from_dict(data) if data is not None else None

    async def save(self, session: Session) -> None:
        self._store[session.session_id] = session.to_dict()

    async def delete(self, session_id: str) -> bool:
        return self._store.pop(session_id, None) is not None

    async def find_coach_sessions(self, coach_id: str) -> list[Session]:
        return [
            Session.from_dict(data)
            for data in self._store.values()
            if data["coach_id"] == coach_id
        ]


class MemoryPreferenceStore(PreferenceStoreProtocol):
    """Store de preferências em memória — apenas para dev/test."""

    def __init__(self) -> None:
        self._store: dict[str, NotificationPreferences] = {}

    async def get(self, user_id: str) -> NotificationPreferences | None:
        prefs = self._store.get(user_id)
        return prefs.model_copy(deep=True) if prefs is not None else None

    async def save(self, preferences: NotificationPreferences) -> None:
        self._store[preferences.user_id] = preferences.model_copy(deep=True)


class MemoryReminderStore(ReminderStoreProtocol):
    """Tabela de lembretes em memória indexada por (sessão, destinatário, horário)."""

    def __init__(self) -> None:
        self._rows: dict[ReminderKey, ScheduledReminder] = {}

    async def upsert(self, reminder: ScheduledReminder) -> bool:
        is_new = reminder.key not in self._rows
        self._rows[reminder.key] = replace(reminder)
        return is_new

    async def list_due(self, now: datetime) -> list[ScheduledReminder]:
        due = [r for r in self._rows.values() if not r.sent and r.scheduled_for <= now]
        return [replace(r) for r in sorted(due, key=lambda r: r.scheduled_for)]

    async def list_all(self) -> list[ScheduledReminder]:
        return [replace(r) for r in sorted(self._rows.values(), key=lambda r: r.scheduled_for)]

    async def mark_sent(
        self,
        key: ReminderKey,
        sent_at: datetime,
        *,
        suppressed: bool = False,
    ) -> None:
        row = self._rows.get(key)
        if row is None:
            return
        row.sent = True
        row.sent_at = sent_at
        row.suppressed = suppressed

    async def delete_unsent_for_session(self, session_id: str) -> int:
        keys = [k for k, r in self._rows.items() if r.session_id == session_id and not r.sent]
        for key in keys:
            del self._rows[key]
        return len(keys)

    async def purge_sent_before(self, cutoff: datetime) -> int:
        keys = [k for k, r in self._rows.items() if r.sent and r.scheduled_for < cutoff]
        for key in keys:
            del self._rows[key]
        return len(keys)


class MemoryFeedbackRequestStore(FeedbackRequestStoreProtocol):
    """Tabela de solicitações de feedback em memória."""

    def __init__(self) -> None:
        self._rows: dict[FeedbackKey, FeedbackRequest] = {}

    async def upsert(self, request: FeedbackRequest) -> bool:
        is_new = request.key not in self._rows
        self._rows[request.key] = replace(request)
        return is_new

    async def list_for_session(self, session_id: str) -> list[FeedbackRequest]:
        return [replace(r) for r in self._rows.values() if r.session_id == session_id]

    async def list_due(self, now: datetime) -> list[FeedbackRequest]:
        due = [
            r
            for r in self._rows.values()
            if r.status is FeedbackStatus.PENDING and r.scheduled_at <= now
        ]
        return [replace(r) for r in sorted(due, key=lambda r: r.scheduled_at)]

    async def list_all(self) -> list[FeedbackRequest]:
        return [replace(r) for r in sorted(self._rows.values(), key=lambda r: r.scheduled_at)]

    async def update_status(
        self,
        key: FeedbackKey,
        status: FeedbackStatus,
        *,
        sent_at: datetime | None = None,
    ) -> None:
        row = self._rows.get(key)
        if row is None:
            return
        row.status = status
        if sent_at is not None:
            row.sent_at = sent_at

    async def delete_pending_for_session(self, session_id: str) -> int:
        keys = [
            k
            for k, r in self._rows.items()
            if r.session_id == session_id and r.status is FeedbackStatus.PENDING
        ]
        for key in keys:
            del self._rows[key]
        return len(keys)

    async def mark_opted_out(self, recipient_id: str) -> int:
        count = 0
        for row in self._rows.values():
            if row.recipient_id == recipient_id and row.status is FeedbackStatus.PENDING:
                row.status = FeedbackStatus.OPTED_OUT
                count += 1
        return count

    async def purge(self, cutoff: datetime) -> int:
        keys = [
            k
            for k, r in self._rows.items()
            if r.status in _PURGEABLE_FEEDBACK or r.scheduled_at < cutoff
        ]
        for key in keys:
            del self._rows[key]
        return len(keys)


class MemoryFeedbackSubmissionLookup(FeedbackSubmissionLookupProtocol):
    """Registro de feedbacks enviados — apenas para dev/test."""

    def __init__(self) -> None:
        self._submitted: set[tuple[str, str, str]] = set()

    def record_submission(self, session_id: str, recipient_id: str, recipient_type: str) -> None:
        """Registra feedback enviado (usado por testes e dev)."""
        self._submitted.add((session_id, recipient_id, str(recipient_type)))

    async def has_submitted(
        self,
        session_id: str,
        recipient_id: str,
        recipient_type: str,
    ) -> bool:
        return (session_id, recipient_id, str(recipient_type)) in self._submitted


class MemoryRecipientDirectory(RecipientDirectoryProtocol):
    """Diretório de destinatários em memória — apenas para dev/test."""

    def __init__(self, recipients: list[Recipient] | None = None) -> None:
        self._recipients: dict[str, Recipient] = {}
        for recipient in recipients or []:
            self.register(recipient)

    def register(self, recipient: Recipient) -> None:
        """Adiciona ou substitui um destinatário."""
        self._recipients[recipient.user_id] = recipient

    async def get_recipient(self, user_id: str) -> Recipient | None:
        return self._recipients.get(user_id)
