"""Protocolos das tabelas de lembretes e solicitações de feedback.

Cada tabela é indexada pela chave composta do registro; só o scheduler
dono e o caminho de cancelamento/remarcação a modificam.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from app.domain.feedback import FeedbackKey, FeedbackRequest, FeedbackStatus
    from app.domain.reminder import ReminderKey, ScheduledReminder


class ReminderStoreProtocol(ABC):
    """Tabela de ScheduledReminder."""

    @abstractmethod
    async def upsert(self, reminder: ScheduledReminder) -> bool:
        """Insere ou substitui pelo key. Retorna True se era novo."""

    @abstractmethod
    async def list_due(self, now: datetime) -> list[ScheduledReminder]:
        """Lembretes não enviados com scheduled_for <= now, ordenados."""

    @abstractmethod
    async def list_all(self) -> list[ScheduledReminder]:
        """Todos os lembretes, ordenados por scheduled_for."""

    @abstractmethod
    async def mark_sent(
        self,
        key: ReminderKey,
        sent_at: datetime,
        *,
        suppressed: bool = False,
    ) -> None:
        """Marca o lembrete como enviado (ou consumido sem envio)."""

    @abstractmethod
    async def delete_unsent_for_session(self, session_id: str) -> int:
        """Remove lembretes não enviados da sessão. Retorna quantos."""

    @abstractmethod
    async def purge_sent_before(self, cutoff: datetime) -> int:
        """Remove enviados com scheduled_for < cutoff. Retorna quantos."""


class FeedbackRequestStoreProtocol(ABC):
    """Tabela de FeedbackRequest."""

    @abstractmethod
    async def upsert(self, request: FeedbackRequest) -> bool:
        """Insere ou substitui pelo key. Retorna True se era novo."""

    @abstractmethod
    async def list_for_session(self, session_id: str) -> list[FeedbackRequest]:
        """Todas as solicitações da sessão."""

    @abstractmethod
    async def list_due(self, now: datetime) -> list[FeedbackRequest]:
        """Pendentes com scheduled_at <= now, ordenadas por scheduled_at."""

    @abstractmethod
    async def list_all(self) -> list[FeedbackRequest]:
        """Todas as solicitações."""

    @abstractmethod
    async def update_status(
        self,
        key: FeedbackKey,
        status: FeedbackStatus,
        *,
        sent_at: datetime | None = None,
    ) -> None:
        """Atualiza status (e sent_at, quando informado)."""

    @abstractmethod
    async def delete_pending_for_session(self, session_id: str) -> int:
        """Remove pendentes da sessão. Retorna quantas."""

    @abstractmethod
    async def mark_opted_out(self, recipient_id: str) -> int:
        """Marca opted_out todas as pendentes do destinatário."""

    @abstractmethod
    async def purge(self, cutoff: datetime) -> int:
        """Remove completed/failed e qualquer uma com scheduled_at < cutoff."""


class FeedbackSubmissionLookupProtocol(ABC):
    """Consulta se o participante já enviou feedback da sessão."""

    @abstractmethod
    async def has_submitted(
        self,
        session_id: str,
        recipient_id: str,
        recipient_type: str,
    ) -> bool:
        """True se já existe feedback enviado."""
