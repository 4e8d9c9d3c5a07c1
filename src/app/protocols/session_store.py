"""Protocolos de persistência de sessões e preferências.

Qualquer store durável que cumpra estas assinaturas serve ao núcleo.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.domain.preferences import NotificationPreferences
    from app.domain.session import Session


class SessionStoreProtocol(ABC):
    """Contrato assíncrono para armazenamento de sessões de coaching."""

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        """Retorna a sessão ou None se não existir."""

    @abstractmethod
    async def save(self, session: Session) -> None:
        """Cria ou substitui a sessão."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove a sessão. Retorna True se existia."""

    @abstractmethod
    async def find_coach_sessions(self, coach_id: str) -> list[Session]:
        """Lista todas as sessões de um coach."""


class PreferenceStoreProtocol(ABC):
    """Contrato assíncrono para preferências de notificação."""

    @abstractmethod
    async def get(self, user_id: str) -> NotificationPreferences | None:
        """Retorna as preferências ou None se o usuário não tem registro."""

    @abstractmethod
    async def save(self, preferences: NotificationPreferences) -> None:
        """Cria ou substitui as preferências do usuário."""
