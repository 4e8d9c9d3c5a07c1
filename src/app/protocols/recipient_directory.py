"""Protocolo do diretório de destinatários."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.domain.recipient import Recipient


class RecipientDirectoryProtocol(ABC):
    """Resolve um usuário em Coach | Client na fronteira de persistência."""

    @abstractmethod
    async def get_recipient(self, user_id: str) -> Recipient | None:
        """Retorna o destinatário ou None se desconhecido."""
