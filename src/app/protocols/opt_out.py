"""Protocolo do codec de token de opt-out."""

from __future__ import annotations

from datetime import datetime
from typing import NamedTuple, Protocol


class OptOutClaims(NamedTuple):
    """Conteúdo decodificado do token."""

    session_id: str
    recipient_id: str
    issued_at: datetime


class OptOutTokenCodecProtocol(Protocol):
    """Codifica/decodifica tokens de opt-out de feedback."""

    def encode(self, session_id: str, recipient_id: str, timestamp: datetime) -> str: ...

    def decode(self, token: str) -> OptOutClaims:
        """Decodifica; levanta InvalidOptOutTokenError se inválido."""
        ...
