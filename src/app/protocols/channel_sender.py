"""Protocolo dos transportes de entrega (email, sms, push, in-app)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from app.domain.preferences import NotificationChannel


@dataclass(frozen=True, slots=True)
class SendResult:
    """Resultado de um envio.

    Atributos:
        success: Se o transporte aceitou a mensagem
        message_id: Id do provider (quando houver)
        error: Descrição curta do erro (sem PII)
        retryable: Se vale tentar de novo
    """

    success: bool
    message_id: str | None = None
    error: str | None = None
    retryable: bool = True


class ChannelSenderProtocol(Protocol):
    """Contrato mínimo de envio por canal."""

    async def send(
        self,
        channel: NotificationChannel,
        address: str,
        subject: str,
        body: str,
    ) -> SendResult: ...
