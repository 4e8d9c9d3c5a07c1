"""Sender de desenvolvimento: registra o envio em log e retorna sucesso.

Não registra endereço nem corpo; apenas canal e tamanhos.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from app.protocols.channel_sender import SendResult

if TYPE_CHECKING:
    from app.domain.preferences import NotificationChannel

logger = logging.getLogger(__name__)


class LoggingChannelSender:
    """ChannelSenderProtocol que só loga (dev/test)."""

    def __init__(self) -> None:
        self.sent_count = 0

    async def send(
        self,
        channel: NotificationChannel,
        address: str,
        subject: str,
        body: str,
    ) -> SendResult:
        self.sent_count += 1
        message_id = uuid.uuid4().hex
        logger.info(
            "channel_message_logged",
            extra={
                "channel": str(channel),
                "message_id": message_id,
                "subject_length": len(subject),
                "body_length": len(body),
            },
        )
        return SendResult(success=True, message_id=message_id)
