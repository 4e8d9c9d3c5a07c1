"""Transporte em memória que registra cada envio."""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.preferences import NotificationChannel
from app.protocols.channel_sender import SendResult


@dataclass(frozen=True)
class SentMessage:
    channel: NotificationChannel
    address: str
    subject: str
    body: str


class RecordingChannelSender:
    """Implementa ChannelSenderProtocol sem IO.

    Canais em `failing_channels` retornam falha retryable.
    """

    def __init__(self, failing_channels: set[NotificationChannel] | None = None) -> None:
        self.sent: list[SentMessage] = []
        self.failing_channels = failing_channels or set()

    async def send(
        self,
        channel: NotificationChannel,
        address: str,
        subject: str,
        body: str,
    ) -> SendResult:
        if channel in self.failing_channels:
            return SendResult(success=False, error="canal indisponível")
        self.sent.append(SentMessage(channel, address, subject, body))
        return SendResult(success=True, message_id=f"msg-{len(self.sent)}")

    def to(self, address: str) -> list[SentMessage]:
        return [message for message in self.sent if message.address == address]
