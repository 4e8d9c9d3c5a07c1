"""Entrada e saída de notificações na DispatchQueue.

NotificationDispatcher admite jobs (aplicando quiet hours);
NotificationDeliveryHandler e EmailDeliveryHandler são os handlers das
categorias `notification` e `email`, que resolvem o destinatário e
chamam o transporte de cada canal.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from app.domain.job import Job, JobCategory, JobPriority
from app.domain.preferences import NotificationChannel
from app.domain.recipient import address_for
from app.observability.metrics import record_latency
from app.services.clock import Clock, utc_now
from app.services.preference_resolver import quiet_hours_end
from utils.errors import DispatchFailure, PermanentDispatchFailure

if TYPE_CHECKING:
    from collections.abc import Iterable

    from app.domain.recipient import RecipientType
    from app.protocols.channel_sender import ChannelSenderProtocol
    from app.protocols.recipient_directory import RecipientDirectoryProtocol
    from app.services.dispatch_queue import DispatchQueue
    from app.services.preference_resolver import ResolvedPreferences

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Admite notificações na fila respeitando quiet hours.

    Jobs com prioridade abaixo de `high` que cairiam na janela de
    silêncio do destinatário entram com atraso até o fim da janela.

    Args:
        queue: DispatchQueue
        clock: Relógio UTC
    """

    def __init__(self, queue: DispatchQueue, clock: Clock = utc_now) -> None:
        self._queue = queue
        self._clock = clock

    def _quiet_hours_delay(self, prefs: ResolvedPreferences, priority: JobPriority) -> float:
        if priority <= JobPriority.HIGH:
            return 0.0
        now = self._clock()
        window_end = quiet_hours_end(prefs.quiet_hours, now)
        if window_end is None:
            return 0.0
        return (window_end - now).total_seconds()

    async def dispatch(
        self,
        *,
        prefs: ResolvedPreferences,
        recipient_type: RecipientType,
        channels: Iterable[NotificationChannel],
        subject: str,
        body: str,
        kind: str,
        session_id: str,
        priority: JobPriority = JobPriority.MEDIUM,
        metadata: dict[str, Any] | None = None,
    ) -> Job:
        """Enfileira notificação multi-canal para um destinatário.

        Args:
            prefs: Preferências resolvidas do destinatário
            recipient_type: coach | client
            channels: Canais a usar
            subject: Assunto renderizado
            body: Corpo renderizado
            kind: Tipo da notificação (ex: 'session_reminder')
            session_id: Sessão de origem
            priority: Prioridade do job
            metadata: Ids adicionais para rastreio (sem PII)

        Returns:
            Job admitido.
        """
        delay = self._quiet_hours_delay(prefs, priority)
        if delay > 0:
            logger.info(
                "notification_deferred_quiet_hours",
                extra={
                    "session_id": session_id,
                    "recipient_id": prefs.user_id,
                    "kind": kind,
                    "delay_seconds": round(delay, 1),
                },
            )
        payload: dict[str, Any] = {
            "kind": kind,
            "session_id": session_id,
            "recipient_id": prefs.user_id,
            "recipient_type": str(recipient_type),
            "channels": sorted(str(channel) for channel in channels),
            "subject": subject,
            "body": body,
            "delivered_channels": [],
            "metadata": metadata or {},
        }
        return await self._queue.enqueue(
            JobCategory.NOTIFICATION,
            payload,
            priority=priority,
            delay_seconds=delay,
        )

    async def dispatch_email(
        self,
        *,
        recipient_id: str,
        subject: str,
        body: str,
        kind: str,
        session_id: str,
        priority: JobPriority = JobPriority.MEDIUM,
    ) -> Job:
        """Enfileira email direto (categoria `email`, sem quiet hours)."""
        payload = {
            "kind": kind,
            "session_id": session_id,
            "recipient_id": recipient_id,
            "subject": subject,
            "body": body,
        }
        return await self._queue.enqueue(JobCategory.EMAIL, payload, priority=priority)


class NotificationDeliveryHandler:
    """Handler da categoria `notification`.

    Canais entregues em tentativas anteriores ficam em
    `payload["delivered_channels"]` e não são reenviados. Qualquer canal
    com falha levanta DispatchFailure para a fila aplicar o retry;
    destinatário desconhecido é PermanentDispatchFailure.

    Args:
        directory: Diretório de destinatários
        sender: Transporte por canal
    """

    def __init__(
        self,
        directory: RecipientDirectoryProtocol,
        sender: ChannelSenderProtocol,
    ) -> None:
        self._directory = directory
        self._sender = sender

    async def __call__(self, job: Job) -> None:
        payload = job.payload
        recipient_id = payload["recipient_id"]
        recipient = await self._directory.get_recipient(recipient_id)
        if recipient is None:
            raise PermanentDispatchFailure(f"Destinatário desconhecido: {recipient_id}")

        delivered: list[str] = payload.setdefault("delivered_channels", [])
        failed: list[str] = []
        started = time.perf_counter()

        for channel_value in payload.get("channels", []):
            if channel_value in delivered:
                continue
            channel = NotificationChannel(channel_value)
            address = address_for(recipient, channel)
            if address is None:
                logger.info(
                    "notification_channel_unavailable",
                    extra={"recipient_id": recipient_id, "channel": channel_value},
                )
                delivered.append(channel_value)
                continue
            try:
                result = await self._sender.send(
                    channel, address, payload["subject"], payload["body"]
                )
            except Exception as exc:
                logger.warning(
                    "notification_channel_error",
                    extra={
                        "recipient_id": recipient_id,
                        "channel": channel_value,
                        "error_type": type(exc).__name__,
                    },
                )
                failed.append(channel_value)
                continue
            if result.success:
                delivered.append(channel_value)
            else:
                failed.append(channel_value)

        record_latency(
            "dispatch_queue", "notification_delivery", (time.perf_counter() - started) * 1000
        )
        if failed:
            raise DispatchFailure(f"Falha de entrega nos canais: {', '.join(failed)}")

        logger.info(
            "notification_delivered",
            extra={
                "job_id": job.job_id,
                "kind": payload.get("kind"),
                "session_id": payload.get("session_id"),
                "recipient_id": recipient_id,
                "channels": delivered,
            },
        )


class EmailDeliveryHandler:
    """Handler da categoria `email`: envio direto pelo canal de email."""

    def __init__(
        self,
        directory: RecipientDirectoryProtocol,
        sender: ChannelSenderProtocol,
    ) -> None:
        self._directory = directory
        self._sender = sender

    async def __call__(self, job: Job) -> None:
        payload = job.payload
        recipient = await self._directory.get_recipient(payload["recipient_id"])
        if recipient is None or not recipient.email:
            raise PermanentDispatchFailure(f"Email indisponível para {payload['recipient_id']}")
        result = await self._sender.send(
            NotificationChannel.EMAIL, recipient.email, payload["subject"], payload["body"]
        )
        if not result.success:
            raise DispatchFailure(f"Envio de email falhou: {result.error or 'erro desconhecido'}")
