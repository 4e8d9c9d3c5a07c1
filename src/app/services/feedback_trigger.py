"""Solicitações de feedback pós-sessão.

Ao concluir uma sessão, cria por participante uma solicitação inicial e
os lembretes de acompanhamento. O tick horário envia as devidas pela
DispatchQueue, fechando como `completed` as que já têm feedback
enviado. Opt-out desliga a preferência do destinatário e encerra as
pendentes.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from app.domain.feedback import FeedbackRequest, FeedbackStatus, FeedbackTriggerType
from app.domain.job import JobPriority
from app.services.clock import Clock, utc_now
from app.services.feedback_messaging import render_feedback_message
from app.services.reminder_scheduler import session_participants
from utils.errors import InvalidOptOutTokenError

if TYPE_CHECKING:
    from app.domain.recipient import RecipientType
    from app.domain.session import Session
    from app.protocols.opt_out import OptOutTokenCodecProtocol
    from app.protocols.scheduling_store import (
        FeedbackRequestStoreProtocol,
        FeedbackSubmissionLookupProtocol,
    )
    from app.services.notification_delivery import NotificationDispatcher
    from app.services.preference_resolver import PreferenceResolver
    from config.settings.feedback import ABTestGroup, FeedbackSettings

logger = logging.getLogger(__name__)

FEEDBACK_KIND = "feedback_request"
DEFAULT_RETENTION_DAYS = 7


class FeedbackTriggerEngine:
    """Dono da tabela de solicitações de feedback.

    Args:
        request_store: Tabela de FeedbackRequest
        submissions: Consulta de feedback já enviado
        resolver: PreferenceResolver
        dispatcher: Entrada de notificações na fila
        codec: Codec do token de opt-out
        settings: FeedbackSettings
        retention_days: Retenção de solicitações
        clock: Relógio UTC
        rng: Gerador do sorteio A/B (injetável em testes)
    """

    def __init__(
        self,
        *,
        request_store: FeedbackRequestStoreProtocol,
        submissions: FeedbackSubmissionLookupProtocol,
        resolver: PreferenceResolver,
        dispatcher: NotificationDispatcher,
        codec: OptOutTokenCodecProtocol,
        settings: FeedbackSettings,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self._store = request_store
        self._submissions = submissions
        self._resolver = resolver
        self._dispatcher = dispatcher
        self._codec = codec
        self._settings = settings
        self._retention = timedelta(days=retention_days)
        self._clock = clock
        self._rng = rng or random.Random()

    def select_ab_group(self) -> ABTestGroup | None:
        """Sorteia um grupo A/B ponderado (None com A/B desabilitado)."""
        groups = self._settings.ab_groups
        if not self._settings.ab_testing_enabled or not groups:
            return None
        weights = [group.percentage for group in groups]
        if sum(weights) <= 0:
            return None
        return self._rng.choices(groups, weights=weights, k=1)[0]

    async def on_session_completed(self, session: Session) -> list[FeedbackRequest]:
        """Cria as solicitações de feedback da sessão concluída.

        Idempotente por tipo de destinatário: quem já tem solicitação
        inicial não ganha outra.

        Returns:
            Solicitações criadas (inicial + lembretes).
        """
        existing = await self._store.list_for_session(session.session_id)
        requested = {
            request.recipient_type
            for request in existing
            if request.trigger_type is FeedbackTriggerType.INITIAL
        }
        completed_at = session.completed_at or self._clock()

        created: list[FeedbackRequest] = []
        for recipient_id, recipient_type in session_participants(session):
            if recipient_type in requested:
                continue
            prefs = await self._resolver.resolve(recipient_id)
            if not prefs.feedback_requests:
                logger.info(
                    "feedback_disabled_for_recipient",
                    extra={"session_id": session.session_id, "recipient_id": recipient_id},
                )
                continue
            created.extend(
                await self._create_requests(session, recipient_id, recipient_type, completed_at)
            )

        if not created and len(requested) == 2:
            logger.info(
                "feedback_already_requested",
                extra={"session_id": session.session_id},
            )
        else:
            logger.info(
                "feedback_requests_created",
                extra={"session_id": session.session_id, "count": len(created)},
            )
        return created

    async def _create_requests(
        self,
        session: Session,
        recipient_id: str,
        recipient_type: RecipientType,
        completed_at: datetime,
    ) -> list[FeedbackRequest]:
        group = self.select_ab_group()
        delay_hours = group.delay_hours if group else self._settings.initial_delay_hours

        requests = [
            FeedbackRequest(
                session_id=session.session_id,
                recipient_id=recipient_id,
                recipient_type=recipient_type,
                trigger_type=FeedbackTriggerType.INITIAL,
                scheduled_at=completed_at + timedelta(hours=delay_hours),
                ab_test_group=group.name if group else None,
            )
        ]
        intervals = self._settings.reminder_intervals_hours[: self._settings.reminder_count]
        for number, hours in enumerate(intervals, start=1):
            requests.append(
                FeedbackRequest(
                    session_id=session.session_id,
                    recipient_id=recipient_id,
                    recipient_type=recipient_type,
                    trigger_type=FeedbackTriggerType.REMINDER,
                    scheduled_at=completed_at + timedelta(hours=hours),
                    reminder_number=number,
                )
            )

        for request in requests:
            await self._store.upsert(request)
        return requests

    async def tick(self) -> int:
        """Processa solicitações pendentes devidas.

        Erro em uma solicitação a marca como `failed`, sem retry nesta
        camada.

        Returns:
            Quantidade de notificações enfileiradas.
        """
        now = self._clock()
        due = await self._store.list_due(now)
        dispatched = 0
        for request in due:
            try:
                if await self._process(request, now):
                    dispatched += 1
            except Exception as exc:
                logger.warning(
                    "feedback_request_failed",
                    extra={
                        "session_id": request.session_id,
                        "recipient_id": request.recipient_id,
                        "trigger_type": request.trigger_type.value,
                        "error_type": type(exc).__name__,
                    },
                )
                await self._store.update_status(request.key, FeedbackStatus.FAILED)
        logger.info(
            "feedback_tick_completed",
            extra={"due": len(due), "dispatched": dispatched},
        )
        return dispatched

    async def _process(self, request: FeedbackRequest, now: datetime) -> bool:
        submitted = await self._submissions.has_submitted(
            request.session_id, request.recipient_id, request.recipient_type.value
        )
        if submitted:
            await self._store.update_status(request.key, FeedbackStatus.COMPLETED)
            logger.info(
                "feedback_already_submitted",
                extra={"session_id": request.session_id, "recipient_id": request.recipient_id},
            )
            return False

        prefs = await self._resolver.resolve(request.recipient_id)
        if not prefs.feedback_requests:
            await self._store.update_status(request.key, FeedbackStatus.OPTED_OUT)
            return False
        if not prefs.channels:
            await self._store.update_status(request.key, FeedbackStatus.SENT, sent_at=now)
            logger.info(
                "feedback_suppressed_no_channels",
                extra={"session_id": request.session_id, "recipient_id": request.recipient_id},
            )
            return False

        message = render_feedback_message(request, self._settings, self._codec, now)
        await self._dispatcher.dispatch(
            prefs=prefs,
            recipient_type=request.recipient_type,
            channels=prefs.channels,
            subject=message.subject,
            body=message.body,
            kind=FEEDBACK_KIND,
            session_id=request.session_id,
            priority=JobPriority.HIGH if request.is_reminder else JobPriority.MEDIUM,
            metadata={
                "trigger_type": request.trigger_type.value,
                "reminder_number": request.reminder_number,
                "ab_test_group": request.ab_test_group,
            },
        )
        await self._store.update_status(request.key, FeedbackStatus.SENT, sent_at=now)
        return True

    async def handle_opt_out(self, token: str) -> bool:
        """Aplica o opt-out de um link de feedback.

        Returns:
            False para token inválido (nada é alterado).
        """
        try:
            claims = self._codec.decode(token)
        except InvalidOptOutTokenError:
            logger.warning("feedback_opt_out_invalid_token")
            return False

        await self._resolver.disable_feedback(claims.recipient_id)
        closed = await self._store.mark_opted_out(claims.recipient_id)
        logger.info(
            "feedback_opt_out_applied",
            extra={
                "session_id": claims.session_id,
                "recipient_id": claims.recipient_id,
                "requests_closed": closed,
            },
        )
        return True

    async def cancel_session_requests(self, session_id: str) -> int:
        """Remove as solicitações pendentes da sessão."""
        removed = await self._store.delete_pending_for_session(session_id)
        logger.info(
            "feedback_requests_cancelled",
            extra={"session_id": session_id, "count": removed},
        )
        return removed

    async def cleanup(self) -> int:
        """Remove completed/failed e solicitações além da retenção."""
        cutoff = self._clock() - self._retention
        removed = await self._store.purge(cutoff)
        logger.info("feedback_cleanup_completed", extra={"removed": removed})
        return removed

    async def list_requests(self, session_id: str | None = None) -> list[FeedbackRequest]:
        """Solicitações da tabela (opcionalmente filtradas por sessão)."""
        if session_id is not None:
            return await self._store.list_for_session(session_id)
        return await self._store.list_all()

    async def stats(self) -> dict[str, Any]:
        """Contadores por status para o endpoint operacional."""
        requests = await self._store.list_all()
        counts = Counter(request.status for request in requests)
        return {
            "total": len(requests),
            **{status.value: counts.get(status, 0) for status in FeedbackStatus},
        }
