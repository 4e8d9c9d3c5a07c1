"""Tabelas de lembretes e feedback em Redis.

Os registros pendentes sobrevivem a restarts do processo. Layout por
tabela:

    <prefix>rows                 HASH  member -> JSON do registro
    <prefix>due                  ZSET  members ainda não processados, score = epoch
    <prefix>session:<id>         SET   members da sessão
    feedback:recipient:<id>      SET   members do destinatário (só feedback)

O member é a chave composta do registro unida por "|". Ids nunca
carregam PII.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from app.domain.feedback import FeedbackRequest, FeedbackStatus
from app.domain.reminder import ScheduledReminder
from app.protocols.scheduling_store import FeedbackRequestStoreProtocol, ReminderStoreProtocol
from utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from datetime import datetime

    from redis.asyncio import Redis as AsyncRedis

    from app.domain.feedback import FeedbackKey
    from app.domain.reminder import ReminderKey

logger = logging.getLogger(__name__)

REMINDER_PREFIX = "reminders:"
FEEDBACK_PREFIX = "feedback:"

_PURGEABLE_FEEDBACK = frozenset({FeedbackStatus.COMPLETED, FeedbackStatus.FAILED})


def reminder_member(key: ReminderKey) -> str:
    """Member Redis de um lembrete."""
    session_id, recipient_id, scheduled_for = key
    return f"{session_id}|{recipient_id}|{scheduled_for.isoformat()}"


def feedback_member(key: FeedbackKey) -> str:
    """Member Redis de uma solicitação de feedback."""
    session_id, recipient_id, trigger_type, reminder_number = key
    return f"{session_id}|{recipient_id}|{trigger_type}|{reminder_number}"


class _RedisTable:
    """Operações comuns às duas tabelas."""

    def __init__(self, redis_client: AsyncRedis, prefix: str) -> None:
        self._redis = redis_client
        self._prefix = prefix

    @property
    def _rows_key(self) -> str:
        return f"{self._prefix}rows"

    @property
    def _due_key(self) -> str:
        return f"{self._prefix}due"

    def _session_key(self, session_id: str) -> str:
        return f"{self._prefix}session:{session_id}"

    async def _load(self, members: list[Any]) -> list[tuple[Any, dict[str, Any]]]:
        """Carrega (member, dados) preservando a ordem e ignorando ausentes."""
        if not members:
            return []
        raw_rows = await self._redis.hmget(self._rows_key, members)
        return [
            (member, json.loads(raw))
            for member, raw in zip(members, raw_rows, strict=True)
            if raw is not None
        ]

    async def _all_rows(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in await self._redis.hvals(self._rows_key)]


class RedisReminderStore(_RedisTable, ReminderStoreProtocol):
    """Tabela de ScheduledReminder em Redis.

    Args:
        redis_client: Cliente Redis assíncrono
        prefix: Namespace das chaves
    """

    def __init__(self, redis_client: AsyncRedis, prefix: str = REMINDER_PREFIX) -> None:
        super().__init__(redis_client, prefix)

    async def upsert(self, reminder: ScheduledReminder) -> bool:
        member = reminder_member(reminder.key)
        try:
            existed = await self._redis.hexists(self._rows_key, member)
            pipeline = self._redis.pipeline()
            pipeline.hset(self._rows_key, member, json.dumps(reminder.to_dict()))
            if reminder.sent:
                pipeline.zrem(self._due_key, member)
            else:
                pipeline.zadd(self._due_key, {member: reminder.scheduled_for.timestamp()})
            pipeline.sadd(self._session_key(reminder.session_id), member)
            await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao gravar lembrete no Redis") from exc
        return not existed

    async def list_due(self, now: datetime) -> list[ScheduledReminder]:
        try:
            members = await self._redis.zrangebyscore(self._due_key, "-inf", now.timestamp())
            loaded = await self._load(list(members))
        except RedisError as exc:
            raise RedisConnectionError("Falha ao listar lembretes devidos no Redis") from exc
        rows = [ScheduledReminder.from_dict(data) for _, data in loaded]
        due = [r for r in rows if not r.sent and r.scheduled_for <= now]
        return sorted(due, key=lambda r: r.scheduled_for)

    async def list_all(self) -> list[ScheduledReminder]:
        try:
            rows = await self._all_rows()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao listar lembretes no Redis") from exc
        reminders = [ScheduledReminder.from_dict(data) for data in rows]
        return sorted(reminders, key=lambda r: r.scheduled_for)

    async def mark_sent(
        self,
        key: ReminderKey,
        sent_at: datetime,
        *,
        suppressed: bool = False,
    ) -> None:
        member = reminder_member(key)
        try:
            raw = await self._redis.hget(self._rows_key, member)
            if raw is None:
                return
            reminder = ScheduledReminder.from_dict(json.loads(raw))
            reminder.sent = True
            reminder.sent_at = sent_at
            reminder.suppressed = suppressed
            pipeline = self._redis.pipeline()
            pipeline.hset(self._rows_key, member, json.dumps(reminder.to_dict()))
            pipeline.zrem(self._due_key, member)
            await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao marcar lembrete enviado no Redis") from exc

    async def delete_unsent_for_session(self, session_id: str) -> int:
        session_key = self._session_key(session_id)
        try:
            members = list(await self._redis.smembers(session_key))
            loaded = await self._load(members)
            unsent = [member for member, data in loaded if not data.get("sent")]
            if unsent:
                pipeline = self._redis.pipeline()
                pipeline.hdel(self._rows_key, *unsent)
                pipeline.zrem(self._due_key, *unsent)
                pipeline.srem(session_key, *unsent)
                await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao remover lembretes no Redis") from exc
        logger.debug(
            "redis_reminders_deleted",
            extra={"session_id": session_id, "count": len(unsent)},
        )
        return len(unsent)

    async def purge_sent_before(self, cutoff: datetime) -> int:
        try:
            rows = [ScheduledReminder.from_dict(data) for data in await self._all_rows()]
            stale = [r for r in rows if r.sent and r.scheduled_for < cutoff]
            if stale:
                pipeline = self._redis.pipeline()
                for reminder in stale:
                    member = reminder_member(reminder.key)
                    pipeline.hdel(self._rows_key, member)
                    pipeline.srem(self._session_key(reminder.session_id), member)
                await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao limpar lembretes no Redis") from exc
        return len(stale)


class RedisFeedbackRequestStore(_RedisTable, FeedbackRequestStoreProtocol):
    """Tabela de FeedbackRequest em Redis.

    O ZSET `due` contém apenas solicitações `pending`.

    Args:
        redis_client: Cliente Redis assíncrono
        prefix: Namespace das chaves
    """

    def __init__(self, redis_client: AsyncRedis, prefix: str = FEEDBACK_PREFIX) -> None:
        super().__init__(redis_client, prefix)

    def _recipient_key(self, recipient_id: str) -> str:
        return f"{self._prefix}recipient:{recipient_id}"

    def _stage_write(self, pipeline: Any, request: FeedbackRequest) -> None:
        member = feedback_member(request.key)
        pipeline.hset(self._rows_key, member, json.dumps(request.to_dict()))
        if request.status is FeedbackStatus.PENDING:
            pipeline.zadd(self._due_key, {member: request.scheduled_at.timestamp()})
        else:
            pipeline.zrem(self._due_key, member)

    def _stage_delete(self, pipeline: Any, request: FeedbackRequest) -> None:
        member = feedback_member(request.key)
        pipeline.hdel(self._rows_key, member)
        pipeline.zrem(self._due_key, member)
        pipeline.srem(self._session_key(request.session_id), member)
        pipeline.srem(self._recipient_key(request.recipient_id), member)

    async def upsert(self, request: FeedbackRequest) -> bool:
        member = feedback_member(request.key)
        try:
            existed = await self._redis.hexists(self._rows_key, member)
            pipeline = self._redis.pipeline()
            self._stage_write(pipeline, request)
            pipeline.sadd(self._session_key(request.session_id), member)
            pipeline.sadd(self._recipient_key(request.recipient_id), member)
            await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao gravar solicitação de feedback no Redis") from exc
        return not existed

    async def list_for_session(self, session_id: str) -> list[FeedbackRequest]:
        try:
            members = list(await self._redis.smembers(self._session_key(session_id)))
            loaded = await self._load(members)
        except RedisError as exc:
            raise RedisConnectionError("Falha ao listar feedback da sessão no Redis") from exc
        return [FeedbackRequest.from_dict(data) for _, data in loaded]

    async def list_due(self, now: datetime) -> list[FeedbackRequest]:
        try:
            members = await self._redis.zrangebyscore(self._due_key, "-inf", now.timestamp())
            loaded = await self._load(list(members))
        except RedisError as exc:
            raise RedisConnectionError("Falha ao listar feedback devido no Redis") from exc
        requests = [FeedbackRequest.from_dict(data) for _, data in loaded]
        due = [
            r for r in requests if r.status is FeedbackStatus.PENDING and r.scheduled_at <= now
        ]
        return sorted(due, key=lambda r: r.scheduled_at)

    async def list_all(self) -> list[FeedbackRequest]:
        try:
            rows = await self._all_rows()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao listar feedback no Redis") from exc
        requests = [FeedbackRequest.from_dict(data) for data in rows]
        return sorted(requests, key=lambda r: r.scheduled_at)

    async def update_status(
        self,
        key: FeedbackKey,
        status: FeedbackStatus,
        *,
        sent_at: datetime | None = None,
    ) -> None:
        member = feedback_member(key)
        try:
            raw = await self._redis.hget(self._rows_key, member)
            if raw is None:
                return
            request = FeedbackRequest.from_dict(json.loads(raw))
            request.status = status
            if sent_at is not None:
                request.sent_at = sent_at
            pipeline = self._redis.pipeline()
            self._stage_write(pipeline, request)
            await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao atualizar feedback no Redis") from exc

    async def delete_pending_for_session(self, session_id: str) -> int:
        try:
            members = list(await self._redis.smembers(self._session_key(session_id)))
            loaded = await self._load(members)
            pending = [
                FeedbackRequest.from_dict(data)
                for _, data in loaded
                if data.get("status") == FeedbackStatus.PENDING.value
            ]
            if pending:
                pipeline = self._redis.pipeline()
                for request in pending:
                    self._stage_delete(pipeline, request)
                await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao remover feedback no Redis") from exc
        return len(pending)

    async def mark_opted_out(self, recipient_id: str) -> int:
        try:
            members = list(await self._redis.smembers(self._recipient_key(recipient_id)))
            loaded = await self._load(members)
            pending = [
                FeedbackRequest.from_dict(data)
                for _, data in loaded
                if data.get("status") == FeedbackStatus.PENDING.value
            ]
            if pending:
                pipeline = self._redis.pipeline()
                for request in pending:
                    request.status = FeedbackStatus.OPTED_OUT
                    self._stage_write(pipeline, request)
                await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao registrar opt-out no Redis") from exc
        return len(pending)

    async def purge(self, cutoff: datetime) -> int:
        try:
            requests = [FeedbackRequest.from_dict(data) for data in await self._all_rows()]
            stale = [
                r for r in requests if r.status in _PURGEABLE_FEEDBACK or r.scheduled_at < cutoff
            ]
            if stale:
                pipeline = self._redis.pipeline()
                for request in stale:
                    self._stage_delete(pipeline, request)
                await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao limpar feedback no Redis") from exc
        return len(stale)
