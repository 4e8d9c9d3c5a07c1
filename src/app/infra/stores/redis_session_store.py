"""Redis Session Store — sessões de coaching e preferências.

Sessões são gravadas como JSON em `session:<id>`; o índice
`coach_sessions:<coach_id>` permite a checagem de conflito na
remarcação. Preferências ficam em `preferences:<user_id>`.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError
from redis.exceptions import RedisError

from app.domain.preferences import NotificationPreferences
from app.domain.session import Session
from app.protocols.session_store import PreferenceStoreProtocol, SessionStoreProtocol
from utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
COACH_INDEX_PREFIX = "coach_sessions:"
PREFERENCES_PREFIX = "preferences:"


class RedisSessionStore(SessionStoreProtocol):
    """Store de sessões usando Redis.

    Args:
        redis_client: Cliente Redis assíncrono
    """

    def __init__(self, redis_client: AsyncRedis) -> None:
        self._redis = redis_client

    def _key(self, session_id: str) -> str:
        return f"{SESSION_PREFIX}{session_id}"

    def _coach_key(self, coach_id: str) -> str:
        return f"{COACH_INDEX_PREFIX}{coach_id}"

    async def get(self, session_id: str) -> Session | None:
        try:
            data = await self._redis.get(self._key(session_id))
        except RedisError as exc:
            raise RedisConnectionError("Falha ao carregar sessão do Redis") from exc
        if data is None:
            return None
        try:
            return Session.from_dict(json.loads(data))
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(
                "session_load_error",
                extra={"session_id": session_id, "error_type": type(e).__name__},
            )
            return None

    async def save(self, session: Session) -> None:
        try:
            pipeline = self._redis.pipeline()
            pipeline.set(self._key(session.session_id), json.dumps(session.to_dict()))
            pipeline.sadd(self._coach_key(session.coach_id), session.session_id)
            await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao salvar sessão no Redis") from exc
        logger.debug("session_saved", extra={"session_id": session.session_id})

    async def delete(self, session_id: str) -> bool:
        session = await self.get(session_id)
        try:
            pipeline = self._redis.pipeline()
            pipeline.delete(self._key(session_id))
            if session is not None:
                pipeline.srem(self._coach_key(session.coach_id), session_id)
            results = await pipeline.execute()
        except RedisError as exc:
            raise RedisConnectionError("Falha ao remover sessão do Redis") from exc
        return bool(results and results[0])

    async def find_coach_sessions(self, coach_id: str) -> list[Session]:
        try:
            session_ids = await self._redis.smembers(self._coach_key(coach_id))
        except RedisError as exc:
            raise RedisConnectionError("Falha ao listar sessões do coach no Redis") from exc
        sessions: list[Session] = []
        for raw_id in session_ids:
            session_id = raw_id.decode() if isinstance(raw_id, bytes) else raw_id
            session = await self.get(session_id)
            if session is not None:
                sessions.append(session)
        return sessions


class RedisPreferenceStore(PreferenceStoreProtocol):
    """Store de preferências de notificação usando Redis.

    Args:
        redis_client: Cliente Redis assíncrono
    """

    def __init__(self, redis_client: AsyncRedis) -> None:
        self._redis = redis_client

    def _key(self, user_id: str) -> str:
        return f"{PREFERENCES_PREFIX}{user_id}"

    async def get(self, user_id: str) -> NotificationPreferences | None:
        try:
            data = await self._redis.get(self._key(user_id))
        except RedisError as exc:
            raise RedisConnectionError("Falha ao carregar preferências do Redis") from exc
        if data is None:
            return None
        try:
            return NotificationPreferences.model_validate_json(data)
        except ValidationError:
            logger.warning("preferences_load_error", extra={"user_id": user_id})
            return None

    async def save(self, preferences: NotificationPreferences) -> None:
        try:
            await self._redis.set(self._key(preferences.user_id), preferences.model_dump_json())
        except RedisError as exc:
            raise RedisConnectionError("Falha ao salvar preferências no Redis") from exc
