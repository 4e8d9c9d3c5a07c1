"""Stores — implementações concretas de persistência.

Módulos disponíveis:
    - memory_stores: Stores em memória para desenvolvimento/testes
    - redis_session_store: Sessões e preferências em Redis
    - redis_scheduling_store: Tabelas de lembretes e feedback em Redis
"""

from __future__ import annotations

from app.infra.stores.memory_stores import (
    MemoryFeedbackRequestStore,
    MemoryFeedbackSubmissionLookup,
    MemoryPreferenceStore,
    MemoryRecipientDirectory,
    MemoryReminderStore,
    MemorySessionStore,
)
from app.infra.stores.redis_scheduling_store import (
    RedisFeedbackRequestStore,
    RedisReminderStore,
)
from app.infra.stores.redis_session_store import RedisPreferenceStore, RedisSessionStore

__all__ = [
    # Memory (dev/test)
    "MemoryFeedbackRequestStore",
    "MemoryFeedbackSubmissionLookup",
    "MemoryPreferenceStore",
    "MemoryRecipientDirectory",
    "MemoryReminderStore",
    "MemorySessionStore",
    # Redis
    "RedisFeedbackRequestStore",
    "RedisPreferenceStore",
    "RedisReminderStore",
    "RedisSessionStore",
]
