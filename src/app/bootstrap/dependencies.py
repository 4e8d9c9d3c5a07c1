"""Wiring dos serviços de agendamento.

`build_scheduling_services()` constrói uma única vez stores, resolver,
fila, schedulers, ciclo de vida e tarefas periódicas, e devolve tudo em
um container explícito. Nada aqui é singleton: quem precisa de um
serviço o recebe por referência.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from app.bootstrap.clients import close_redis_client, create_async_redis_client
from app.domain.job import JobCategory
from app.infra.channels import LoggingChannelSender
from app.infra.crypto import HmacOptOutTokenCodec
from app.infra.stores import (
    MemoryFeedbackRequestStore,
    MemoryFeedbackSubmissionLookup,
    MemoryPreferenceStore,
    MemoryRecipientDirectory,
    MemoryReminderStore,
    MemorySessionStore,
    RedisFeedbackRequestStore,
    RedisPreferenceStore,
    RedisReminderStore,
    RedisSessionStore,
)
from app.services.clock import Clock, utc_now
from app.services.dispatch_queue import DispatchQueue
from app.services.feedback_trigger import FeedbackTriggerEngine
from app.services.notification_delivery import (
    EmailDeliveryHandler,
    NotificationDeliveryHandler,
    NotificationDispatcher,
)
from app.services.periodic import PeriodicScheduler
from app.services.preference_resolver import PreferenceResolver
from app.services.reminder_scheduler import ReminderScheduler
from app.services.session_lifecycle import SessionLifecycle
from config.settings import (
    get_base_settings,
    get_dispatch_settings,
    get_feedback_settings,
    get_scheduling_settings,
)

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from redis.asyncio import Redis as AsyncRedis

    from app.protocols import (
        ChannelSenderProtocol,
        FeedbackRequestStoreProtocol,
        FeedbackSubmissionLookupProtocol,
        PreferenceStoreProtocol,
        RecipientDirectoryProtocol,
        ReminderStoreProtocol,
        SessionStoreProtocol,
    )
    from config.settings import DispatchSettings, FeedbackSettings, SchedulingSettings

logger = logging.getLogger(__name__)

REMINDER_TICK = "reminder_tick"
FEEDBACK_TICK = "feedback_tick"
REMINDER_CLEANUP = "reminder_cleanup"
FEEDBACK_CLEANUP = "feedback_cleanup"


@dataclass
class SchedulingStores:
    """Stores usados pelos serviços."""

    sessions: SessionStoreProtocol
    preferences: PreferenceStoreProtocol
    reminders: ReminderStoreProtocol
    feedback_requests: FeedbackRequestStoreProtocol


@dataclass
class SchedulingServices:
    """Container dos serviços construídos no startup."""

    stores: SchedulingStores
    directory: RecipientDirectoryProtocol
    submissions: FeedbackSubmissionLookupProtocol
    sender: ChannelSenderProtocol
    resolver: PreferenceResolver
    queue: DispatchQueue
    dispatcher: NotificationDispatcher
    reminders: ReminderScheduler
    feedback: FeedbackTriggerEngine
    lifecycle: SessionLifecycle
    periodic: PeriodicScheduler
    redis_client: AsyncRedis | None = None

    async def start(self) -> None:
        """Sobe os workers da fila e os ticks periódicos."""
        self.queue.start()
        self.periodic.start()

    async def stop(self, timeout_seconds: float = 10.0) -> None:
        """Para ticks, drena a fila e fecha o Redis."""
        await self.periodic.stop(timeout_seconds)
        await self.queue.stop(timeout_seconds)
        await close_redis_client(self.redis_client)
        logger.info("scheduling_services_stopped")


def create_stores(
    backend: str,
    redis_client: AsyncRedis | None = None,
) -> SchedulingStores:
    """Cria os stores conforme o backend configurado.

    Raises:
        ValueError: Backend inválido ou redis sem cliente.
    """
    if backend == "redis":
        if redis_client is None:
            msg = "Backend redis requer cliente Redis"
            raise ValueError(msg)
        logger.info("scheduling_stores_created", extra={"backend": "redis"})
        return SchedulingStores(
            sessions=RedisSessionStore(redis_client),
            preferences=RedisPreferenceStore(redis_client),
            reminders=RedisReminderStore(redis_client),
            feedback_requests=RedisFeedbackRequestStore(redis_client),
        )

    if backend == "memory":
        logger.info("scheduling_stores_created", extra={"backend": "memory"})
        return SchedulingStores(
            sessions=MemorySessionStore(),
            preferences=MemoryPreferenceStore(),
            reminders=MemoryReminderStore(),
            feedback_requests=MemoryFeedbackRequestStore(),
        )

    msg = f"SCHEDULING_STORE_BACKEND inválido: {backend}"
    raise ValueError(msg)


def build_scheduling_services(
    *,
    scheduling: SchedulingSettings | None = None,
    feedback: FeedbackSettings | None = None,
    dispatch: DispatchSettings | None = None,
    redis_client: AsyncRedis | None = None,
    directory: RecipientDirectoryProtocol | None = None,
    submissions: FeedbackSubmissionLookupProtocol | None = None,
    sender: ChannelSenderProtocol | None = None,
    clock: Clock = utc_now,
    queue_clock: Callable[[], float] = time.monotonic,
    rng: random.Random | None = None,
) -> SchedulingServices:
    """Constrói e conecta todos os serviços de agendamento.

    Settings omitidas vêm do ambiente. Colaboradores externos
    (diretório, lookup de feedback, transporte) caem nas implementações
    de desenvolvimento quando não informados.

    Returns:
        SchedulingServices pronto para `start()`.
    """
    scheduling = scheduling or get_scheduling_settings()
    feedback = feedback or get_feedback_settings()
    dispatch = dispatch or get_dispatch_settings()

    if scheduling.store_backend == "redis" and redis_client is None:
        redis_client = create_async_redis_client(get_base_settings().redis_url or None)
    stores = create_stores(scheduling.store_backend, redis_client)

    directory = directory or MemoryRecipientDirectory()
    submissions = submissions or MemoryFeedbackSubmissionLookup()
    sender = sender or LoggingChannelSender()

    resolver = PreferenceResolver(stores.preferences, clock=clock)
    queue = DispatchQueue(dispatch, clock=queue_clock)
    queue.register_handler(JobCategory.NOTIFICATION, NotificationDeliveryHandler(directory, sender))
    queue.register_handler(JobCategory.EMAIL, EmailDeliveryHandler(directory, sender))
    dispatcher = NotificationDispatcher(queue, clock=clock)

    reminders = ReminderScheduler(
        reminder_store=stores.reminders,
        session_store=stores.sessions,
        resolver=resolver,
        dispatcher=dispatcher,
        retention_days=scheduling.retention_days,
        clock=clock,
    )
    feedback_engine = FeedbackTriggerEngine(
        request_store=stores.feedback_requests,
        submissions=submissions,
        resolver=resolver,
        dispatcher=dispatcher,
        codec=HmacOptOutTokenCodec(feedback.opt_out_secret),
        settings=feedback,
        retention_days=scheduling.retention_days,
        clock=clock,
        rng=rng,
    )
    lifecycle = SessionLifecycle(
        session_store=stores.sessions,
        reminders=reminders,
        feedback=feedback_engine,
        resolver=resolver,
        dispatcher=dispatcher,
        clock=clock,
    )

    periodic = PeriodicScheduler(clock=clock)
    periodic.every(scheduling.reminder_tick_seconds, reminders.tick, name=REMINDER_TICK)
    periodic.every(scheduling.feedback_tick_seconds, feedback_engine.tick, name=FEEDBACK_TICK)
    periodic.every(scheduling.cleanup_tick_seconds, reminders.cleanup, name=REMINDER_CLEANUP)
    periodic.every(
        scheduling.cleanup_tick_seconds, feedback_engine.cleanup, name=FEEDBACK_CLEANUP
    )

    logger.info(
        "scheduling_services_built",
        extra={"backend": scheduling.store_backend, "tasks": periodic.task_names()},
    )
    return SchedulingServices(
        stores=stores,
        directory=directory,
        submissions=submissions,
        sender=sender,
        resolver=resolver,
        queue=queue,
        dispatcher=dispatcher,
        reminders=reminders,
        feedback=feedback_engine,
        lifecycle=lifecycle,
        periodic=periodic,
        redis_client=redis_client,
    )


def describe_services(services: SchedulingServices) -> dict[str, Any]:
    """Resumo do wiring para logs de startup (sem dados de usuário)."""
    return {
        "session_store": type(services.stores.sessions).__name__,
        "reminder_store": type(services.stores.reminders).__name__,
        "feedback_store": type(services.stores.feedback_requests).__name__,
        "sender": type(services.sender).__name__,
        "periodic_tasks": services.periodic.task_names(),
    }
