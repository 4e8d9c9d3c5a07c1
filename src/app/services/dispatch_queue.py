"""Fila de despacho categorizada: único caminho de saída de mensagens.

Cada categoria (email, notification, analytics, backup) tem seu próprio
pool de workers, rate limit por janela deslizante, tentativas padrão e
backoff. Workers retiram por prioridade (urgent > high > medium > low,
FIFO dentro da mesma prioridade) entre os jobs cujo atraso já venceu.

Falha de handler: nova tentativa após `backoff * 2^(tentativa-1)` até
`max_attempts`; depois o job vai para a dead-letter (retido para
inspeção, nunca reentregue). PermanentDispatchFailure pula os retries.
Eventos de conclusão/falha/dead-letter vão para os listeners inscritos
(logs e métricas apenas).
"""

from __future__ import annotations

import asyncio
import contextlib
import heapq
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from app.domain.job import Job, JobCategory, JobPriority
from app.observability.metrics import record_dispatch
from app.services.rate_limiter import SlidingWindowRateLimiter
from utils.errors import PermanentDispatchFailure

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from config.settings.dispatch import DispatchSettings, QueueCategorySettings

    JobHandler = Callable[[Job], Awaitable[None]]
    QueueListener = Callable[["QueueEvent"], None]

logger = logging.getLogger(__name__)


class QueueEventType(StrEnum):
    """Eventos observáveis da fila."""

    COMPLETED = "completed"
    FAILED = "failed"
    DEAD_LETTERED = "dead_lettered"


@dataclass(frozen=True, slots=True)
class QueueEvent:
    """Evento emitido aos listeners.

    Atributos:
        type: Tipo do evento
        job: Job (estado no momento do evento)
        error_type: Classe do erro, quando houver
        retry_in_seconds: Atraso da próxima tentativa (apenas FAILED)
    """

    type: QueueEventType
    job: Job
    error_type: str | None = None
    retry_in_seconds: float | None = None


@dataclass(slots=True)
class CategoryStats:
    """Contadores acumulados de uma categoria."""

    enqueued: int = 0
    completed: int = 0
    failed: int = 0
    dead_lettered: int = 0


@dataclass
class _CategoryQueue:
    """Estado interno de uma categoria."""

    category: JobCategory
    settings: QueueCategorySettings
    rate_limiter: SlidingWindowRateLimiter
    dead_letters: deque[Job]
    ready: list[tuple[int, int, Job]] = field(default_factory=list)
    delayed: list[tuple[float, int, Job]] = field(default_factory=list)
    in_flight: int = 0
    stats: CategoryStats = field(default_factory=CategoryStats)
    wakeup: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def pending(self) -> int:
        return len(self.ready) + len(self.delayed)

    def promote_due(self, now: float) -> None:
        """Move para `ready` os jobs cujo atraso já venceu."""
        while self.delayed and self.delayed[0][0] <= now:
            _, seq, job = heapq.heappop(self.delayed)
            heapq.heappush(self.ready, (int(job.priority), seq, job))

    def seconds_to_next_delayed(self, now: float) -> float | None:
        if not self.delayed:
            return None
        return max(self.delayed[0][0] - now, 0.0)


class DispatchQueue:
    """Fila de jobs com workers por categoria.

    Jobs admitidos antes de `start()` ficam pendentes até os workers
    subirem. Só categorias com handler registrado aceitam jobs.

    Args:
        settings: Limites por categoria
        clock: Relógio monotônico para atrasos (injetável em testes)
    """

    def __init__(
        self,
        settings: DispatchSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._queues: dict[JobCategory, _CategoryQueue] = {}
        for category in JobCategory:
            cfg = settings.for_category(category.value)
            self._queues[category] = _CategoryQueue(
                category=category,
                settings=cfg,
                rate_limiter=SlidingWindowRateLimiter(
                    cfg.rate_limit_max, cfg.rate_limit_window_seconds, clock=clock
                ),
                dead_letters=deque(maxlen=settings.dead_letter_limit),
            )
        self._handlers: dict[JobCategory, JobHandler] = {}
        self._listeners: list[QueueListener] = [_record_metrics]
        self._workers: list[asyncio.Task[None]] = []
        self._seq = itertools.count()
        self._outstanding = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def running(self) -> bool:
        """True enquanto há workers ativos."""
        return bool(self._workers)

    def register_handler(self, category: JobCategory | str, handler: JobHandler) -> None:
        """Define o handler que processa os jobs da categoria."""
        self._handlers[JobCategory(category)] = handler

    def subscribe(self, listener: QueueListener) -> None:
        """Inscreve listener de eventos (chamado de forma síncrona)."""
        self._listeners.append(listener)

    async def enqueue(
        self,
        category: JobCategory | str,
        payload: dict[str, Any],
        *,
        priority: JobPriority = JobPriority.MEDIUM,
        delay_seconds: float = 0.0,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
    ) -> Job:
        """Admite um job na fila.

        Args:
            category: Categoria da fila
            payload: Dados para o handler
            priority: Prioridade de retirada
            delay_seconds: Atraso mínimo antes da primeira tentativa
            max_attempts: Tentativas (default da categoria se None)
            backoff_seconds: Base do backoff (default da categoria se None)

        Returns:
            Job admitido.

        Raises:
            ValueError: Categoria sem handler registrado.
        """
        queue = self._queues[JobCategory(category)]
        if queue.category not in self._handlers:
            raise ValueError(f"Categoria sem handler registrado: {queue.category.value}")
        cfg = queue.settings
        job = Job(
            category=queue.category,
            payload=payload,
            priority=priority,
            max_attempts=max_attempts if max_attempts is not None else cfg.max_attempts,
            backoff_seconds=backoff_seconds if backoff_seconds is not None else cfg.backoff_seconds,
        )
        queue.stats.enqueued += 1
        self._outstanding += 1
        self._idle.clear()
        self._schedule(queue, job, delay_seconds)
        logger.debug(
            "job_enqueued",
            extra={**job.to_log_dict(), "delay_seconds": round(delay_seconds, 3)},
        )
        return job

    def _schedule(self, queue: _CategoryQueue, job: Job, delay_seconds: float) -> None:
        seq = next(self._seq)
        if delay_seconds > 0:
            heapq.heappush(queue.delayed, (self._clock() + delay_seconds, seq, job))
        else:
            heapq.heappush(queue.ready, (int(job.priority), seq, job))
        queue.wakeup.set()

    def _settle(self) -> None:
        self._outstanding -= 1
        if self._outstanding == 0:
            self._idle.set()

    async def _next_job(self, queue: _CategoryQueue) -> Job:
        while True:
            now = self._clock()
            queue.promote_due(now)
            if queue.ready:
                _, _, job = heapq.heappop(queue.ready)
                queue.in_flight += 1
                return job
            queue.wakeup.clear()
            timeout = queue.seconds_to_next_delayed(now)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(queue.wakeup.wait(), timeout)

    async def _worker(self, queue: _CategoryQueue, handler: JobHandler) -> None:
        while True:
            job = await self._next_job(queue)
            try:
                try:
                    await queue.rate_limiter.acquire()
                except asyncio.CancelledError:
                    self._schedule(queue, job, 0.0)
                    raise
                await self._run(queue, handler, job)
            finally:
                queue.in_flight -= 1

    async def _run(self, queue: _CategoryQueue, handler: JobHandler, job: Job) -> None:
        job.attempts += 1
        try:
            await asyncio.wait_for(handler(job), timeout=queue.settings.job_timeout_seconds)
        except asyncio.CancelledError:
            job.attempts -= 1
            self._schedule(queue, job, 0.0)
            raise
        except Exception as exc:
            self._handle_failure(queue, job, exc)
            return

        queue.stats.completed += 1
        self._emit(QueueEvent(QueueEventType.COMPLETED, job))
        self._settle()

    def _handle_failure(self, queue: _CategoryQueue, job: Job, exc: Exception) -> None:
        error_type = type(exc).__name__
        job.last_error = f"{error_type}: {exc}"[:200]

        if job.exhausted or isinstance(exc, PermanentDispatchFailure):
            queue.stats.dead_lettered += 1
            queue.dead_letters.append(job)
            logger.warning("job_dead_lettered", extra=job.to_log_dict())
            self._emit(QueueEvent(QueueEventType.DEAD_LETTERED, job, error_type=error_type))
            self._settle()
            return

        delay = job.retry_delay()
        queue.stats.failed += 1
        self._schedule(queue, job, delay)
        logger.info(
            "job_retry_scheduled",
            extra={**job.to_log_dict(), "retry_in_seconds": delay},
        )
        self._emit(
            QueueEvent(QueueEventType.FAILED, job, error_type=error_type, retry_in_seconds=delay)
        )

    def _emit(self, event: QueueEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as exc:
                logger.error(
                    "queue_listener_failed",
                    extra={"event": event.type.value, "error_type": type(exc).__name__},
                )

    def start(self) -> None:
        """Sobe os workers das categorias com handler registrado."""
        if self._workers:
            return
        for category, handler in self._handlers.items():
            queue = self._queues[category]
            for index in range(queue.settings.concurrency):
                task = asyncio.create_task(
                    self._worker(queue, handler),
                    name=f"dispatch-{category.value}-{index}",
                )
                self._workers.append(task)
        logger.info(
            "dispatch_queue_started",
            extra={
                "workers": len(self._workers),
                "categories": sorted(c.value for c in self._handlers),
            },
        )

    async def stop(self, drain_timeout_seconds: float = 10.0) -> None:
        """Aguarda a drenagem (até o timeout) e encerra os workers."""
        if not self._workers:
            return
        try:
            await asyncio.wait_for(self.join(), drain_timeout_seconds)
        except TimeoutError:
            logger.warning(
                "dispatch_queue_drain_timeout",
                extra={"outstanding_jobs": self._outstanding},
            )
        workers, self._workers = self._workers, []
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        logger.info("dispatch_queue_stopped", extra={"outstanding_jobs": self._outstanding})

    async def join(self) -> None:
        """Aguarda até todo job admitido estar concluído ou na dead-letter."""
        await self._idle.wait()

    def pending_jobs(self, category: JobCategory | str) -> list[Job]:
        """Jobs aguardando execução, em ordem de retirada aproximada."""
        queue = self._queues[JobCategory(category)]
        ready = [job for _, _, job in sorted(queue.ready)]
        delayed = [job for _, _, job in sorted(queue.delayed)]
        return ready + delayed

    def dead_letters(self, category: JobCategory | str | None = None) -> list[Job]:
        """Jobs que esgotaram as tentativas."""
        if category is not None:
            return list(self._queues[JobCategory(category)].dead_letters)
        return [job for queue in self._queues.values() for job in queue.dead_letters]

    def stats(self) -> dict[str, dict[str, int]]:
        """Contadores por categoria para o endpoint operacional."""
        return {
            category.value: {
                "enqueued": queue.stats.enqueued,
                "pending": queue.pending,
                "in_flight": queue.in_flight,
                "completed": queue.stats.completed,
                "failed": queue.stats.failed,
                "dead_lettered": queue.stats.dead_lettered,
                "concurrency": queue.settings.concurrency,
                "rate_limit_in_window": queue.rate_limiter.in_window,
            }
            for category, queue in self._queues.items()
        }


def _record_metrics(event: QueueEvent) -> None:
    record_dispatch(
        event.job.category.value,
        event.type.value,
        attempts=event.job.attempts,
        job_id=event.job.job_id,
        error_type=event.error_type,
    )
