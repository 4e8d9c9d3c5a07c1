"""Tarefas periódicas sem sobreposição.

`PeriodicScheduler.every(interval, fn)` dispara `fn` a cada intervalo
como task própria. Se a execução anterior da mesma tarefa ainda estiver
rodando, o disparo é pulado e registrado. `run_now(name)` força um
disparo sob a mesma regra.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.observability.correlation import correlation_scope, generate_correlation_id
from app.observability.metrics import record_tick
from app.services.clock import Clock, utc_now

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    TickFunction = Callable[[], Awaitable[int | None]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TickOutcome:
    """Resultado de um disparo.

    Atributos:
        task_name: Tarefa disparada
        ran: False quando pulado por sobreposição
        processed: Itens processados (quando a função informa)
        error_type: Classe do erro, se a execução falhou
    """

    task_name: str
    ran: bool
    processed: int | None = None
    error_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_name": self.task_name,
            "ran": self.ran,
            "processed": self.processed,
            "error_type": self.error_type,
        }


@dataclass
class PeriodicTask:
    """Tarefa registrada e seus contadores."""

    name: str
    interval_seconds: float
    fn: TickFunction
    runs: int = 0
    skipped: int = 0
    failures: int = 0
    last_run_at: datetime | None = None
    last_error_type: str | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def running(self) -> bool:
        return self.lock.locked()


class PeriodicScheduler:
    """Agenda funções assíncronas em intervalos fixos.

    Args:
        clock: Relógio UTC (para last_run_at)
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._tasks: dict[str, PeriodicTask] = {}
        self._loops: list[asyncio.Task[None]] = []
        self._runs: set[asyncio.Task[TickOutcome]] = set()

    def every(
        self,
        interval_seconds: float,
        fn: TickFunction,
        *,
        name: str | None = None,
    ) -> PeriodicTask:
        """Registra `fn` para rodar a cada `interval_seconds`.

        Raises:
            ValueError: Intervalo não positivo ou nome repetido.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds deve ser > 0")
        task_name = name or getattr(fn, "__name__", "task")
        if task_name in self._tasks:
            raise ValueError(f"Tarefa periódica já registrada: {task_name}")
        task = PeriodicTask(name=task_name, interval_seconds=interval_seconds, fn=fn)
        self._tasks[task_name] = task
        if self._loops:
            self._loops.append(asyncio.create_task(self._loop(task), name=f"periodic-{task_name}"))
        return task

    def task_names(self) -> list[str]:
        """Nomes das tarefas registradas."""
        return sorted(self._tasks)

    async def run_now(self, name: str) -> TickOutcome:
        """Força um disparo da tarefa (pulado se já estiver rodando).

        Raises:
            KeyError: Tarefa desconhecida.
        """
        return await self._run_once(self._tasks[name])

    async def _run_once(self, task: PeriodicTask) -> TickOutcome:
        if task.lock.locked():
            task.skipped += 1
            logger.info("periodic_tick_skipped", extra={"task_name": task.name})
            record_tick(task.name, processed=0, latency_ms=0.0, skipped=True)
            return TickOutcome(task_name=task.name, ran=False)

        async with task.lock:
            with correlation_scope(generate_correlation_id(f"tick-{task.name}")):
                started = time.perf_counter()
                task.runs += 1
                task.last_run_at = self._clock()
                try:
                    processed = await task.fn()
                except Exception as exc:
                    task.failures += 1
                    task.last_error_type = type(exc).__name__
                    logger.error(
                        "periodic_tick_failed",
                        extra={"task_name": task.name, "error_type": task.last_error_type},
                    )
                    return TickOutcome(
                        task_name=task.name, ran=True, error_type=task.last_error_type
                    )
                latency_ms = (time.perf_counter() - started) * 1000
                record_tick(task.name, processed=processed or 0, latency_ms=latency_ms)
                return TickOutcome(task_name=task.name, ran=True, processed=processed)

    async def _loop(self, task: PeriodicTask) -> None:
        while True:
            await asyncio.sleep(task.interval_seconds)
            run = asyncio.create_task(self._run_once(task))
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)

    def start(self) -> None:
        """Inicia os loops de todas as tarefas registradas."""
        if self._loops:
            return
        for task in self._tasks.values():
            self._loops.append(asyncio.create_task(self._loop(task), name=f"periodic-{task.name}"))
        logger.info("periodic_scheduler_started", extra={"tasks": self.task_names()})

    async def stop(self, timeout_seconds: float = 10.0) -> None:
        """Para os loops e aguarda execuções em andamento."""
        loops, self._loops = self._loops, []
        for loop in loops:
            loop.cancel()
        await asyncio.gather(*loops, return_exceptions=True)

        if self._runs:
            _, pending = await asyncio.wait(list(self._runs), timeout=timeout_seconds)
            for run in pending:
                run.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(*pending, return_exceptions=True)
        logger.info("periodic_scheduler_stopped", extra={"tasks": self.task_names()})

    def stats(self) -> dict[str, dict[str, Any]]:
        """Contadores por tarefa."""
        return {
            name: {
                "interval_seconds": task.interval_seconds,
                "runs": task.runs,
                "skipped": task.skipped,
                "failures": task.failures,
                "running": task.running,
                "last_run_at": task.last_run_at.isoformat() if task.last_run_at else None,
                "last_error_type": task.last_error_type,
            }
            for name, task in self._tasks.items()
        }
