"""Rate limit por janela deslizante para os workers da fila."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable


class SlidingWindowRateLimiter:
    """Permite no máximo `max_events` inícios dentro de `window_seconds`.

    Args:
        max_events: Limite de eventos na janela
        window_seconds: Tamanho da janela
        clock: Relógio monotônico (injetável em testes)
    """

    def __init__(
        self,
        max_events: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_events < 1:
            raise ValueError("max_events deve ser >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds deve ser > 0")
        self._max_events = max_events
        self._window = window_seconds
        self._clock = clock
        self._events: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        while self._events and now - self._events[0] >= self._window:
            self._events.popleft()

    @property
    def in_window(self) -> int:
        """Eventos contabilizados na janela atual."""
        self._prune(self._clock())
        return len(self._events)

    def try_acquire(self) -> bool:
        """Registra um evento se houver cota; não bloqueia."""
        now = self._clock()
        self._prune(now)
        if len(self._events) < self._max_events:
            self._events.append(now)
            return True
        return False

    def seconds_until_available(self) -> float:
        """Espera necessária até liberar uma vaga (0 se já há cota)."""
        now = self._clock()
        self._prune(now)
        if len(self._events) < self._max_events:
            return 0.0
        return max(self._events[0] + self._window - now, 0.0)

    async def acquire(self) -> None:
        """Aguarda cota disponível e registra o evento."""
        async with self._lock:
            while not self.try_acquire():
                await asyncio.sleep(self.seconds_until_available())
