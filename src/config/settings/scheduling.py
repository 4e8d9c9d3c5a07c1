"""Settings dos schedulers periódicos.

Intervalos dos ticks, retenção e backend das tabelas de lembretes
e solicitações de feedback.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Literal, cast

if TYPE_CHECKING:
    from config.settings.base.core import BaseSettings

SchedulingStoreBackend = Literal["memory", "redis"]


@dataclass(frozen=True)
class SchedulingSettings:
    """Configurações de agendamento de lembretes e feedback.

    Attributes:
        store_backend: Backend das tabelas de agendamento (memory|redis)
        reminder_tick_seconds: Intervalo do tick de lembretes (15 min)
        feedback_tick_seconds: Intervalo do tick de feedback (1h)
        cleanup_tick_seconds: Intervalo das limpezas diárias
        retention_days: Retenção de lembretes enviados e solicitações antigas
    """

    store_backend: SchedulingStoreBackend = "memory"
    reminder_tick_seconds: int = 900
    feedback_tick_seconds: int = 3600
    cleanup_tick_seconds: int = 86400
    retention_days: int = 7

    def validate(self, base: BaseSettings) -> list[str]:
        """Valida configurações de agendamento.

        Args:
            base: BaseSettings para verificar ambiente.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.store_backend not in {"memory", "redis"}:
            errors.append(f"SCHEDULING_STORE_BACKEND inválido: {self.store_backend}")

        if self.store_backend == "memory" and base.is_production:
            errors.append(
                "SCHEDULING_STORE_BACKEND=memory proibido em production. "
                "Lembretes pendentes seriam perdidos no restart."
            )

        if self.store_backend == "redis" and not base.redis_url:
            errors.append("SCHEDULING_STORE_BACKEND=redis requer REDIS_URL configurado")

        for name, value in (
            ("REMINDER_TICK_SECONDS", self.reminder_tick_seconds),
            ("FEEDBACK_TICK_SECONDS", self.feedback_tick_seconds),
            ("CLEANUP_TICK_SECONDS", self.cleanup_tick_seconds),
            ("SCHEDULING_RETENTION_DAYS", self.retention_days),
        ):
            if value <= 0:
                errors.append(f"{name} deve ser > 0")

        return errors


def _load_scheduling_from_env() -> SchedulingSettings:
    """Carrega SchedulingSettings de variáveis de ambiente."""
    # Valor desconhecido segue adiante para validate() reportar
    backend = cast(
        "SchedulingStoreBackend",
        os.getenv("SCHEDULING_STORE_BACKEND", "memory").strip().lower(),
    )
    return SchedulingSettings(
        store_backend=backend,
        reminder_tick_seconds=int(os.getenv("REMINDER_TICK_SECONDS", "900")),
        feedback_tick_seconds=int(os.getenv("FEEDBACK_TICK_SECONDS", "3600")),
        cleanup_tick_seconds=int(os.getenv("CLEANUP_TICK_SECONDS", "86400")),
        retention_days=int(os.getenv("SCHEDULING_RETENTION_DAYS", "7")),
    )


@lru_cache(maxsize=1)
def get_scheduling_settings() -> SchedulingSettings:
    """Retorna instância cacheada de SchedulingSettings."""
    return _load_scheduling_from_env()
