"""Settings da fila de despacho.

Limites por categoria: concorrência, janela de rate limit,
tentativas, backoff e timeout por tentativa.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from functools import lru_cache

QUEUE_CATEGORIES: tuple[str, ...] = ("email", "notification", "analytics", "backup")


@dataclass(frozen=True)
class QueueCategorySettings:
    """Limites de uma categoria da fila.

    Attributes:
        concurrency: Workers simultâneos
        rate_limit_max: Máximo de jobs iniciados na janela
        rate_limit_window_seconds: Tamanho da janela deslizante
        max_attempts: Tentativas padrão por job
        backoff_seconds: Base do backoff exponencial
        job_timeout_seconds: Timeout de cada tentativa
    """

    concurrency: int
    rate_limit_max: int
    rate_limit_window_seconds: float
    max_attempts: int
    backoff_seconds: float
    job_timeout_seconds: float = 30.0


def _default_categories() -> dict[str, QueueCategorySettings]:
    return {
        "email": QueueCategorySettings(
            concurrency=10,
            rate_limit_max=100,
            rate_limit_window_seconds=60.0,
            max_attempts=3,
            backoff_seconds=2.0,
        ),
        "analytics": QueueCategorySettings(
            concurrency=3,
            rate_limit_max=20,
            rate_limit_window_seconds=60.0,
            max_attempts=2,
            backoff_seconds=5.0,
        ),
        "backup": QueueCategorySettings(
            concurrency=1,
            rate_limit_max=5,
            rate_limit_window_seconds=3600.0,
            max_attempts=1,
            backoff_seconds=0.0,
            job_timeout_seconds=300.0,
        ),
        "notification": QueueCategorySettings(
            concurrency=15,
            rate_limit_max=200,
            rate_limit_window_seconds=60.0,
            max_attempts=3,
            backoff_seconds=1.0,
        ),
    }


@dataclass(frozen=True)
class DispatchSettings:
    """Configurações da DispatchQueue.

    Attributes:
        categories: Limites por categoria
        dead_letter_limit: Máximo de jobs retidos na dead-letter por categoria
    """

    categories: dict[str, QueueCategorySettings] = field(default_factory=_default_categories)
    dead_letter_limit: int = 1000

    def for_category(self, category: str) -> QueueCategorySettings:
        """Retorna limites da categoria (KeyError se desconhecida)."""
        return self.categories[category]

    def validate(self) -> list[str]:
        """Valida configurações da fila.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        missing = [name for name in QUEUE_CATEGORIES if name not in self.categories]
        if missing:
            errors.append(f"Categorias de fila ausentes: {', '.join(missing)}")

        for name, cfg in self.categories.items():
            prefix = f"DISPATCH_{name.upper()}"
            if cfg.concurrency < 1:
                errors.append(f"{prefix}_CONCURRENCY deve ser >= 1")
            if cfg.rate_limit_max < 1:
                errors.append(f"{prefix}_RATE_LIMIT deve ser >= 1")
            if cfg.rate_limit_window_seconds <= 0:
                errors.append(f"{prefix}_RATE_WINDOW deve ser > 0")
            if cfg.max_attempts < 1:
                errors.append(f"{prefix}_MAX_ATTEMPTS deve ser >= 1")
            if cfg.backoff_seconds < 0:
                errors.append(f"{prefix}_BACKOFF deve ser >= 0")
            if cfg.job_timeout_seconds <= 0:
                errors.append(f"{prefix}_TIMEOUT deve ser > 0")

        if self.dead_letter_limit < 1:
            errors.append("DISPATCH_DEAD_LETTER_LIMIT deve ser >= 1")

        return errors


def _category_from_env(name: str, default: QueueCategorySettings) -> QueueCategorySettings:
    """Aplica overrides DISPATCH_<CATEGORIA>_* sobre o default."""
    prefix = f"DISPATCH_{name.upper()}"
    return replace(
        default,
        concurrency=int(os.getenv(f"{prefix}_CONCURRENCY", str(default.concurrency))),
        rate_limit_max=int(os.getenv(f"{prefix}_RATE_LIMIT", str(default.rate_limit_max))),
        rate_limit_window_seconds=float(
            os.getenv(f"{prefix}_RATE_WINDOW", str(default.rate_limit_window_seconds))
        ),
        max_attempts=int(os.getenv(f"{prefix}_MAX_ATTEMPTS", str(default.max_attempts))),
        backoff_seconds=float(os.getenv(f"{prefix}_BACKOFF", str(default.backoff_seconds))),
        job_timeout_seconds=float(
            os.getenv(f"{prefix}_TIMEOUT", str(default.job_timeout_seconds))
        ),
    )


def _load_dispatch_from_env() -> DispatchSettings:
    """Carrega DispatchSettings de variáveis de ambiente."""
    defaults = _default_categories()
    return DispatchSettings(
        categories={name: _category_from_env(name, cfg) for name, cfg in defaults.items()},
        dead_letter_limit=int(os.getenv("DISPATCH_DEAD_LETTER_LIMIT", "1000")),
    )


@lru_cache(maxsize=1)
def get_dispatch_settings() -> DispatchSettings:
    """Retorna instância cacheada de DispatchSettings."""
    return _load_dispatch_from_env()
