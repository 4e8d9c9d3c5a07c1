"""Job da fila de despacho (efêmero, nunca persistido)."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum, StrEnum
from typing import Any


class JobCategory(StrEnum):
    """Categorias da fila, cada uma com seu pool de workers."""

    EMAIL = "email"
    NOTIFICATION = "notification"
    ANALYTICS = "analytics"
    BACKUP = "backup"


class JobPriority(IntEnum):
    """Prioridade do job (menor valor sai primeiro)."""

    URGENT = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4

    @property
    def label(self) -> str:
        """Nome em minúsculas para logs e payloads."""
        return self.name.lower()


def _new_job_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Job:
    """Unidade de trabalho entregue à DispatchQueue.

    Atributos:
        category: Categoria da fila
        payload: Dados do handler (apenas ids e textos renderizados)
        priority: Prioridade de retirada
        max_attempts: Tentativas antes da dead-letter
        backoff_seconds: Base do backoff exponencial
        attempts: Tentativas já consumidas
        last_error: Classe/mensagem do último erro
        job_id: Identificador
        created_at: Momento de admissão
    """

    category: JobCategory
    payload: dict[str, Any]
    priority: JobPriority = JobPriority.MEDIUM
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    attempts: int = 0
    last_error: str | None = None
    job_id: str = field(default_factory=_new_job_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def exhausted(self) -> bool:
        """True quando não restam tentativas."""
        return self.attempts >= self.max_attempts

    def retry_delay(self) -> float:
        """Atraso até a próxima tentativa: base * 2^(attempts-1)."""
        return self.backoff_seconds * (2 ** max(self.attempts - 1, 0))

    def to_log_dict(self) -> dict[str, Any]:
        """Representação segura para logs (sem payload)."""
        return {
            "job_id": self.job_id,
            "category": self.category.value,
            "priority": self.priority.label,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "last_error": self.last_error,
        }


__all__ = ["Job", "JobCategory", "JobPriority"]
