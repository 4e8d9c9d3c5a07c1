"""Correlation id para rastrear requisições e execuções de tick.

ContextVar garante isolamento entre tasks asyncio. Requisições HTTP
recebem o id do header; cada execução de tick periódico recebe um id
próprio prefixado com o nome da tarefa.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Retorna o correlation_id do contexto atual (ou string vazia)."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> Token[str]:
    """Define o correlation_id no contexto atual.

    Args:
        correlation_id: ID a definir. Se None, gera um novo.

    Returns:
        Token para reset_correlation_id().
    """
    return _correlation_id.set(correlation_id or generate_correlation_id())


def reset_correlation_id(token: Token[str]) -> None:
    """Restaura o correlation_id anterior."""
    _correlation_id.reset(token)


def generate_correlation_id(prefix: str = "") -> str:
    """Gera um novo correlation_id (UUID v4, opcionalmente prefixado)."""
    value = str(uuid.uuid4())
    return f"{prefix}-{value[:12]}" if prefix else value


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Define um correlation_id durante o bloco e restaura ao sair.

    Uso:
        with correlation_scope(generate_correlation_id("tick")) as cid:
            await scheduler.tick()
    """
    token = set_correlation_id(correlation_id)
    try:
        yield _correlation_id.get()
    finally:
        reset_correlation_id(token)
