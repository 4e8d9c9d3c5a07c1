"""Configuração centralizada de logging JSON.

Um único StreamHandler no root logger, com formatter JSON e o filter
que injeta service/correlation_id. Chamadas repetidas substituem o
handler anterior.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from config.logging.filters import CorrelationIdFilter
from config.logging.formatters import create_json_formatter
from config.settings.base.core import DEFAULT_SERVICE_NAME

if TYPE_CHECKING:
    from collections.abc import Callable

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def configure_logging(
    level: str = "INFO",
    service_name: str = DEFAULT_SERVICE_NAME,
    correlation_id_getter: Callable[[], str] | None = None,
) -> None:
    """Configura logging JSON estruturado para o serviço.

    Args:
        level: Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        service_name: Nome do serviço nos logs.
        correlation_id_getter: Retorna o correlation_id do contexto atual
            (ex: get_correlation_id de app/observability).

    Raises:
        ValueError: Se o nível de log for inválido.
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Nível de log inválido: {level}. "
            f"Válidos: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    handler = logging.StreamHandler()
    handler.setLevel(level_upper)
    handler.setFormatter(create_json_formatter())
    handler.addFilter(CorrelationIdFilter(service_name, correlation_id_getter))

    root = logging.getLogger()
    root.setLevel(level_upper)
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Retorna logger do módulo (use __name__)."""
    return logging.getLogger(name)


def log_side_effect_failure(
    logger: logging.Logger,
    operation: str,
    error: BaseException,
    **ids: str,
) -> None:
    """Registra falha de efeito colateral best-effort (sem PII).

    Usado quando a transição de status já foi aplicada e o agendamento
    derivado falhou. A transição não é revertida.

    Args:
        logger: Logger do módulo chamador.
        operation: Nome da operação (ex: "cancel_session_reminders").
        error: Exceção capturada.
        **ids: Identificadores de contexto (session_id, recipient_id).
    """
    extra: dict[str, object] = {
        "operation": operation,
        "error_type": type(error).__name__,
        "side_effect_failed": True,
    }
    extra.update(ids)
    logger.warning("scheduling_side_effect_failed", extra=extra)
