"""Métricas via structured logging.

Cada métrica é uma linha de log com `metric_type`, agregável depois
pela plataforma de logs. Nenhum campo carrega PII: apenas ids,
categorias e contadores.

Métricas:
- transition: transição de status aceita ou rejeitada
- dispatch: evento de job da fila (completed/failed/dead_lettered)
- tick: execução de tarefa periódica
- latency: duração de operação
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def record_transition(
    from_state: str,
    to_state: str,
    *,
    accepted: bool,
    error_kind: str | None = None,
) -> None:
    """Registra tentativa de transição de status.

    Args:
        from_state: Status de origem
        to_state: Status pedido
        accepted: Se a transição foi aplicada
        error_kind: Tipo do erro quando rejeitada
    """
    extra: dict[str, object] = {
        "metric_type": "transition",
        "from_state": from_state,
        "to_state": to_state,
        "accepted": accepted,
    }
    if error_kind:
        extra["error_kind"] = error_kind
    logger.info("metric_transition", extra=extra)


def record_dispatch(
    category: str,
    outcome: str,
    *,
    attempts: int,
    job_id: str,
    error_type: str | None = None,
) -> None:
    """Registra desfecho de um job da fila.

    Args:
        category: Categoria da fila (email, notification, ...)
        outcome: completed | failed | dead_lettered
        attempts: Tentativas consumidas até o evento
        job_id: Identificador do job
        error_type: Classe do erro (quando houver)
    """
    extra: dict[str, object] = {
        "metric_type": "dispatch",
        "category": category,
        "outcome": outcome,
        "attempts": attempts,
        "job_id": job_id,
    }
    if error_type:
        extra["error_type"] = error_type
    logger.info("metric_dispatch", extra=extra)


def record_tick(
    task_name: str,
    *,
    processed: int,
    latency_ms: float,
    skipped: bool = False,
) -> None:
    """Registra execução (ou skip por sobreposição) de tarefa periódica."""
    logger.info(
        "metric_tick",
        extra={
            "metric_type": "tick",
            "task_name": task_name,
            "processed": processed,
            "latency_ms": round(latency_ms, 2),
            "skipped": skipped,
        },
    )


def record_latency(component: str, operation: str, latency_ms: float) -> None:
    """Registra latência de operação.

    Args:
        component: Nome do componente (ex: "dispatch_queue")
        operation: Nome da operação (ex: "notification_delivery")
        latency_ms: Latência em milissegundos
    """
    logger.info(
        "metric_latency",
        extra={
            "metric_type": "latency",
            "component": component,
            "operation": operation,
            "latency_ms": round(latency_ms, 2),
        },
    )
