"""Observabilidade: correlation_id e métricas via logs estruturados."""

from app.observability.correlation import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from app.observability.metrics import (
    record_dispatch,
    record_latency,
    record_tick,
    record_transition,
)

__all__ = [
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "record_dispatch",
    "record_latency",
    "record_tick",
    "record_transition",
    "reset_correlation_id",
    "set_correlation_id",
]
