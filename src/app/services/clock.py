"""Relógio injetável dos serviços de agendamento."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Instante atual em UTC (aware)."""
    return datetime.now(UTC)
