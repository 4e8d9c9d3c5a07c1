"""Relógio controlável para testes deterministas."""

from __future__ import annotations

from datetime import datetime, timedelta


class FakeClock:
    """Clock injetável: retorna `now` até alguém avançar."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now
