"""Testes do rate limiter de janela deslizante."""

from __future__ import annotations

import pytest

from app.services.rate_limiter import SlidingWindowRateLimiter


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_max_in_window() -> None:
    clock = FakeMonotonic()
    limiter = SlidingWindowRateLimiter(2, 10.0, clock=clock)

    assert limiter.try_acquire() is True
    clock.now += 1
    assert limiter.try_acquire() is True
    assert limiter.try_acquire() is False
    assert limiter.in_window == 2
    assert limiter.seconds_until_available() == pytest.approx(9.0)


def test_window_slides() -> None:
    clock = FakeMonotonic()
    limiter = SlidingWindowRateLimiter(1, 5.0, clock=clock)
    limiter.try_acquire()

    clock.now += 5.0

    assert limiter.seconds_until_available() == 0.0
    assert limiter.try_acquire() is True


@pytest.mark.parametrize(("max_events", "window"), [(0, 1.0), (1, 0.0)])
def test_invalid_limits(max_events: int, window: float) -> None:
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(max_events, window)


@pytest.mark.asyncio
async def test_acquire_returns_when_quota_available() -> None:
    limiter = SlidingWindowRateLimiter(3, 60.0)

    await limiter.acquire()
    await limiter.acquire()

    assert limiter.in_window == 2
