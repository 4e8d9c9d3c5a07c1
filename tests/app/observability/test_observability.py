"""Testes de correlation_id e métricas via log."""

from __future__ import annotations

import asyncio
import logging

import pytest

from app.observability import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    record_dispatch,
    record_transition,
)


class TestCorrelation:
    def test_scope_sets_and_restores(self) -> None:
        assert get_correlation_id() == ""
        with correlation_scope("abc") as cid:
            assert cid == "abc"
            assert get_correlation_id() == "abc"
        assert get_correlation_id() == ""

    def test_generated_id_with_prefix(self) -> None:
        value = generate_correlation_id("tick-reminder_tick")
        assert value.startswith("tick-reminder_tick-")
        assert len(value.rsplit("-", 1)[1]) == 12

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self) -> None:
        async def worker(name: str) -> str:
            with correlation_scope(name):
                await asyncio.sleep(0)
                return get_correlation_id()

        results = await asyncio.gather(worker("a"), worker("b"))

        assert results == ["a", "b"]


class TestMetrics:
    def test_transition_metric(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="app.observability.metrics"):
            record_transition(
                "pending", "cancelled", accepted=False, error_kind="LateCancellation"
            )

        record = caplog.records[-1]
        assert record.getMessage() == "metric_transition"
        assert record.metric_type == "transition"
        assert record.accepted is False
        assert record.error_kind == "LateCancellation"

    def test_dispatch_metric_omits_empty_error(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="app.observability.metrics"):
            record_dispatch("email", "completed", attempts=1, job_id="j-1")

        record = caplog.records[-1]
        assert record.outcome == "completed"
        assert not hasattr(record, "error_type")
