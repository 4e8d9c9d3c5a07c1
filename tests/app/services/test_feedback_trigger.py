"""Testes do FeedbackTriggerEngine."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain import (
    FeedbackStatus,
    FeedbackTriggerType,
    JobPriority,
    NotificationPreferences,
    RecipientType,
    Session,
)
from app.infra.crypto.opt_out_token import HmacOptOutTokenCodec
from app.infra.stores.memory_stores import (
    MemoryFeedbackRequestStore,
    MemoryFeedbackSubmissionLookup,
    MemoryPreferenceStore,
)
from app.services.feedback_trigger import FEEDBACK_KIND, FeedbackTriggerEngine
from app.services.preference_resolver import PreferenceResolver
from config.settings.feedback import ABTestGroup, FeedbackSettings
from fsm import SessionStatus
from tests.fakes.fake_clock import FakeClock

COMPLETED_AT = datetime(2026, 5, 1, 16, 0, tzinfo=UTC)


class Harness:
    def __init__(self, settings: FeedbackSettings | None = None) -> None:
        self.clock = FakeClock(COMPLETED_AT)
        self.store = MemoryFeedbackRequestStore()
        self.submissions = MemoryFeedbackSubmissionLookup()
        self.preferences = MemoryPreferenceStore()
        self.codec = HmacOptOutTokenCodec("segredo")
        self.dispatcher = MagicMock()
        self.dispatcher.dispatch = AsyncMock()
        self.engine = FeedbackTriggerEngine(
            request_store=self.store,
            submissions=self.submissions,
            resolver=PreferenceResolver(self.preferences, clock=self.clock),
            dispatcher=self.dispatcher,
            codec=self.codec,
            settings=settings or FeedbackSettings(),
            clock=self.clock,
            rng=random.Random(7),
        )

    def completed_session(self) -> Session:
        session = Session(
            session_id="s-1",
            coach_id="coach-1",
            client_id="client-1",
            start_at=COMPLETED_AT - timedelta(hours=1),
        )
        session.stamp(SessionStatus.COMPLETED, COMPLETED_AT)
        return session


@pytest.fixture
def harness() -> Harness:
    return Harness()


class TestCreation:
    @pytest.mark.asyncio
    async def test_initial_and_reminders_per_participant(self, harness: Harness) -> None:
        created = await harness.engine.on_session_completed(harness.completed_session())

        assert len(created) == 8
        client = sorted(
            (r for r in created if r.recipient_type is RecipientType.CLIENT),
            key=lambda r: r.reminder_number,
        )
        assert [r.trigger_type for r in client] == [
            FeedbackTriggerType.INITIAL,
            FeedbackTriggerType.REMINDER,
            FeedbackTriggerType.REMINDER,
            FeedbackTriggerType.REMINDER,
        ]
        assert [r.scheduled_at - COMPLETED_AT for r in client] == [
            timedelta(hours=24),
            timedelta(hours=48),
            timedelta(hours=72),
            timedelta(hours=168),
        ]
        assert all(r.ab_test_group is None for r in created)

    @pytest.mark.asyncio
    async def test_completion_is_idempotent(self, harness: Harness) -> None:
        session = harness.completed_session()
        await harness.engine.on_session_completed(session)

        again = await harness.engine.on_session_completed(session)

        assert again == []
        assert len(await harness.engine.list_requests("s-1")) == 8

    @pytest.mark.asyncio
    async def test_recipient_with_feedback_disabled_is_skipped(self, harness: Harness) -> None:
        record = NotificationPreferences.defaults_for("coach-1")
        record.notification_types.feedback_requests = False
        await harness.preferences.save(record)

        created = await harness.engine.on_session_completed(harness.completed_session())

        assert {r.recipient_id for r in created} == {"client-1"}

    @pytest.mark.asyncio
    async def test_max_reminders_caps_follow_ups(self) -> None:
        harness = Harness(FeedbackSettings(max_reminders=1))

        created = await harness.engine.on_session_completed(harness.completed_session())

        assert len(created) == 4
        assert max(r.reminder_number for r in created) == 1

    @pytest.mark.asyncio
    async def test_ab_group_sets_delay_on_initial_only(self) -> None:
        groups = (ABTestGroup(name="early", percentage=100, delay_hours=2),)
        harness = Harness(FeedbackSettings(ab_testing_enabled=True, ab_groups=groups))

        created = await harness.engine.on_session_completed(harness.completed_session())

        initial = [r for r in created if r.trigger_type is FeedbackTriggerType.INITIAL]
        reminders = [r for r in created if r.is_reminder]
        assert all(r.ab_test_group == "early" for r in initial)
        assert all(r.scheduled_at == COMPLETED_AT + timedelta(hours=2) for r in initial)
        assert all(r.ab_test_group is None for r in reminders)


class TestAbSelection:
    def test_disabled_returns_none(self, harness: Harness) -> None:
        assert harness.engine.select_ab_group() is None

    def test_weighted_choice_respects_zero_weight(self) -> None:
        groups = (
            ABTestGroup(name="a", percentage=100, delay_hours=24),
            ABTestGroup(name="b", percentage=0, delay_hours=2),
        )
        harness = Harness(FeedbackSettings(ab_testing_enabled=True, ab_groups=groups))

        picks = {harness.engine.select_ab_group().name for _ in range(50)}

        assert picks == {"a"}


class TestTick:
    @pytest.mark.asyncio
    async def test_due_initial_is_dispatched_with_medium_priority(
        self, harness: Harness
    ) -> None:
        await harness.engine.on_session_completed(harness.completed_session())
        harness.clock.advance(hours=24)

        assert await harness.engine.tick() == 2

        kwargs = harness.dispatcher.dispatch.await_args.kwargs
        assert kwargs["kind"] == FEEDBACK_KIND
        assert kwargs["priority"] is JobPriority.MEDIUM
        assert kwargs["metadata"]["trigger_type"] == "initial"
        assert "/feedback/s-1?type=" in kwargs["body"]
        stats = await harness.engine.stats()
        assert stats["sent"] == 2
        assert stats["pending"] == 6

    @pytest.mark.asyncio
    async def test_reminders_use_high_priority(self, harness: Harness) -> None:
        await harness.engine.on_session_completed(harness.completed_session())
        harness.clock.advance(hours=48)

        assert await harness.engine.tick() == 4

        priorities = [c.kwargs["priority"] for c in harness.dispatcher.dispatch.await_args_list]
        assert priorities.count(JobPriority.HIGH) == 2

    @pytest.mark.asyncio
    async def test_submitted_feedback_closes_request(self, harness: Harness) -> None:
        await harness.engine.on_session_completed(harness.completed_session())
        harness.submissions.record_submission("s-1", "client-1", RecipientType.CLIENT)
        harness.clock.advance(days=8)

        assert await harness.engine.tick() == 4

        client_rows = [
            r for r in await harness.engine.list_requests("s-1") if r.recipient_id == "client-1"
        ]
        assert {r.status for r in client_rows} == {FeedbackStatus.COMPLETED}

    @pytest.mark.asyncio
    async def test_disabled_at_send_time_is_opted_out(self, harness: Harness) -> None:
        await harness.engine.on_session_completed(harness.completed_session())
        await PreferenceResolver(harness.preferences).disable_feedback("coach-1")
        harness.clock.advance(hours=24)

        assert await harness.engine.tick() == 1
        assert (await harness.engine.stats())["opted_out"] == 1

    @pytest.mark.asyncio
    async def test_no_channels_marks_sent_without_dispatch(self, harness: Harness) -> None:
        for user_id in ("coach-1", "client-1"):
            record = NotificationPreferences.defaults_for(user_id)
            record.channels.email = record.channels.push = record.channels.in_app = False
            await harness.preferences.save(record)
        await harness.engine.on_session_completed(harness.completed_session())
        harness.clock.advance(hours=24)

        assert await harness.engine.tick() == 0
        harness.dispatcher.dispatch.assert_not_awaited()
        assert (await harness.engine.stats())["sent"] == 2

    @pytest.mark.asyncio
    async def test_dispatch_error_marks_failed(self, harness: Harness) -> None:
        await harness.engine.on_session_completed(harness.completed_session())
        harness.dispatcher.dispatch.side_effect = RuntimeError("fila")
        harness.clock.advance(hours=24)

        assert await harness.engine.tick() == 0
        assert (await harness.engine.stats())["failed"] == 2


class TestOptOut:
    @pytest.mark.asyncio
    async def test_valid_token_disables_and_closes_pending(self, harness: Harness) -> None:
        await harness.engine.on_session_completed(harness.completed_session())
        token = harness.codec.encode("s-1", "client-1", COMPLETED_AT)

        assert await harness.engine.handle_opt_out(token) is True

        prefs = await harness.preferences.get("client-1")
        assert prefs is not None
        assert prefs.notification_types.feedback_requests is False
        assert (await harness.engine.stats())["opted_out"] == 4

    @pytest.mark.asyncio
    async def test_invalid_token_changes_nothing(self, harness: Harness) -> None:
        await harness.engine.on_session_completed(harness.completed_session())

        assert await harness.engine.handle_opt_out("lixo.token") is False
        assert (await harness.engine.stats())["opted_out"] == 0


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_cancel_and_cleanup(self, harness: Harness) -> None:
        await harness.engine.on_session_completed(harness.completed_session())
        harness.submissions.record_submission("s-1", "coach-1", RecipientType.COACH)
        harness.clock.advance(hours=24)
        await harness.engine.tick()

        assert await harness.engine.cancel_session_requests("s-1") == 6
        assert await harness.engine.cleanup() == 1
        remaining = await harness.engine.list_requests()
        assert [(r.recipient_id, r.status) for r in remaining] == [
            ("client-1", FeedbackStatus.SENT)
        ]
