"""Testes do SessionLifecycle: transições e efeitos de agendamento."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain import (
    CancellationReason,
    FeedbackStatus,
    JobPriority,
    NotificationPreferences,
)
from app.infra.crypto.opt_out_token import HmacOptOutTokenCodec
from app.infra.stores.memory_stores import (
    MemoryFeedbackRequestStore,
    MemoryFeedbackSubmissionLookup,
    MemoryPreferenceStore,
    MemoryReminderStore,
    MemorySessionStore,
)
from app.services.feedback_trigger import FeedbackTriggerEngine
from app.services.preference_resolver import PreferenceResolver
from app.services.reminder_scheduler import ReminderScheduler
from app.services.session_lifecycle import (
    CANCELLATION_KIND,
    CONFIRMATION_KIND,
    RESCHEDULE_KIND,
    SessionLifecycle,
)
from config.settings.feedback import FeedbackSettings
from fsm import SessionStatus
from tests.fakes.fake_clock import FakeClock
from utils.errors import (
    FutureCompletionError,
    InvalidCancellationReasonError,
    InvalidTransitionError,
    LateCancellationError,
    SchedulingConflictError,
    SessionNotFoundError,
)

NOW = datetime(2026, 5, 4, 9, 0, tzinfo=UTC)
START = NOW + timedelta(hours=48)


class Harness:
    def __init__(self) -> None:
        self.clock = FakeClock(NOW)
        self.sessions = MemorySessionStore()
        self.preferences = MemoryPreferenceStore()
        self.reminder_store = MemoryReminderStore()
        self.feedback_store = MemoryFeedbackRequestStore()
        self.resolver = PreferenceResolver(self.preferences, clock=self.clock)
        self.dispatcher = MagicMock()
        self.dispatcher.dispatch = AsyncMock()
        self.dispatcher.dispatch_email = AsyncMock()
        self.reminders = ReminderScheduler(
            reminder_store=self.reminder_store,
            session_store=self.sessions,
            resolver=self.resolver,
            dispatcher=self.dispatcher,
            clock=self.clock,
        )
        self.feedback = FeedbackTriggerEngine(
            request_store=self.feedback_store,
            submissions=MemoryFeedbackSubmissionLookup(),
            resolver=self.resolver,
            dispatcher=self.dispatcher,
            codec=HmacOptOutTokenCodec("segredo"),
            settings=FeedbackSettings(),
            clock=self.clock,
        )
        self.lifecycle = SessionLifecycle(
            session_store=self.sessions,
            reminders=self.reminders,
            feedback=self.feedback,
            resolver=self.resolver,
            dispatcher=self.dispatcher,
            clock=self.clock,
        )

    async def create(self, start_at: datetime = START, session_id: str = "s-1"):
        return await self.lifecycle.create_session(
            session_id=session_id,
            coach_id="coach-1",
            client_id="client-1",
            start_at=start_at,
        )

    def emails(self, kind: str) -> list:
        return [
            c for c in self.dispatcher.dispatch_email.await_args_list if c.kwargs["kind"] == kind
        ]


@pytest.fixture
def harness() -> Harness:
    return Harness()


class TestCreateAndStatus:
    @pytest.mark.asyncio
    async def test_create_persists_pending_and_schedules(self, harness: Harness) -> None:
        session = await harness.create()

        assert session.status is SessionStatus.PENDING
        assert session.status_timestamps[SessionStatus.PENDING] == NOW
        assert (await harness.lifecycle.get_session("s-1")) == session
        assert len(await harness.reminder_store.list_all()) == 2

    @pytest.mark.asyncio
    async def test_create_sends_confirmation_to_both_participants(self, harness: Harness) -> None:
        await harness.create()

        calls = harness.emails(CONFIRMATION_KIND)
        assert {c.kwargs["recipient_id"] for c in calls} == {"coach-1", "client-1"}
        assert all(c.kwargs["priority"] is JobPriority.HIGH for c in calls)
        assert all(c.kwargs["subject"] == "Coaching Session Confirmed" for c in calls)
        assert "2026-05-06 09:00 UTC" in calls[0].kwargs["body"]

    @pytest.mark.asyncio
    async def test_confirmation_respects_preferences(self, harness: Harness) -> None:
        record = NotificationPreferences.defaults_for("client-1")
        record.notification_types.session_confirmations = False
        await harness.preferences.save(record)
        coach = NotificationPreferences.defaults_for("coach-1")
        coach.channels.email = False
        await harness.preferences.save(coach)

        session = await harness.create()

        assert session.status is SessionStatus.PENDING
        assert harness.emails(CONFIRMATION_KIND) == []

    @pytest.mark.asyncio
    async def test_confirmation_failure_keeps_session(
        self, harness: Harness, caplog: pytest.LogCaptureFixture
    ) -> None:
        harness.dispatcher.dispatch_email.side_effect = RuntimeError("fila fora")

        with caplog.at_level(logging.WARNING):
            session = await harness.create()

        assert (await harness.lifecycle.get_session("s-1")) == session
        failures = [r for r in caplog.records if r.getMessage() == "scheduling_side_effect_failed"]
        assert failures[0].operation == "notify_session_confirmed"

    @pytest.mark.asyncio
    async def test_unknown_session_raises(self, harness: Harness) -> None:
        with pytest.raises(SessionNotFoundError):
            await harness.lifecycle.update_status("nope", SessionStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_full_path_to_completed_creates_feedback(self, harness: Harness) -> None:
        await harness.create()
        harness.clock.set(START)

        await harness.lifecycle.update_status("s-1", "in-progress")
        harness.clock.advance(hours=1)
        session = await harness.lifecycle.update_status("s-1", SessionStatus.COMPLETED)

        assert session.completed_at == START + timedelta(hours=1)
        requests = await harness.feedback.list_requests("s-1")
        assert len(requests) == 8

    @pytest.mark.asyncio
    async def test_rejected_transition_leaves_session_untouched(self, harness: Harness) -> None:
        await harness.create()

        with pytest.raises(FutureCompletionError) as exc_info:
            await harness.lifecycle.update_status("s-1", SessionStatus.COMPLETED)

        assert "in-progress" in exc_info.value.allowed_targets
        stored = await harness.lifecycle.get_session("s-1")
        assert stored.status is SessionStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_status_is_invalid_transition(self, harness: Harness) -> None:
        await harness.create()

        with pytest.raises(InvalidTransitionError) as exc_info:
            await harness.lifecycle.update_status("s-1", "done")

        assert exc_info.value.allowed_targets == frozenset(
            {"in-progress", "cancelled", "rescheduled"}
        )
        assert (await harness.lifecycle.get_session("s-1")).status is SessionStatus.PENDING

    @pytest.mark.asyncio
    async def test_completed_is_terminal(self, harness: Harness) -> None:
        await harness.create(start_at=NOW - timedelta(hours=2))
        await harness.lifecycle.update_status("s-1", SessionStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await harness.lifecycle.update_status("s-1", SessionStatus.PENDING)
        assert exc_info.value.allowed_targets == frozenset()

    @pytest.mark.asyncio
    async def test_reset_from_cancelled_reschedules_reminders(self, harness: Harness) -> None:
        await harness.create()
        await harness.lifecycle.update_status("s-1", SessionStatus.CANCELLED)
        assert await harness.reminders.list_reminders("s-1") == []

        await harness.lifecycle.update_status("s-1", SessionStatus.PENDING)

        assert len(await harness.reminders.list_reminders("s-1")) == 2

    @pytest.mark.asyncio
    async def test_side_effect_failure_does_not_undo_transition(
        self, harness: Harness, caplog: pytest.LogCaptureFixture
    ) -> None:
        await harness.create()
        harness.reminder_store.delete_unsent_for_session = AsyncMock(
            side_effect=RuntimeError("store fora")
        )

        with caplog.at_level(logging.WARNING):
            session = await harness.lifecycle.update_status("s-1", SessionStatus.CANCELLED)

        assert session.status is SessionStatus.CANCELLED
        stored = await harness.lifecycle.get_session("s-1")
        assert stored.status is SessionStatus.CANCELLED
        failures = [r for r in caplog.records if r.getMessage() == "scheduling_side_effect_failed"]
        assert failures[0].operation == "cancel_session_reminders"
        assert failures[0].error_type == "SchedulingFailure"
        assert failures[0].cause_type == "RuntimeError"


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_records_reason_and_notifies(self, harness: Harness) -> None:
        await harness.create()

        session = await harness.lifecycle.cancel_session(
            "s-1", "illness", cancelled_by="client-1", reason_text="gripe"
        )

        assert session.status is SessionStatus.CANCELLED
        assert session.cancellation is not None
        assert session.cancellation.reason is CancellationReason.ILLNESS
        assert session.cancellation.cancelled_at == NOW
        calls = harness.emails(CANCELLATION_KIND)
        assert {c.kwargs["recipient_id"] for c in calls} == {"coach-1", "client-1"}
        assert all(c.kwargs["priority"] is JobPriority.HIGH for c in calls)

    @pytest.mark.asyncio
    async def test_notice_respects_preferences(self, harness: Harness) -> None:
        record = NotificationPreferences.defaults_for("coach-1")
        record.notification_types.session_cancellations = False
        await harness.preferences.save(record)
        await harness.create()

        await harness.lifecycle.cancel_session("s-1", "other", cancelled_by="client-1")

        calls = harness.emails(CANCELLATION_KIND)
        assert [c.kwargs["recipient_id"] for c in calls] == ["client-1"]

    @pytest.mark.asyncio
    async def test_invalid_reason(self, harness: Harness) -> None:
        await harness.create()

        with pytest.raises(InvalidCancellationReasonError):
            await harness.lifecycle.cancel_session("s-1", "tedio", cancelled_by="client-1")

    @pytest.mark.asyncio
    async def test_late_cancellation(self, harness: Harness) -> None:
        await harness.create(start_at=NOW + timedelta(minutes=90))

        with pytest.raises(LateCancellationError):
            await harness.lifecycle.cancel_session("s-1", "other", cancelled_by="client-1")
        assert harness.emails(CANCELLATION_KIND) == []

    @pytest.mark.asyncio
    async def test_cancel_removes_pending_feedback(self, harness: Harness) -> None:
        await harness.create(start_at=NOW - timedelta(minutes=30))
        await harness.lifecycle.update_status("s-1", SessionStatus.IN_PROGRESS)
        await harness.feedback.on_session_completed(await harness.lifecycle.get_session("s-1"))

        await harness.lifecycle.cancel_session("s-1", "technical_issues", cancelled_by="coach-1")

        stats = await harness.feedback.stats()
        assert stats["total"] == 0
        assert stats[FeedbackStatus.PENDING.value] == 0


class TestReschedule:
    @pytest.mark.asyncio
    async def test_reschedule_moves_start_and_reminders(self, harness: Harness) -> None:
        await harness.create()
        new_start = START + timedelta(days=2)

        session = await harness.lifecycle.reschedule_session(
            "s-1", new_start, rescheduled_by="coach-1", reason="viagem"
        )

        assert session.status is SessionStatus.RESCHEDULED
        assert session.start_at == new_start
        assert session.reschedule is not None
        assert session.reschedule.original_date == START
        assert session.reschedule.reschedule_count == 1
        times = {r.scheduled_for for r in await harness.reminders.list_reminders("s-1")}
        assert times == {new_start - timedelta(hours=24)}
        assert len(harness.emails(RESCHEDULE_KIND)) == 2
        assert harness.emails(CANCELLATION_KIND) == []

    @pytest.mark.asyncio
    async def test_second_reschedule_keeps_original_date(self, harness: Harness) -> None:
        await harness.create()
        await harness.lifecycle.reschedule_session(
            "s-1", START + timedelta(days=1), rescheduled_by="coach-1"
        )

        session = await harness.lifecycle.reschedule_session(
            "s-1", START + timedelta(days=3), rescheduled_by="client-1"
        )

        assert session.status is SessionStatus.RESCHEDULED
        assert session.reschedule is not None
        assert session.reschedule.original_date == START
        assert session.reschedule.reschedule_count == 2
        assert session.reschedule.rescheduled_by == "client-1"

    @pytest.mark.asyncio
    async def test_past_start_is_conflict(self, harness: Harness) -> None:
        await harness.create()

        with pytest.raises(SchedulingConflictError):
            await harness.lifecycle.reschedule_session(
                "s-1", NOW - timedelta(hours=1), rescheduled_by="coach-1"
            )
        assert (await harness.lifecycle.get_session("s-1")).status is SessionStatus.PENDING

    @pytest.mark.asyncio
    async def test_coach_double_booking_is_conflict(self, harness: Harness) -> None:
        await harness.create()
        other_start = START + timedelta(days=1)
        await harness.create(start_at=other_start, session_id="s-2")

        with pytest.raises(SchedulingConflictError):
            await harness.lifecycle.reschedule_session(
                "s-1", other_start, rescheduled_by="coach-1"
            )

    @pytest.mark.asyncio
    async def test_rescheduled_session_keeps_its_slot(self, harness: Harness) -> None:
        await harness.create()
        await harness.create(start_at=START + timedelta(hours=3), session_id="s-2")
        slot = START + timedelta(days=2)
        await harness.lifecycle.reschedule_session("s-1", slot, rescheduled_by="coach-1")

        with pytest.raises(SchedulingConflictError):
            await harness.lifecycle.reschedule_session("s-2", slot, rescheduled_by="coach-1")

        stored = await harness.lifecycle.get_session("s-2")
        assert stored.status is SessionStatus.PENDING
        assert stored.start_at == START + timedelta(hours=3)

    @pytest.mark.asyncio
    async def test_cancelled_session_cannot_be_rescheduled(self, harness: Harness) -> None:
        await harness.create()
        await harness.lifecycle.update_status("s-1", SessionStatus.CANCELLED)

        with pytest.raises(InvalidTransitionError):
            await harness.lifecycle.reschedule_session(
                "s-1", NOW - timedelta(days=1), rescheduled_by="coach-1"
            )

    @pytest.mark.asyncio
    async def test_naive_datetime_is_rejected(self, harness: Harness) -> None:
        await harness.create()

        with pytest.raises(ValueError):
            await harness.lifecycle.reschedule_session(
                "s-1", datetime(2026, 6, 1, 10, 0), rescheduled_by="coach-1"
            )


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_cancels_scheduled_work(self, harness: Harness) -> None:
        await harness.create()

        assert await harness.lifecycle.delete_session("s-1") is True
        assert await harness.reminders.list_reminders("s-1") == []
        with pytest.raises(SessionNotFoundError):
            await harness.lifecycle.delete_session("s-1")
