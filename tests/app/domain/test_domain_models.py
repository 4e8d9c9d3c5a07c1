"""Testes dos modelos de domínio (sessão, preferências, destinatários, job)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from app.domain import (
    CancellationReason,
    CancellationRecord,
    Client,
    Coach,
    FeedbackRequest,
    FeedbackStatus,
    FeedbackTriggerType,
    Job,
    JobCategory,
    JobPriority,
    NotificationChannel,
    NotificationPreferences,
    QuietHours,
    RecipientType,
    ReminderTiming,
    RescheduleRecord,
    ScheduledReminder,
    Session,
    address_for,
)
from fsm import SessionStatus

START = datetime(2026, 5, 4, 15, 0, tzinfo=UTC)


class TestSession:
    def test_naive_start_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="timezone-aware"):
            Session(session_id="s", coach_id="c", client_id="u", start_at=datetime(2026, 1, 1))

    def test_stamp_sets_status_and_timestamp(self) -> None:
        session = Session(session_id="s", coach_id="c", client_id="u", start_at=START)
        assert session.status is SessionStatus.PENDING
        assert session.completed_at is None

        session.stamp(SessionStatus.COMPLETED, START + timedelta(hours=1))

        assert session.is_terminal
        assert session.completed_at == START + timedelta(hours=1)

    def test_serialization_preserves_records(self) -> None:
        session = Session(
            session_id="s-1",
            coach_id="coach-1",
            client_id="client-1",
            start_at=START,
            notes="primeira sessão",
            cancellation=CancellationRecord(
                reason=CancellationReason.ILLNESS,
                cancelled_by="client-1",
                cancelled_at=START - timedelta(days=1),
            ),
            reschedule=RescheduleRecord(
                original_date=START - timedelta(days=7),
                rescheduled_by="coach-1",
                rescheduled_at=START - timedelta(days=8),
                reschedule_count=2,
            ),
        )
        session.stamp(SessionStatus.CANCELLED, START - timedelta(days=1))

        data = session.to_dict()
        assert data["status"] == "cancelled"
        assert data["cancellation"]["reason"] == "illness"

        restored = Session.from_dict(data)
        assert restored == session


class TestPreferences:
    def test_defaults(self) -> None:
        prefs = NotificationPreferences.defaults_for("u-1")
        assert prefs.channels.enabled() == frozenset(
            {NotificationChannel.EMAIL, NotificationChannel.IN_APP, NotificationChannel.PUSH}
        )
        assert prefs.reminder_timing.hours_before == 24
        assert prefs.quiet_hours.enabled is False
        assert prefs.notification_types.feedback_requests is True

    @pytest.mark.parametrize("hours", [0, 169])
    def test_hours_before_bounds(self, hours: int) -> None:
        with pytest.raises(ValidationError):
            ReminderTiming(hours_before=hours)

    def test_additional_hours_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ReminderTiming(additional_reminder_hours=[2, 500])

    @pytest.mark.parametrize("value", ["24:00", "7:30", "aa:bb"])
    def test_quiet_hours_rejects_bad_hhmm(self, value: str) -> None:
        with pytest.raises(ValidationError):
            QuietHours(start_time=value)

    def test_quiet_hours_rejects_unknown_timezone(self) -> None:
        with pytest.raises(ValidationError):
            QuietHours(timezone="Mars/Olympus")

    def test_extra_fields_are_ignored(self) -> None:
        prefs = NotificationPreferences.model_validate({"user_id": "u", "legacy": True})
        assert not hasattr(prefs, "legacy")


class TestRecipients:
    def test_address_mapping(self) -> None:
        coach = Coach(user_id="c-1", name="Ana", email="ana@example.com", phone="+5511")
        client = Client(user_id="u-1", name="Bia", email="")

        assert coach.recipient_type is RecipientType.COACH
        assert client.recipient_type is RecipientType.CLIENT
        assert address_for(coach, NotificationChannel.EMAIL) == "ana@example.com"
        assert address_for(coach, NotificationChannel.SMS) == "+5511"
        assert address_for(client, NotificationChannel.EMAIL) is None
        assert address_for(client, NotificationChannel.SMS) is None
        assert address_for(client, NotificationChannel.PUSH) == "u-1"
        assert address_for(client, NotificationChannel.IN_APP) == "u-1"


class TestTables:
    def test_reminder_key_and_roundtrip(self) -> None:
        reminder = ScheduledReminder(
            session_id="s",
            recipient_id="u",
            recipient_type=RecipientType.CLIENT,
            scheduled_for=START,
        )
        assert reminder.key == ("s", "u", START)
        assert ScheduledReminder.from_dict(reminder.to_dict()) == reminder

    def test_feedback_key_distinguishes_reminders(self) -> None:
        initial = FeedbackRequest(
            session_id="s",
            recipient_id="u",
            recipient_type=RecipientType.CLIENT,
            trigger_type=FeedbackTriggerType.INITIAL,
            scheduled_at=START,
        )
        reminder = FeedbackRequest(
            session_id="s",
            recipient_id="u",
            recipient_type=RecipientType.CLIENT,
            trigger_type=FeedbackTriggerType.REMINDER,
            scheduled_at=START,
            reminder_number=1,
            status=FeedbackStatus.SENT,
            sent_at=START,
        )
        assert initial.key != reminder.key
        assert reminder.is_reminder and not initial.is_reminder
        assert FeedbackRequest.from_dict(reminder.to_dict()) == reminder


class TestJob:
    def test_retry_delay_is_exponential(self) -> None:
        job = Job(category=JobCategory.EMAIL, payload={}, backoff_seconds=2.0)
        job.attempts = 1
        assert job.retry_delay() == 2.0
        job.attempts = 3
        assert job.retry_delay() == 8.0
        assert job.exhausted

    def test_priority_order_and_label(self) -> None:
        assert sorted([JobPriority.LOW, JobPriority.URGENT, JobPriority.MEDIUM]) == [
            JobPriority.URGENT,
            JobPriority.MEDIUM,
            JobPriority.LOW,
        ]
        assert JobPriority.HIGH.label == "high"

    def test_log_dict_has_no_payload(self) -> None:
        job = Job(category=JobCategory.NOTIFICATION, payload={"body": "segredo"})
        assert "segredo" not in str(job.to_log_dict())
