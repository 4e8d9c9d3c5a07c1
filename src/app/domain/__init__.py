"""Modelos de domínio do núcleo de agendamento."""

from app.domain.feedback import (
    FeedbackKey,
    FeedbackRequest,
    FeedbackStatus,
    FeedbackTriggerType,
)
from app.domain.job import Job, JobCategory, JobPriority
from app.domain.preferences import (
    ChannelPreferences,
    EmailPreferences,
    NotificationChannel,
    NotificationPreferences,
    NotificationTypePreferences,
    QuietHours,
    ReminderTiming,
)
from app.domain.recipient import Client, Coach, Recipient, RecipientType, address_for
from app.domain.reminder import ReminderKey, ScheduledReminder
from app.domain.session import (
    CancellationReason,
    CancellationRecord,
    RescheduleRecord,
    Session,
)

__all__ = [
    "CancellationReason",
    "CancellationRecord",
    "ChannelPreferences",
    "Client",
    "Coach",
    "EmailPreferences",
    "FeedbackKey",
    "FeedbackRequest",
    "FeedbackStatus",
    "FeedbackTriggerType",
    "Job",
    "JobCategory",
    "JobPriority",
    "NotificationChannel",
    "NotificationPreferences",
    "NotificationTypePreferences",
    "QuietHours",
    "Recipient",
    "RecipientType",
    "ReminderKey",
    "ReminderTiming",
    "RescheduleRecord",
    "ScheduledReminder",
    "Session",
    "address_for",
]
