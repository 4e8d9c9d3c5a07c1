"""Serviços de aplicação.

Unidades reutilizáveis de orquestração (sem IO direto).
Implementações concretas de IO ficam em app/infra/.
"""

from app.services.dispatch_queue import DispatchQueue, QueueEvent, QueueEventType
from app.services.feedback_trigger import FeedbackTriggerEngine
from app.services.notification_delivery import (
    EmailDeliveryHandler,
    NotificationDeliveryHandler,
    NotificationDispatcher,
)
from app.services.periodic import PeriodicScheduler, TickOutcome
from app.services.preference_resolver import PreferenceResolver, ResolvedPreferences
from app.services.rate_limiter import SlidingWindowRateLimiter
from app.services.reminder_scheduler import ReminderScheduler
from app.services.session_lifecycle import SessionLifecycle

__all__ = [
    "DispatchQueue",
    "EmailDeliveryHandler",
    "FeedbackTriggerEngine",
    "NotificationDeliveryHandler",
    "NotificationDispatcher",
    "PeriodicScheduler",
    "PreferenceResolver",
    "QueueEvent",
    "QueueEventType",
    "ReminderScheduler",
    "ResolvedPreferences",
    "SessionLifecycle",
    "SlidingWindowRateLimiter",
    "TickOutcome",
]
