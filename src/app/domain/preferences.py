"""Preferências de notificação por usuário.

Um registro por usuário, criado com defaults no primeiro acesso e
alterado pelo próprio usuário ou por eventos de opt-out.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HHMM_REGEX = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

MIN_REMINDER_HOURS = 1
MAX_REMINDER_HOURS = 168


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationChannel(StrEnum):
    """Canais de entrega suportados."""

    EMAIL = "email"
    IN_APP = "in_app"
    SMS = "sms"
    PUSH = "push"


class ChannelPreferences(BaseModel):
    """Canais habilitados (sms desligado por padrão)."""

    model_config = ConfigDict(extra="ignore")

    email: bool = True
    in_app: bool = True
    sms: bool = False
    push: bool = True

    def enabled(self) -> frozenset[NotificationChannel]:
        """Conjunto de canais habilitados."""
        return frozenset(
            channel for channel in NotificationChannel if getattr(self, channel.value)
        )


class NotificationTypePreferences(BaseModel):
    """Tipos de notificação habilitados."""

    model_config = ConfigDict(extra="ignore")

    session_reminders: bool = True
    session_confirmations: bool = True
    session_cancellations: bool = True
    session_rescheduling: bool = True
    feedback_requests: bool = True


class ReminderTiming(BaseModel):
    """Antecedência dos lembretes de sessão."""

    model_config = ConfigDict(extra="ignore")

    hours_before: int = Field(
        default=24,
        ge=MIN_REMINDER_HOURS,
        le=MAX_REMINDER_HOURS,
        description="Horas antes do início para o lembrete principal.",
    )
    enable_multiple_reminders: bool = False
    additional_reminder_hours: list[int] = Field(default_factory=list)

    @field_validator("additional_reminder_hours")
    @classmethod
    def _validate_additional_hours(cls, value: list[int]) -> list[int]:
        for hours in value:
            if not MIN_REMINDER_HOURS <= hours <= MAX_REMINDER_HOURS:
                raise ValueError(
                    f"additional_reminder_hours deve estar entre "
                    f"{MIN_REMINDER_HOURS} e {MAX_REMINDER_HOURS}"
                )
        return value


class QuietHours(BaseModel):
    """Janela de silêncio; pode atravessar a meia-noite (start > end)."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    start_time: str = "22:00"
    end_time: str = "08:00"
    timezone: str = "UTC"

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_hhmm(cls, value: str) -> str:
        if not _HHMM_REGEX.match(value):
            raise ValueError("horário deve estar no formato HH:MM")
        return value

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"timezone desconhecido: {value}") from exc
        return value


class EmailPreferences(BaseModel):
    """Digest e formato dos emails."""

    model_config = ConfigDict(extra="ignore")

    digest_enabled: bool = False
    digest_frequency: Literal["daily", "weekly"] = "daily"
    digest_time: str = "09:00"
    html_emails: bool = True

    @field_validator("digest_time")
    @classmethod
    def _validate_digest_time(cls, value: str) -> str:
        if not _HHMM_REGEX.match(value):
            raise ValueError("digest_time deve estar no formato HH:MM")
        return value


class NotificationPreferences(BaseModel):
    """Preferências completas de notificação de um usuário."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., min_length=1)
    channels: ChannelPreferences = Field(default_factory=ChannelPreferences)
    notification_types: NotificationTypePreferences = Field(
        default_factory=NotificationTypePreferences
    )
    reminder_timing: ReminderTiming = Field(default_factory=ReminderTiming)
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    email_preferences: EmailPreferences = Field(default_factory=EmailPreferences)
    language: str = "en"
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def defaults_for(cls, user_id: str) -> NotificationPreferences:
        """Preferências padrão para usuário sem registro."""
        return cls(user_id=user_id)


__all__ = [
    "MAX_REMINDER_HOURS",
    "MIN_REMINDER_HOURS",
    "ChannelPreferences",
    "EmailPreferences",
    "NotificationChannel",
    "NotificationPreferences",
    "NotificationTypePreferences",
    "QuietHours",
    "ReminderTiming",
]
