"""Solicitação de feedback pós-sessão."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from app.domain.recipient import RecipientType


class FeedbackTriggerType(StrEnum):
    """Solicitação inicial ou lembrete."""

    INITIAL = "initial"
    REMINDER = "reminder"


class FeedbackStatus(StrEnum):
    """Status de uma solicitação de feedback."""

    PENDING = "pending"
    SENT = "sent"
    COMPLETED = "completed"
    OPTED_OUT = "opted_out"
    FAILED = "failed"


FeedbackKey = tuple[str, str, FeedbackTriggerType, int]


@dataclass(slots=True)
class FeedbackRequest:
    """Solicitação de feedback agendada para um participante.

    Chave única: (session_id, recipient_id, trigger_type, reminder_number).
    A inicial usa reminder_number 0; lembretes usam 1..n.
    """

    session_id: str
    recipient_id: str
    recipient_type: RecipientType
    trigger_type: FeedbackTriggerType
    scheduled_at: datetime
    reminder_number: int = 0
    ab_test_group: str | None = None
    status: FeedbackStatus = FeedbackStatus.PENDING
    sent_at: datetime | None = None

    @property
    def key(self) -> FeedbackKey:
        """Chave composta da solicitação."""
        return (self.session_id, self.recipient_id, self.trigger_type, self.reminder_number)

    @property
    def is_reminder(self) -> bool:
        """True para lembretes (trigger_type=reminder)."""
        return self.trigger_type is FeedbackTriggerType.REMINDER

    def to_dict(self) -> dict[str, Any]:
        """Serializa para persistência."""
        return {
            "session_id": self.session_id,
            "recipient_id": self.recipient_id,
            "recipient_type": self.recipient_type.value,
            "trigger_type": self.trigger_type.value,
            "reminder_number": self.reminder_number,
            "ab_test_group": self.ab_test_group,
            "scheduled_at": self.scheduled_at.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeedbackRequest:
        """Deserializa de persistência."""
        sent_at = data.get("sent_at")
        return cls(
            session_id=data["session_id"],
            recipient_id=data["recipient_id"],
            recipient_type=RecipientType(data["recipient_type"]),
            trigger_type=FeedbackTriggerType(data["trigger_type"]),
            reminder_number=int(data.get("reminder_number", 0)),
            ab_test_group=data.get("ab_test_group"),
            scheduled_at=datetime.fromisoformat(data["scheduled_at"]),
            sent_at=datetime.fromisoformat(sent_at) if sent_at else None,
            status=FeedbackStatus(data.get("status", FeedbackStatus.PENDING.value)),
        )


__all__ = ["FeedbackKey", "FeedbackRequest", "FeedbackStatus", "FeedbackTriggerType"]
