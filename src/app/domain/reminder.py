"""Lembrete agendado de sessão."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.domain.recipient import RecipientType

ReminderKey = tuple[str, str, datetime]


@dataclass(slots=True)
class ScheduledReminder:
    """Lembrete de uma sessão para um destinatário.

    Chave única: (session_id, recipient_id, scheduled_for). Lembretes
    enviados ficam na tabela até a limpeza por retenção; `suppressed`
    marca os que foram consumidos sem despacho.
    """

    session_id: str
    recipient_id: str
    recipient_type: RecipientType
    scheduled_for: datetime
    sent: bool = False
    sent_at: datetime | None = None
    suppressed: bool = False

    @property
    def key(self) -> ReminderKey:
        """Chave composta do lembrete."""
        return (self.session_id, self.recipient_id, self.scheduled_for)

    def to_dict(self) -> dict[str, Any]:
        """Serializa para persistência."""
        return {
            "session_id": self.session_id,
            "recipient_id": self.recipient_id,
            "recipient_type": self.recipient_type.value,
            "scheduled_for": self.scheduled_for.isoformat(),
            "sent": self.sent,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "suppressed": self.suppressed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledReminder:
        """Deserializa de persistência."""
        sent_at = data.get("sent_at")
        return cls(
            session_id=data["session_id"],
            recipient_id=data["recipient_id"],
            recipient_type=RecipientType(data["recipient_type"]),
            scheduled_for=datetime.fromisoformat(data["scheduled_for"]),
            sent=bool(data.get("sent", False)),
            sent_at=datetime.fromisoformat(sent_at) if sent_at else None,
            suppressed=bool(data.get("suppressed", False)),
        )


__all__ = ["ReminderKey", "ScheduledReminder"]
