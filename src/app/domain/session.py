"""Sessão de coaching e registros de cancelamento/remarcação.

A sessão só é mutada pelo serviço de ciclo de vida; demais serviços
apenas leem. Datas são sempre timezone-aware em UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from fsm.states import DEFAULT_INITIAL_STATE, SessionStatus, is_terminal

DEFAULT_DURATION_MINUTES = 60


class CancellationReason(StrEnum):
    """Motivos aceitos para cancelamento de sessão."""

    COACH_EMERGENCY = "coach_emergency"
    CLIENT_REQUEST = "client_request"
    ILLNESS = "illness"
    SCHEDULING_CONFLICT = "scheduling_conflict"
    TECHNICAL_ISSUES = "technical_issues"
    WEATHER = "weather"
    PERSONAL_EMERGENCY = "personal_emergency"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class CancellationRecord:
    """Dados do cancelamento anexados à sessão.

    Atributos:
        reason: Motivo (enum)
        reason_text: Texto livre opcional
        cancelled_by: Id do usuário que cancelou
        cancelled_at: Momento do cancelamento
    """

    reason: CancellationReason
    cancelled_by: str
    cancelled_at: datetime
    reason_text: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serializa para persistência."""
        return {
            "reason": self.reason.value,
            "reason_text": self.reason_text,
            "cancelled_by": self.cancelled_by,
            "cancelled_at": self.cancelled_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CancellationRecord:
        """Deserializa de persistência."""
        return cls(
            reason=CancellationReason(data["reason"]),
            reason_text=data.get("reason_text", ""),
            cancelled_by=data.get("cancelled_by", ""),
            cancelled_at=datetime.fromisoformat(data["cancelled_at"]),
        )


@dataclass(frozen=True, slots=True)
class RescheduleRecord:
    """Dados da última remarcação.

    `original_date` guarda o início da primeira data agendada e não
    muda em remarcações seguintes; `reschedule_count` acumula.
    """

    original_date: datetime
    rescheduled_by: str
    rescheduled_at: datetime
    reason: str = ""
    reschedule_count: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Serializa para persistência."""
        return {
            "original_date": self.original_date.isoformat(),
            "reason": self.reason,
            "rescheduled_by": self.rescheduled_by,
            "rescheduled_at": self.rescheduled_at.isoformat(),
            "reschedule_count": self.reschedule_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RescheduleRecord:
        """Deserializa de persistência."""
        return cls(
            original_date=datetime.fromisoformat(data["original_date"]),
            reason=data.get("reason", ""),
            rescheduled_by=data.get("rescheduled_by", ""),
            rescheduled_at=datetime.fromisoformat(data["rescheduled_at"]),
            reschedule_count=int(data.get("reschedule_count", 1)),
        )


@dataclass(slots=True)
class Session:
    """Sessão de coaching entre um coach e um cliente.

    Atributos:
        session_id: Identificador único
        coach_id: Id do coach
        client_id: Id do cliente
        start_at: Início agendado (UTC)
        status: Status atual
        status_timestamps: Momento em que cada status foi atingido
        notes: Anotações livres
        duration_minutes: Duração prevista
        cancellation: Registro de cancelamento (se houver)
        reschedule: Registro de remarcação (se houver)
    """

    session_id: str
    coach_id: str
    client_id: str
    start_at: datetime
    status: SessionStatus = DEFAULT_INITIAL_STATE
    status_timestamps: dict[SessionStatus, datetime] = field(default_factory=dict)
    notes: str = ""
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    cancellation: CancellationRecord | None = None
    reschedule: RescheduleRecord | None = None

    def __post_init__(self) -> None:
        if self.start_at.tzinfo is None:
            raise ValueError("start_at deve ser timezone-aware")

    @property
    def is_terminal(self) -> bool:
        """Verifica se está em status terminal."""
        return is_terminal(self.status)

    @property
    def completed_at(self) -> datetime | None:
        """Momento da conclusão (None se não concluída)."""
        return self.status_timestamps.get(SessionStatus.COMPLETED)

    def stamp(self, status: SessionStatus, at: datetime) -> None:
        """Aplica o status e registra o timestamp correspondente."""
        self.status = status
        self.status_timestamps[status] = at

    def to_dict(self) -> dict[str, Any]:
        """Serializa para persistência."""
        return {
            "session_id": self.session_id,
            "coach_id": self.coach_id,
            "client_id": self.client_id,
            "start_at": self.start_at.isoformat(),
            "status": self.status.value,
            "status_timestamps": {
                status.value: at.isoformat() for status, at in self.status_timestamps.items()
            },
            "notes": self.notes,
            "duration_minutes": self.duration_minutes,
            "cancellation": self.cancellation.to_dict() if self.cancellation else None,
            "reschedule": self.reschedule.to_dict() if self.reschedule else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        """Deserializa de persistência."""
        cancellation = data.get("cancellation")
        reschedule = data.get("reschedule")
        return cls(
            session_id=data["session_id"],
            coach_id=data["coach_id"],
            client_id=data["client_id"],
            start_at=datetime.fromisoformat(data["start_at"]),
            status=SessionStatus(data.get("status", DEFAULT_INITIAL_STATE.value)),
            status_timestamps={
                SessionStatus(status): datetime.fromisoformat(at)
                for status, at in data.get("status_timestamps", {}).items()
            },
            notes=data.get("notes", ""),
            duration_minutes=int(data.get("duration_minutes", DEFAULT_DURATION_MINUTES)),
            cancellation=CancellationRecord.from_dict(cancellation) if cancellation else None,
            reschedule=RescheduleRecord.from_dict(reschedule) if reschedule else None,
        )


__all__ = [
    "DEFAULT_DURATION_MINUTES",
    "CancellationReason",
    "CancellationRecord",
    "RescheduleRecord",
    "Session",
]
