"""Destinatários de notificações: Coach | Client.

O tipo é resolvido uma única vez pelo diretório de destinatários
(fronteira de persistência) e nunca re-inferido depois.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from app.domain.preferences import NotificationChannel


class RecipientType(StrEnum):
    """Papel do destinatário na sessão."""

    COACH = "coach"
    CLIENT = "client"


@dataclass(frozen=True, slots=True)
class Coach:
    """Coach responsável pela sessão."""

    recipient_type: ClassVar[RecipientType] = RecipientType.COACH

    user_id: str
    name: str
    email: str
    phone: str = ""


@dataclass(frozen=True, slots=True)
class Client:
    """Cliente atendido na sessão."""

    recipient_type: ClassVar[RecipientType] = RecipientType.CLIENT

    user_id: str
    name: str
    email: str
    phone: str = ""


Recipient = Coach | Client


def address_for(recipient: Recipient, channel: NotificationChannel) -> str | None:
    """Endereço do destinatário no canal (None = canal indisponível).

    email → email, sms → telefone, push/in_app → id do usuário.
    """
    if channel is NotificationChannel.EMAIL:
        return recipient.email or None
    if channel is NotificationChannel.SMS:
        return recipient.phone or None
    return recipient.user_id


__all__ = ["Client", "Coach", "Recipient", "RecipientType", "address_for"]
