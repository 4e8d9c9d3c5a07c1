"""Protocolos e contratos do núcleo de agendamento."""

from .channel_sender import ChannelSenderProtocol, SendResult
from .opt_out import OptOutClaims, OptOutTokenCodecProtocol
from .recipient_directory import RecipientDirectoryProtocol
from .scheduling_store import (
    FeedbackRequestStoreProtocol,
    FeedbackSubmissionLookupProtocol,
    ReminderStoreProtocol,
)
from .session_store import PreferenceStoreProtocol, SessionStoreProtocol

__all__ = [
    "ChannelSenderProtocol",
    "FeedbackRequestStoreProtocol",
    "FeedbackSubmissionLookupProtocol",
    "OptOutClaims",
    "OptOutTokenCodecProtocol",
    "PreferenceStoreProtocol",
    "RecipientDirectoryProtocol",
    "ReminderStoreProtocol",
    "SendResult",
    "SessionStoreProtocol",
]
