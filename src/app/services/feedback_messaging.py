"""Copy e links das solicitações de feedback.

A copy do grupo A/B substitui a padrão apenas quando o A/B está
habilitado e a solicitação carrega um grupo conhecido com texto próprio.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

if TYPE_CHECKING:
    from datetime import datetime

    from app.domain.feedback import FeedbackRequest
    from app.protocols.opt_out import OptOutTokenCodecProtocol
    from config.settings.feedback import FeedbackSettings

INITIAL_SUBJECT = "How was your coaching session?"
INITIAL_MESSAGE = (
    "We'd love to hear about your experience in your recent coaching session. "
    "Your feedback helps us provide better service."
)
REMINDER_SUBJECT = "Reminder: Share your feedback on recent session"
REMINDER_MESSAGE = (
    "We noticed you haven't shared feedback on your recent coaching session yet. "
    "Your input helps us improve the experience."
)


@dataclass(frozen=True, slots=True)
class FeedbackMessage:
    """Mensagem renderizada pronta para a fila."""

    subject: str
    body: str
    feedback_url: str
    opt_out_url: str


def select_copy(request: FeedbackRequest, settings: FeedbackSettings) -> tuple[str, str]:
    """Assunto e texto: override do grupo A/B ou copy padrão."""
    if settings.ab_testing_enabled and request.ab_test_group:
        for group in settings.ab_groups:
            if group.name == request.ab_test_group and group.subject and group.message:
                return group.subject, group.message
    if request.is_reminder:
        return REMINDER_SUBJECT, REMINDER_MESSAGE
    return INITIAL_SUBJECT, INITIAL_MESSAGE


def feedback_url(client_url: str, request: FeedbackRequest) -> str:
    """Link do formulário de feedback da sessão."""
    base = client_url.rstrip("/")
    return f"{base}/feedback/{quote(request.session_id)}?type={request.recipient_type.value}"


def opt_out_url(client_url: str, token: str) -> str:
    """Link de opt-out com o token assinado."""
    return f"{client_url.rstrip('/')}/feedback/opt-out?token={quote(token)}"


def render_feedback_message(
    request: FeedbackRequest,
    settings: FeedbackSettings,
    codec: OptOutTokenCodecProtocol,
    now: datetime,
) -> FeedbackMessage:
    """Renderiza assunto, corpo e links de uma solicitação.

    Args:
        request: Solicitação devida
        settings: FeedbackSettings (copy A/B e CLIENT_URL)
        codec: Codec do token de opt-out
        now: Instante de emissão do token

    Returns:
        FeedbackMessage com corpo contendo os dois links.
    """
    subject, message = select_copy(request, settings)
    form_link = feedback_url(settings.client_url, request)
    token = codec.encode(request.session_id, request.recipient_id, now)
    opt_out_link = opt_out_url(settings.client_url, token)
    body = (
        f"{message}\n\n"
        f"Share your feedback: {form_link}\n\n"
        f"Don't want these requests? Opt out: {opt_out_link}"
    )
    return FeedbackMessage(
        subject=subject,
        body=body,
        feedback_url=form_link,
        opt_out_url=opt_out_link,
    )
