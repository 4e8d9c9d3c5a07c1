"""Testes da copy e dos links de feedback."""

from __future__ import annotations

from datetime import UTC, datetime
from urllib.parse import parse_qs, urlparse

from app.domain import FeedbackRequest, FeedbackTriggerType, RecipientType
from app.infra.crypto.opt_out_token import HmacOptOutTokenCodec
from app.services.feedback_messaging import (
    INITIAL_SUBJECT,
    REMINDER_SUBJECT,
    feedback_url,
    render_feedback_message,
    select_copy,
)
from config.settings.feedback import ABTestGroup, FeedbackSettings

NOW = datetime(2026, 5, 2, 10, 0, tzinfo=UTC)


def _request(
    trigger: FeedbackTriggerType = FeedbackTriggerType.INITIAL,
    group: str | None = None,
) -> FeedbackRequest:
    return FeedbackRequest(
        session_id="sess-9",
        recipient_id="client-1",
        recipient_type=RecipientType.CLIENT,
        trigger_type=trigger,
        scheduled_at=NOW,
        reminder_number=1 if trigger is FeedbackTriggerType.REMINDER else 0,
        ab_test_group=group,
    )


def test_default_copy_by_trigger() -> None:
    settings = FeedbackSettings()
    assert select_copy(_request(), settings)[0] == INITIAL_SUBJECT
    assert select_copy(_request(FeedbackTriggerType.REMINDER), settings)[0] == REMINDER_SUBJECT


def test_ab_copy_only_when_enabled_and_complete() -> None:
    groups = (
        ABTestGroup(name="early", percentage=50, delay_hours=2, subject="S", message="M"),
        ABTestGroup(name="bare", percentage=50, delay_hours=24),
    )
    enabled = FeedbackSettings(ab_testing_enabled=True, ab_groups=groups)
    disabled = FeedbackSettings(ab_groups=groups)

    assert select_copy(_request(group="early"), enabled) == ("S", "M")
    assert select_copy(_request(group="bare"), enabled)[0] == INITIAL_SUBJECT
    assert select_copy(_request(group="early"), disabled)[0] == INITIAL_SUBJECT
    assert select_copy(_request(group="unknown"), enabled)[0] == INITIAL_SUBJECT


def test_feedback_url_carries_recipient_type() -> None:
    url = feedback_url("https://app.example.com/", _request())
    assert url == "https://app.example.com/feedback/sess-9?type=client"


def test_rendered_body_has_both_links_and_valid_token() -> None:
    codec = HmacOptOutTokenCodec("k")
    settings = FeedbackSettings(client_url="https://app.example.com")

    message = render_feedback_message(_request(), settings, codec, NOW)

    assert message.feedback_url in message.body
    assert message.opt_out_url in message.body
    token = parse_qs(urlparse(message.opt_out_url).query)["token"][0]
    claims = codec.decode(token)
    assert (claims.session_id, claims.recipient_id) == ("sess-9", "client-1")
    assert claims.issued_at == NOW
