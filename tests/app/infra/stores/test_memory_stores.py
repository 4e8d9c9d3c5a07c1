"""Testes dos stores em memória."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from app.domain import (
    Client,
    FeedbackRequest,
    FeedbackStatus,
    FeedbackTriggerType,
    NotificationPreferences,
    RecipientType,
    ScheduledReminder,
    Session,
)
from app.infra.stores.memory_stores import (
    MemoryFeedbackRequestStore,
    MemoryFeedbackSubmissionLookup,
    MemoryPreferenceStore,
    MemoryRecipientDirectory,
    MemoryReminderStore,
    MemorySessionStore,
)

NOW = datetime(2026, 4, 1, 12, 0, tzinfo=UTC)


def _reminder(session_id: str = "s-1", hours: int = 0, **kwargs) -> ScheduledReminder:
    return ScheduledReminder(
        session_id=session_id,
        recipient_id=kwargs.pop("recipient_id", "client-1"),
        recipient_type=RecipientType.CLIENT,
        scheduled_for=NOW + timedelta(hours=hours),
        **kwargs,
    )


def _feedback(
    session_id: str = "s-1",
    hours: int = 0,
    *,
    recipient_id: str = "client-1",
    trigger: FeedbackTriggerType = FeedbackTriggerType.INITIAL,
    number: int = 0,
    status: FeedbackStatus = FeedbackStatus.PENDING,
) -> FeedbackRequest:
    return FeedbackRequest(
        session_id=session_id,
        recipient_id=recipient_id,
        recipient_type=RecipientType.CLIENT,
        trigger_type=trigger,
        scheduled_at=NOW + timedelta(hours=hours),
        reminder_number=number,
        status=status,
    )


class TestMemorySessionStore:
    @pytest.mark.asyncio
    async def test_save_get_delete(self) -> None:
        store = MemorySessionStore()
        session = Session(session_id="s-1", coach_id="c-1", client_id="u-1", start_at=NOW)

        await store.save(session)
        loaded = await store.get("s-1")

        assert loaded == session
        assert await store.delete("s-1") is True
        assert await store.delete("s-1") is False
        assert await store.get("s-1") is None

    @pytest.mark.asyncio
    async def test_mutation_without_save_is_not_persisted(self) -> None:
        store = MemorySessionStore()
        session = Session(session_id="s-1", coach_id="c-1", client_id="u-1", start_at=NOW)
        await store.save(session)

        session.notes = "alterado"

        loaded = await store.get("s-1")
        assert loaded is not None
        assert loaded.notes == ""

    @pytest.mark.asyncio
    async def test_find_coach_sessions(self) -> None:
        store = MemorySessionStore()
        await store.save(Session(session_id="a", coach_id="c-1", client_id="u", start_at=NOW))
        await store.save(Session(session_id="b", coach_id="c-2", client_id="u", start_at=NOW))

        found = await store.find_coach_sessions("c-1")

        assert [s.session_id for s in found] == ["a"]


class TestMemoryPreferenceStore:
    @pytest.mark.asyncio
    async def test_returns_copies(self) -> None:
        store = MemoryPreferenceStore()
        await store.save(NotificationPreferences.defaults_for("u-1"))

        loaded = await store.get("u-1")
        assert loaded is not None
        loaded.channels.email = False

        again = await store.get("u-1")
        assert again is not None
        assert again.channels.email is True
        assert await store.get("missing") is None


class TestMemoryReminderStore:
    @pytest.mark.asyncio
    async def test_upsert_is_idempotent_per_key(self) -> None:
        store = MemoryReminderStore()

        assert await store.upsert(_reminder()) is True
        assert await store.upsert(_reminder()) is False
        assert len(await store.list_all()) == 1

    @pytest.mark.asyncio
    async def test_list_due_orders_and_skips_sent(self) -> None:
        store = MemoryReminderStore()
        await store.upsert(_reminder(hours=-1, recipient_id="b"))
        await store.upsert(_reminder(hours=-2, recipient_id="a"))
        await store.upsert(_reminder(hours=1, recipient_id="c"))
        await store.mark_sent(("s-1", "b", NOW - timedelta(hours=1)), NOW)

        due = await store.list_due(NOW)

        assert [r.recipient_id for r in due] == ["a"]

    @pytest.mark.asyncio
    async def test_mark_sent_records_suppression(self) -> None:
        store = MemoryReminderStore()
        reminder = _reminder()
        await store.upsert(reminder)

        await store.mark_sent(reminder.key, NOW, suppressed=True)
        await store.mark_sent(("x", "y", NOW), NOW)

        (row,) = await store.list_all()
        assert row.sent and row.suppressed
        assert row.sent_at == NOW

    @pytest.mark.asyncio
    async def test_delete_unsent_keeps_sent_rows(self) -> None:
        store = MemoryReminderStore()
        sent = _reminder(hours=-1)
        await store.upsert(sent)
        await store.upsert(_reminder(hours=5))
        await store.upsert(_reminder("s-2", hours=5))
        await store.mark_sent(sent.key, NOW)

        assert await store.delete_unsent_for_session("s-1") == 1
        remaining = await store.list_all()
        assert {(r.session_id, r.sent) for r in remaining} == {("s-1", True), ("s-2", False)}

    @pytest.mark.asyncio
    async def test_purge_only_sent_before_cutoff(self) -> None:
        store = MemoryReminderStore()
        old = _reminder(hours=-200)
        await store.upsert(old)
        await store.upsert(_reminder(hours=-300, recipient_id="pending"))
        await store.mark_sent(old.key, NOW)

        assert await store.purge_sent_before(NOW - timedelta(days=7)) == 1
        assert [r.recipient_id for r in await store.list_all()] == ["pending"]


class TestMemoryFeedbackRequestStore:
    @pytest.mark.asyncio
    async def test_key_includes_trigger_and_number(self) -> None:
        store = MemoryFeedbackRequestStore()

        assert await store.upsert(_feedback()) is True
        assert await store.upsert(
            _feedback(hours=48, trigger=FeedbackTriggerType.REMINDER, number=1)
        ) is True
        assert await store.upsert(_feedback()) is False
        assert len(await store.list_for_session("s-1")) == 2

    @pytest.mark.asyncio
    async def test_list_due_only_pending(self) -> None:
        store = MemoryFeedbackRequestStore()
        await store.upsert(_feedback(hours=-1))
        await store.upsert(_feedback(hours=-2, recipient_id="sent", status=FeedbackStatus.SENT))
        await store.upsert(_feedback(hours=2, recipient_id="future"))

        due = await store.list_due(NOW)

        assert [r.recipient_id for r in due] == ["client-1"]

    @pytest.mark.asyncio
    async def test_update_status_sets_sent_at(self) -> None:
        store = MemoryFeedbackRequestStore()
        request = _feedback()
        await store.upsert(request)

        await store.update_status(request.key, FeedbackStatus.SENT, sent_at=NOW)

        (row,) = await store.list_all()
        assert row.status is FeedbackStatus.SENT
        assert row.sent_at == NOW

    @pytest.mark.asyncio
    async def test_delete_pending_and_opt_out(self) -> None:
        store = MemoryFeedbackRequestStore()
        await store.upsert(_feedback())
        await store.upsert(_feedback(trigger=FeedbackTriggerType.REMINDER, number=1))
        await store.upsert(_feedback("s-2"))
        await store.upsert(_feedback("s-3", status=FeedbackStatus.SENT))

        assert await store.delete_pending_for_session("s-1") == 2
        assert await store.mark_opted_out("client-1") == 1

        statuses = {r.session_id: r.status for r in await store.list_all()}
        assert statuses == {"s-2": FeedbackStatus.OPTED_OUT, "s-3": FeedbackStatus.SENT}

    @pytest.mark.asyncio
    async def test_purge_terminal_and_old_rows(self) -> None:
        store = MemoryFeedbackRequestStore()
        await store.upsert(_feedback("done", status=FeedbackStatus.COMPLETED))
        await store.upsert(_feedback("failed", status=FeedbackStatus.FAILED))
        await store.upsert(_feedback("old", hours=-24 * 10, status=FeedbackStatus.SENT))
        await store.upsert(_feedback("fresh", status=FeedbackStatus.SENT))

        assert await store.purge(NOW - timedelta(days=7)) == 3
        assert [r.session_id for r in await store.list_all()] == ["fresh"]


class TestLookups:
    @pytest.mark.asyncio
    async def test_submission_lookup(self) -> None:
        lookup = MemoryFeedbackSubmissionLookup()
        lookup.record_submission("s-1", "u-1", RecipientType.CLIENT)

        assert await lookup.has_submitted("s-1", "u-1", "client") is True
        assert await lookup.has_submitted("s-1", "u-1", "coach") is False

    @pytest.mark.asyncio
    async def test_recipient_directory(self) -> None:
        client = Client(user_id="u-1", name="Bia", email="bia@example.com")
        directory = MemoryRecipientDirectory([client])

        assert await directory.get_recipient("u-1") == client
        assert await directory.get_recipient("nope") is None
