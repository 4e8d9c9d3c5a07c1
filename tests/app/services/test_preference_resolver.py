"""Testes do PreferenceResolver e das regras de quiet hours."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from app.domain.preferences import NotificationChannel, NotificationPreferences, QuietHours
from app.infra.stores.memory_stores import MemoryPreferenceStore
from app.services.preference_resolver import (
    PreferenceResolver,
    ResolvedPreferences,
    is_quiet_hour,
    quiet_hours_end,
)
from tests.fakes.fake_clock import FakeClock

NIGHT = QuietHours(enabled=True, start_time="22:00", end_time="08:00")


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 6, 1, hour, minute, tzinfo=UTC)


class TestIsQuietHour:
    @pytest.mark.parametrize(
        ("hour", "minute"),
        [(23, 30), (2, 0), (7, 59), (22, 0)],
    )
    def test_inside_window_crossing_midnight(self, hour: int, minute: int) -> None:
        assert is_quiet_hour(NIGHT, _at(hour, minute)) is True

    @pytest.mark.parametrize(("hour", "minute"), [(8, 0), (21, 59), (12, 0)])
    def test_outside_window_crossing_midnight(self, hour: int, minute: int) -> None:
        assert is_quiet_hour(NIGHT, _at(hour, minute)) is False

    def test_same_day_window(self) -> None:
        lunch = QuietHours(enabled=True, start_time="12:00", end_time="13:00")
        assert is_quiet_hour(lunch, _at(12, 30)) is True
        assert is_quiet_hour(lunch, _at(13, 0)) is False

    def test_disabled_or_empty_window_is_never_quiet(self) -> None:
        assert is_quiet_hour(None, _at(23)) is False
        assert is_quiet_hour(QuietHours(enabled=False), _at(23)) is False
        empty = QuietHours(enabled=True, start_time="10:00", end_time="10:00")
        assert is_quiet_hour(empty, _at(10)) is False

    def test_uses_window_timezone(self) -> None:
        sao_paulo = QuietHours(
            enabled=True,
            start_time="22:00",
            end_time="08:00",
            timezone="America/Sao_Paulo",
        )
        # 02:00 UTC = 23:00 em São Paulo (UTC-3)
        assert is_quiet_hour(sao_paulo, _at(2)) is True
        # 12:00 UTC = 09:00 em São Paulo
        assert is_quiet_hour(sao_paulo, _at(12)) is False


class TestQuietHoursEnd:
    def test_end_on_next_day(self) -> None:
        assert quiet_hours_end(NIGHT, _at(23, 30)) == datetime(2026, 6, 2, 8, 0, tzinfo=UTC)

    def test_end_on_same_day(self) -> None:
        assert quiet_hours_end(NIGHT, _at(3)) == _at(8)

    def test_none_outside_window(self) -> None:
        assert quiet_hours_end(NIGHT, _at(12)) is None
        assert quiet_hours_end(None, _at(23)) is None


class TestPreferenceResolver:
    @pytest.mark.asyncio
    async def test_resolve_creates_and_stores_defaults(self) -> None:
        store = MemoryPreferenceStore()
        resolver = PreferenceResolver(store)

        resolved = await resolver.resolve("user-1")

        assert isinstance(resolved, ResolvedPreferences)
        assert resolved.channels == frozenset(
            {NotificationChannel.EMAIL, NotificationChannel.IN_APP, NotificationChannel.PUSH}
        )
        assert resolved.reminder_hours_before == 24
        assert resolved.quiet_hours is None
        assert resolved.session_reminders and resolved.feedback_requests
        assert await store.get("user-1") is not None

    @pytest.mark.asyncio
    async def test_resolve_reflects_stored_record(self) -> None:
        store = MemoryPreferenceStore()
        prefs = NotificationPreferences.defaults_for("user-2")
        prefs.channels.push = False
        prefs.channels.sms = True
        prefs.reminder_timing.enable_multiple_reminders = True
        prefs.reminder_timing.additional_reminder_hours = [2]
        prefs.quiet_hours = NIGHT
        await store.save(prefs)

        resolved = await PreferenceResolver(store).resolve("user-2")

        assert NotificationChannel.SMS in resolved.channels
        assert NotificationChannel.PUSH not in resolved.channels
        assert resolved.multiple_reminders is True
        assert resolved.additional_reminder_hours == (2,)
        assert resolved.is_quiet_hour(_at(23)) is True

    @pytest.mark.asyncio
    async def test_disable_feedback_persists(self) -> None:
        store = MemoryPreferenceStore()
        clock = FakeClock(_at(10))
        resolver = PreferenceResolver(store, clock=clock)

        await resolver.disable_feedback("user-3")

        stored = await store.get("user-3")
        assert stored is not None
        assert stored.notification_types.feedback_requests is False
        assert stored.updated_at == _at(10)
        assert (await resolver.resolve("user-3")).feedback_requests is False

    @pytest.mark.asyncio
    async def test_update_replaces_record(self) -> None:
        store = MemoryPreferenceStore()
        clock = FakeClock(_at(9, 15))
        resolver = PreferenceResolver(store, clock=clock)
        prefs = NotificationPreferences.defaults_for("user-4")
        prefs.channels.email = False
        prefs.reminder_timing.hours_before = 2

        saved = await resolver.update(prefs)

        assert saved.updated_at == _at(9, 15)
        resolved = await resolver.resolve("user-4")
        assert NotificationChannel.EMAIL not in resolved.channels
        assert resolved.reminder_hours_before == 2
