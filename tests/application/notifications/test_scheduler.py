"""Tests for the daily digest scheduler."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, time

import pytest
from zoneinfo import ZoneInfo

from dentalstock.application.use_cases.notifications import (
    DailyDigestService,
    DigestScheduler,
)
from dentalstock.domain.entities import (
    DigestResult,
    DigestType,
    NotificationSettings,
    RecipientType,
    Role,
    SettingKey,
)
from dentalstock.infrastructure.models import SettingModel
from dentalstock.infrastructure.repositories import (
    NotificationLogRepository,
    SettingsRepository,
)

BANGKOK = ZoneInfo("Asia/Bangkok")
MORNING_NOW = datetime(2026, 10, 19, 8, 5, tzinfo=BANGKOK)


class FailingDigestService:
    async def send(self, digest_type: DigestType, today: date) -> DigestResult:
        raise RuntimeError("database went away")


def _scheduler(session, dispatcher, *, now=MORNING_NOW, **settings) -> DigestScheduler:
    snapshot = NotificationSettings(**settings)
    service = DailyDigestService(session, dispatcher, snapshot)
    return DigestScheduler(session, snapshot, service, now=lambda: now)


def test_check_sends_due_digest_once_per_day(
    session, make_user, make_subscription, dispatcher, push_sender
) -> None:
    stock = make_user(Role.STOCK_STAFF)
    make_subscription(stock)

    first = asyncio.run(_scheduler(session, dispatcher).check())
    second = asyncio.run(_scheduler(session, dispatcher).check())

    assert first.run_for(DigestType.MORNING).sent is True
    assert first.run_for(DigestType.EVENING).reason == "not_due"
    assert second.run_for(DigestType.MORNING).reason == "already_sent"
    assert len(push_sender.sent) == 1
    assert SettingsRepository(session).get_value(SettingKey.LAST_MORNING) == "2026-10-19"


def test_check_outside_window_does_nothing(session, make_user, dispatcher, push_sender) -> None:
    make_user(Role.STOCK_STAFF)
    noon = datetime(2026, 10, 19, 12, 0, tzinfo=BANGKOK)

    report = asyncio.run(_scheduler(session, dispatcher, now=noon).check())

    assert report.sent is False
    assert push_sender.sent == []
    assert session.get(SettingModel, SettingKey.LAST_MORNING) is None


def test_stale_snapshot_still_sends_once(session, make_user, dispatcher) -> None:
    """Two runs that both read an empty marker race on the atomic claim."""

    make_user(Role.STOCK_STAFF)
    first = _scheduler(session, dispatcher)
    second = _scheduler(session, dispatcher)

    reports = [asyncio.run(first.check()), asyncio.run(second.check())]

    sent = [report.run_for(DigestType.MORNING).sent for report in reports]
    assert sent == [True, False]
    summaries = NotificationLogRepository(session).list_recent(channel="cron")
    assert len(summaries) == 1
    assert summaries[0].recipient_type is RecipientType.SYSTEM
    assert summaries[0].notification_type == "scheduled_check"


def test_disabled_has_no_side_effects(
    session, make_user, make_subscription, dispatcher, push_sender
) -> None:
    stock = make_user(Role.STOCK_STAFF)
    make_subscription(stock)
    scheduler = _scheduler(session, dispatcher, enabled=False)

    reports = [
        asyncio.run(scheduler.check()),
        asyncio.run(scheduler.run_scheduled(DigestType.EVENING)),
        asyncio.run(scheduler.force([DigestType.MORNING])),
    ]

    assert all(report.enabled is False and report.runs == [] for report in reports)
    assert push_sender.sent == []
    assert NotificationLogRepository(session).count() == 0
    assert session.query(SettingModel).count() == 0


def test_run_scheduled_ignores_window_but_honours_marker(session, make_user, dispatcher) -> None:
    make_user(Role.CS)
    night = datetime(2026, 10, 19, 22, 0, tzinfo=BANGKOK)
    scheduler = _scheduler(session, dispatcher, now=night)

    first = asyncio.run(scheduler.run_scheduled(DigestType.EVENING))
    second = asyncio.run(scheduler.run_scheduled(DigestType.EVENING))

    assert first.sent is True
    assert second.sent is False
    (summary,) = NotificationLogRepository(session).list_recent(channel="cron")
    assert summary.notification_type == "daily_evening"


def test_force_bypasses_marker(
    session, make_user, make_subscription, dispatcher, push_sender
) -> None:
    stock = make_user(Role.STOCK_STAFF)
    make_subscription(stock)
    SettingsRepository(session).set_value(SettingKey.LAST_MORNING, "2026-10-19")
    scheduler = _scheduler(session, dispatcher, last_morning_sent=date(2026, 10, 19))

    report = asyncio.run(scheduler.force([DigestType.MORNING, DigestType.MORNING]))

    assert [run.reason for run in report.runs] == ["forced"]
    assert len(push_sender.sent) == 1
    (summary,) = NotificationLogRepository(session).list_recent(channel="cron")
    assert summary.notification_type == "daily_manual"
    assert summary.metadata["forced"] is True


def test_failed_run_releases_marker(session) -> None:
    snapshot = NotificationSettings()
    scheduler = DigestScheduler(
        session, snapshot, FailingDigestService(), now=lambda: MORNING_NOW
    )

    with pytest.raises(RuntimeError):
        asyncio.run(scheduler.check())

    assert session.get(SettingModel, SettingKey.LAST_MORNING) is None


def test_custom_target_time(session, make_user, dispatcher) -> None:
    make_user(Role.STOCK_STAFF)
    now = datetime(2026, 10, 19, 17, 40, tzinfo=BANGKOK)

    report = asyncio.run(
        _scheduler(session, dispatcher, now=now, evening_time=time(17, 30)).check()
    )

    assert report.run_for(DigestType.EVENING).sent is True
    assert report.run_for(DigestType.MORNING).sent is False
