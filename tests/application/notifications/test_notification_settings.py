"""Tests for the notification settings snapshot and the settings table."""

from __future__ import annotations

import json
from datetime import date, time

import pytest

from dentalstock.config import get_settings
from dentalstock.domain.entities import DigestType, NotificationSettings, SettingKey
from dentalstock.domain.errors import SettingsValidationError
from dentalstock.infrastructure.models import SettingModel
from dentalstock.infrastructure.repositories import SettingsRepository


def test_defaults_when_nothing_is_stored(session) -> None:
    snapshot = SettingsRepository(session).load_notification_settings(get_settings())

    assert snapshot.enabled is True
    assert snapshot.morning_time == time(8, 0)
    assert snapshot.evening_time == time(17, 0)
    assert snapshot.notify_stock_daily and snapshot.notify_cs_daily
    assert snapshot.push_configured is True
    assert snapshot.line_configured is False


def test_stored_values_are_decoded(session) -> None:
    repository = SettingsRepository(session)
    repository.set_value(SettingKey.ENABLED, False)
    repository.set_value(SettingKey.MORNING_TIME, "07:30")
    repository.set_value(SettingKey.NOTIFY_CS, False)
    repository.set_value(SettingKey.LAST_MORNING, "2026-10-18")

    snapshot = repository.load_notification_settings(get_settings())

    assert snapshot.enabled is False
    assert snapshot.target_time(DigestType.MORNING) == time(7, 30)
    assert snapshot.notify_cs_daily is False
    assert snapshot.last_sent(DigestType.MORNING) == date(2026, 10, 18)
    assert snapshot.last_sent(DigestType.EVENING) is None


def test_stored_token_wins_over_environment() -> None:
    snapshot = NotificationSettings.from_stored(
        {SettingKey.LINE_ACCESS_TOKEN: "db-token"},
        line_channel_access_token="env-token",
    )
    fallback = NotificationSettings.from_stored(
        {SettingKey.LINE_ACCESS_TOKEN: "  "},
        line_channel_access_token="env-token",
    )

    assert snapshot.line_channel_access_token == "db-token"
    assert fallback.line_channel_access_token == "env-token"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        (SettingKey.MORNING_TIME, "8am"),
        (SettingKey.EVENING_TIME, 1700),
        (SettingKey.ENABLED, "yes"),
    ],
)
def test_malformed_values_raise(key: str, value: object) -> None:
    with pytest.raises(SettingsValidationError):
        NotificationSettings.from_stored({key: value})


def test_invalid_json_row_raises(session) -> None:
    session.add(SettingModel(key=SettingKey.ENABLED, value="{not json"))
    session.commit()

    with pytest.raises(SettingsValidationError):
        SettingsRepository(session).get_values([SettingKey.ENABLED])


def test_set_value_overwrites_json(session) -> None:
    repository = SettingsRepository(session)
    repository.set_value(SettingKey.EVENING_TIME, "17:00")
    repository.set_value(SettingKey.EVENING_TIME, "18:15", description="Evening digest")

    row = session.get(SettingModel, SettingKey.EVENING_TIME)
    assert json.loads(row.value) == "18:15"
    assert row.description == "Evening digest"


def test_daily_marker_is_claimed_once_per_day(session) -> None:
    repository = SettingsRepository(session)
    day = date(2026, 10, 19)

    first = repository.claim_daily_marker(SettingKey.LAST_MORNING, day)
    second = repository.claim_daily_marker(SettingKey.LAST_MORNING, day)
    next_day = repository.claim_daily_marker(SettingKey.LAST_MORNING, date(2026, 10, 20))

    assert first.claimed is True
    assert second.claimed is False
    assert next_day.claimed is True
    assert next_day.previous == json.dumps("2026-10-19")


def test_released_marker_restores_previous_value(session) -> None:
    repository = SettingsRepository(session)
    repository.set_value(SettingKey.LAST_EVENING, "2026-10-18")

    claim = repository.claim_daily_marker(SettingKey.LAST_EVENING, date(2026, 10, 19))
    repository.release_daily_marker(SettingKey.LAST_EVENING, date(2026, 10, 19), claim)

    assert repository.get_value(SettingKey.LAST_EVENING) == "2026-10-18"


def test_released_first_marker_removes_row(session) -> None:
    repository = SettingsRepository(session)

    claim = repository.claim_daily_marker(SettingKey.LAST_MORNING, date(2026, 10, 19))
    repository.release_daily_marker(SettingKey.LAST_MORNING, date(2026, 10, 19), claim)

    assert session.get(SettingModel, SettingKey.LAST_MORNING) is None
