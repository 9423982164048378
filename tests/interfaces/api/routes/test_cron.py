"""Tests for the cron endpoints that drive the daily digests."""

from __future__ import annotations

import pytest

from dentalstock.domain.entities import Role, SettingKey
from dentalstock.infrastructure.models import SettingModel
from dentalstock.infrastructure.repositories import NotificationLogRepository, SettingsRepository

CRON_SECRET = "cron-test-secret"


@pytest.mark.parametrize("path", ["/cron/morning", "/cron/evening", "/cron/check", "/cron/daily"])
def test_wrong_secret_is_rejected_without_side_effects(client, session, path: str) -> None:
    response = client.get(path, headers={"Authorization": "Bearer wrong"})
    missing = client.post(path)

    assert response.status_code == 401
    assert missing.status_code == 401
    assert NotificationLogRepository(session).count() == 0
    assert session.query(SettingModel).count() == 0


def test_secret_accepted_as_bearer_or_query(client) -> None:
    by_header = client.get("/cron/check", headers={"Authorization": f"Bearer {CRON_SECRET}"})
    by_query = client.get("/cron/check", params={"secret": CRON_SECRET})

    assert by_header.status_code == 200
    assert by_query.status_code == 200
    body = by_query.json()
    assert body["success"] is True
    assert body["type"] == "check"
    assert len(body["local_time"]) == 5


def test_morning_runs_once_per_day(
    client, session, make_user, make_subscription, push_sender
) -> None:
    make_subscription(make_user(Role.STOCK_STAFF))
    headers = {"Authorization": f"Bearer {CRON_SECRET}"}

    first = client.post("/cron/morning", headers=headers).json()
    second = client.post("/cron/morning", headers=headers).json()

    assert first["sent"] is True
    assert first["results"]["morning"]["results"]["stock"]["push"] == {"sent": 1, "failed": 0}
    assert second["sent"] is False
    assert second["results"]["morning"]["reason"] == "already_sent"
    assert len(push_sender.sent) == 1


def test_daily_forces_both_digests(client, make_user, make_subscription, push_sender) -> None:
    make_subscription(make_user(Role.STOCK_STAFF))

    response = client.get("/cron/daily", params={"secret": CRON_SECRET, "type": "both"})

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "daily_both"
    assert set(body["results"]) == {"morning", "evening"}
    assert len(push_sender.sent) == 2


def test_disabled_short_circuits(
    client, session, make_user, make_subscription, push_sender
) -> None:
    make_subscription(make_user(Role.STOCK_STAFF))
    SettingsRepository(session).set_value(SettingKey.ENABLED, False)

    body = client.get("/cron/daily", params={"secret": CRON_SECRET}).json()

    assert body["enabled"] is False
    assert body["sent"] is False
    assert push_sender.sent == []
    assert NotificationLogRepository(session).count() == 0


def test_invalid_daily_type_is_rejected(client) -> None:
    response = client.get("/cron/daily", params={"secret": CRON_SECRET, "type": "noon"})

    assert response.status_code == 422
