"""Tests for the LINE linking profile endpoints and the token check."""

from __future__ import annotations

import re

import httpx

from dentalstock.domain.entities import Role, SettingKey
from dentalstock.infrastructure.notifications import LineMessagingClient
from dentalstock.infrastructure.repositories import SettingsRepository, UserRepository
from dentalstock.interfaces.api.dependencies import get_line_client_factory


def test_issue_code_and_read_status(client, session, make_user, auth_headers) -> None:
    user = make_user(Role.DENTIST)
    SettingsRepository(session).set_value(SettingKey.LINE_BOT_BASIC_ID, "@dentalstock")
    headers = auth_headers(user)

    issued = client.post("/profile/link-line", headers=headers)
    status_response = client.get("/profile/link-line", headers=headers)

    assert issued.status_code == 200
    body = issued.json()
    assert re.fullmatch(r"LINK-[0-9A-F]{6}", body["code"])
    assert body["add_friend_url"] == "https://line.me/R/ti/p/@dentalstock"
    assert status_response.json()["linked"] is False
    assert status_response.json()["code"] == body["code"]


def test_linked_user_cannot_issue_code(client, make_user, auth_headers) -> None:
    user = make_user(Role.DENTIST, line_user_id="U-linked")

    response = client.post("/profile/link-line", headers=auth_headers(user))

    assert response.status_code == 400


def test_unlink_clears_line_identity(client, session, make_user, auth_headers) -> None:
    user = make_user(Role.DENTIST, line_user_id="U-linked")

    response = client.post("/profile/unlink-line", headers=auth_headers(user))

    assert response.json() == {"success": True}
    assert UserRepository(session).get(user.id).line_user_id is None


def _override_line_factory(app, handler) -> None:
    def factory(access_token: str) -> LineMessagingClient:
        return LineMessagingClient(
            access_token,
            base_url="https://line.example.test",
            transport=httpx.MockTransport(handler),
        )

    app.dependency_overrides[get_line_client_factory] = lambda: factory


def test_token_check_saves_valid_token(app, client, session, make_user, auth_headers) -> None:
    _override_line_factory(
        app,
        lambda request: httpx.Response(200, json={"userId": "Ubot", "basicId": "@clinic"}),
    )

    response = client.post(
        "/line/test",
        json={"token": "new-token", "save": True},
        headers=auth_headers(make_user(Role.ADMIN)),
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["saved"] is True
    repository = SettingsRepository(session)
    assert repository.get_value(SettingKey.LINE_ACCESS_TOKEN) == "new-token"
    assert repository.get_value(SettingKey.LINE_BOT_BASIC_ID) == "@clinic"


def test_token_check_reports_invalid_token(app, client, session, make_user, auth_headers) -> None:
    _override_line_factory(app, lambda request: httpx.Response(401, json={"message": "bad"}))

    response = client.post(
        "/line/test",
        json={"token": "bad-token", "save": True},
        headers=auth_headers(make_user(Role.ADMIN)),
    )

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["saved"] is False
    assert SettingsRepository(session).get_value(SettingKey.LINE_ACCESS_TOKEN) is None
