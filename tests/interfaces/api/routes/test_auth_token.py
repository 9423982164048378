"""Tests for the authentication token endpoint."""

from __future__ import annotations

import pytest

from dentalstock.domain.entities import Role
from dentalstock.infrastructure.models import UserModel
from dentalstock.infrastructure.security import get_password_hash


@pytest.mark.parametrize("role", [Role.ADMIN, Role.STOCK_STAFF])
def test_login_returns_bearer_token_with_role(client, make_user, role: Role) -> None:
    """Obtaining a token works for any active role."""

    make_user(role, email="user@example.com", password_hash=get_password_hash("StrongPass123"))

    response = client.post(
        "/auth/token",
        data={"username": "user@example.com", "password": "StrongPass123"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["token_type"] == "bearer"
    assert payload["role"] == role.value
    assert bool(payload["access_token"])


def test_wrong_password_is_rejected(client, make_user) -> None:
    make_user(email="user@example.com", password_hash=get_password_hash("StrongPass123"))

    response = client.post(
        "/auth/token",
        data={"username": "user@example.com", "password": "nope"},
    )

    assert response.status_code == 401


def test_inactive_user_cannot_log_in(client, make_user) -> None:
    make_user(
        email="user@example.com",
        password_hash=get_password_hash("StrongPass123"),
        is_active=False,
    )

    response = client.post(
        "/auth/token",
        data={"username": "user@example.com", "password": "StrongPass123"},
    )

    assert response.status_code == 403


def test_token_is_revoked_when_password_changes(client, session, make_user, auth_headers) -> None:
    """Tokens carry a password signature, so a new hash invalidates them."""

    user = make_user()
    headers = auth_headers(user)
    assert client.get("/notifications/", headers=headers).status_code == 200

    model = session.get(UserModel, user.id)
    model.password = get_password_hash("Changed123")
    session.commit()

    response = client.get("/notifications/", headers=headers)
    assert response.status_code == 401
