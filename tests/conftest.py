"""Shared fixtures: a throwaway SQLite database and fake delivery channels."""

from __future__ import annotations

import asyncio
import itertools
import os
import tempfile
from pathlib import Path

import pytest

TEST_DB_PATH = Path(tempfile.gettempdir()) / "dentalstock_notifications_test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["APP_TIMEZONE"] = "Asia/Bangkok"
os.environ["CRON_SECRET"] = "cron-test-secret"
os.environ["LINE_CHANNEL_SECRET"] = "line-test-secret"
os.environ["VAPID_PUBLIC_KEY"] = "test-vapid-public-key"
os.environ["VAPID_PRIVATE_KEY"] = "test-vapid-private-key"
os.environ.pop("LINE_CHANNEL_ACCESS_TOKEN", None)

from dentalstock.config import get_settings  # noqa: E402

get_settings.cache_clear()

from fastapi.testclient import TestClient  # noqa: E402

from dentalstock.application.use_cases.notifications import NotificationDispatcher  # noqa: E402
from dentalstock.domain.entities import (  # noqa: E402
    LineFlexMessage,
    PushSubscription,
    Role,
    User,
)
from dentalstock.infrastructure.database import (  # noqa: E402
    Base,
    SessionLocal,
    engine,
    initialize_database,
)
from dentalstock.infrastructure.models import UserModel  # noqa: E402
from dentalstock.infrastructure.notifications import (  # noqa: E402
    LineResponse,
    PushResult,
    PushStatus,
)
from dentalstock.infrastructure.repositories import (  # noqa: E402
    PushSubscriptionRepository,
    UserRepository,
)
from dentalstock.infrastructure.security import create_access_token  # noqa: E402
from dentalstock.interfaces.api.dependencies import (  # noqa: E402
    get_line_client,
    get_push_sender,
    password_signature,
)

HANG = "hang"  # push outcome that never completes


class FakePushSender:
    """Record push deliveries; ``results`` maps endpoints to outcomes."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []
        self.results: dict[str, object] = {}

    async def send(self, subscription: PushSubscription, payload: dict) -> PushResult:
        self.sent.append((subscription.endpoint, payload))
        outcome = self.results.get(subscription.endpoint)
        if outcome == HANG:
            await asyncio.sleep(60)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, PushResult):
            return outcome
        return PushResult(PushStatus.OK, status_code=201)

    @property
    def endpoints(self) -> list[str]:
        return [endpoint for endpoint, _ in self.sent]


class FakeLineSender:
    """Record LINE pushes and replies; ids in ``failing`` get a 400 answer."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, object]] = []
        self.replies: list[tuple[str, str]] = []
        self.failing: set[str] = set()

    def _answer(self, to: str) -> LineResponse:
        if to in self.failing:
            return LineResponse(ok=False, status_code=400, error="LINE API error: 400")
        return LineResponse(ok=True, status_code=200)

    async def push_text(self, to: str, text: str) -> LineResponse:
        self.messages.append((to, text))
        return self._answer(to)

    async def push_flex(self, to: str, flex: LineFlexMessage) -> LineResponse:
        self.messages.append((to, flex))
        return self._answer(to)

    async def reply(self, reply_token: str, text: str) -> LineResponse:
        self.replies.append((reply_token, text))
        return LineResponse(ok=True, status_code=200)

    @property
    def recipients(self) -> list[str]:
        return [to for to, _ in self.messages]


@pytest.fixture(autouse=True)
def reset_database():
    """Start every test from empty tables."""

    Base.metadata.drop_all(bind=engine)
    initialize_database()
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session():
    with SessionLocal() as db:
        yield db


@pytest.fixture()
def make_user(session):
    counter = itertools.count(1)

    def _make(
        role: Role = Role.STOCK_STAFF,
        *,
        line_user_id: str | None = None,
        is_active: bool = True,
        email: str | None = None,
        password_hash: str = "not-a-real-hash",
    ) -> User:
        number = next(counter)
        model = UserModel(
            name=f"User {number}",
            email=email or f"user{number}@clinic.test",
            password=password_hash,
            role=Role(role).value,
            line_user_id=line_user_id,
            is_active=is_active,
        )
        session.add(model)
        session.commit()
        return UserRepository(session).get(model.id)

    return _make


@pytest.fixture()
def make_subscription(session):
    def _make(user: User, endpoint: str | None = None) -> PushSubscription:
        subscription, _ = PushSubscriptionRepository(session).upsert(
            PushSubscription(
                id=None,
                user_id=user.id,
                endpoint=endpoint or f"https://push.example.test/{user.id}",
                p256dh_key="p256dh",
                auth_key="auth",
            )
        )
        return subscription

    return _make


@pytest.fixture()
def push_sender() -> FakePushSender:
    return FakePushSender()


@pytest.fixture()
def line_sender() -> FakeLineSender:
    return FakeLineSender()


@pytest.fixture()
def dispatcher(session, push_sender, line_sender) -> NotificationDispatcher:
    return NotificationDispatcher(
        session, push_sender=push_sender, line_sender=line_sender, timeout=0.5
    )


@pytest.fixture()
def app(push_sender, line_sender):
    from main import create_app

    application = create_app()
    application.dependency_overrides[get_push_sender] = lambda: push_sender
    application.dependency_overrides[get_line_client] = lambda: line_sender
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(
            {"sub": user.email, "role": user.role.value, "pwd_sig": password_signature(user)}
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
