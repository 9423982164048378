"""Tests for the fan-out dispatcher."""

from __future__ import annotations

import asyncio

import pytest

from dentalstock.application.use_cases.notifications import NotificationDispatcher
from dentalstock.domain.entities import (
    Channel,
    EventKind,
    LineFlexMessage,
    LogStatus,
    NotificationEvent,
    Role,
    Targeting,
)
from dentalstock.domain.errors import NoRecipientsError, NotificationConfigurationError
from dentalstock.infrastructure.notifications import PushResult, PushStatus
from dentalstock.infrastructure.repositories import (
    NotificationLogRepository,
    NotificationRepository,
    PushSubscriptionRepository,
)


def _event(kind: EventKind = EventKind.GENERAL, **overrides) -> NotificationEvent:
    values = {"kind": kind, "title": "Heads up", "body": "Something happened", "tag": "t-1"}
    values.update(overrides)
    return NotificationEvent(**values)


def test_each_recipient_receives_one_attempt_per_channel(
    session, make_user, make_subscription, dispatcher, push_sender, line_sender
) -> None:
    stock = make_user(Role.STOCK_STAFF, line_user_id="U-stock")
    admin = make_user(Role.ADMIN, line_user_id="U-admin")
    make_subscription(stock)
    make_subscription(admin)

    targeting = Targeting(
        user_id=stock.id, user_ids=(stock.id, admin.id), roles=(Role.STOCK_STAFF, Role.ADMIN)
    )
    result = asyncio.run(dispatcher.dispatch(_event(), targeting))

    assert sorted(push_sender.endpoints) == sorted(
        [f"https://push.example.test/{stock.id}", f"https://push.example.test/{admin.id}"]
    )
    assert sorted(line_sender.recipients) == ["U-admin", "U-stock"]
    assert result.push.sent == 2
    assert result.line.sent == 2
    assert result.in_app.sent == 2


def test_one_failure_does_not_affect_other_recipients(
    session, make_user, make_subscription, dispatcher, push_sender, line_sender
) -> None:
    users = [make_user(Role.STOCK_STAFF, line_user_id=f"U-{n}") for n in range(3)]
    subscriptions = [make_subscription(user) for user in users]
    push_sender.results[subscriptions[0].endpoint] = RuntimeError("socket closed")
    push_sender.results[subscriptions[1].endpoint] = "hang"
    line_sender.failing.add("U-2")

    result = asyncio.run(dispatcher.dispatch(_event(), Targeting(roles=(Role.STOCK_STAFF,))))

    assert result.push.sent == 1
    assert result.push.failed == 2
    assert result.line.sent == 2
    assert result.line.failed == 1

    logs = NotificationLogRepository(session).list_recent(channel=Channel.PUSH.value)
    errors = sorted(entry.error_message for entry in logs if entry.status is LogStatus.FAILED)
    assert errors == ["Timed out after 0.5s", "socket closed"]


def test_every_attempt_writes_exactly_one_log_entry(
    session, make_user, make_subscription, dispatcher
) -> None:
    first = make_user(Role.CS, line_user_id="U-first")
    second = make_user(Role.CS)
    make_subscription(first, "https://push.example.test/a")
    make_subscription(first, "https://push.example.test/b")
    make_subscription(second)

    asyncio.run(dispatcher.dispatch(_event(), Targeting(roles=(Role.CS,))))

    repository = NotificationLogRepository(session)
    push_logs = repository.list_recent(channel="push")
    line_logs = repository.list_recent(channel="line")
    assert len(push_logs) == 3
    assert len(line_logs) == 1
    assert line_logs[0].recipient_id == str(first.id)
    assert line_logs[0].status is LogStatus.SENT
    assert all(entry.notification_type == "general" for entry in push_logs)
    assert repository.count() == 4


def test_gone_subscriptions_are_deactivated(
    session, make_user, make_subscription, dispatcher, push_sender
) -> None:
    user = make_user(Role.STOCK_STAFF)
    gone = make_subscription(user, "https://push.example.test/gone")
    kept = make_subscription(user, "https://push.example.test/kept")
    push_sender.results[gone.endpoint] = PushResult(PushStatus.GONE, status_code=410)

    result = asyncio.run(
        dispatcher.dispatch(_event(), Targeting(user_id=user.id), channels=[Channel.PUSH])
    )

    assert result.push.sent == 1
    assert result.push.failed == 1
    active = PushSubscriptionRepository(session).list_active_for_users({user.id})
    assert [subscription.endpoint for subscription in active] == [kept.endpoint]

    push_sender.sent.clear()
    asyncio.run(
        dispatcher.dispatch(_event(), Targeting(user_id=user.id), channels=[Channel.PUSH])
    )

    assert push_sender.endpoints == [kept.endpoint]


def test_in_app_notifications_are_stored_for_each_recipient(
    session, make_user, dispatcher
) -> None:
    dentist = make_user(Role.DENTIST)

    result = asyncio.run(
        dispatcher.dispatch(
            _event(EventKind.CASE_ASSIGNED, url="/cases/4", reference_id="4"),
            Targeting(user_id=dentist.id),
        )
    )

    assert result.in_app.sent == 1
    stored = NotificationRepository(session).list_for_user(dentist.id)
    assert len(stored) == 1
    assert stored[0].event_type == "case_assigned"
    assert stored[0].payload["url"] == "/cases/4"
    assert stored[0].payload["reference_id"] == "4"


def test_unknown_explicit_ids_do_not_block_valid_recipients(
    session, make_user, dispatcher
) -> None:
    dentist = make_user(Role.DENTIST)

    result = asyncio.run(
        dispatcher.dispatch(
            _event(), Targeting(user_ids=(dentist.id, 9999)), channels=[Channel.IN_APP]
        )
    )

    assert result.in_app.sent == 1
    assert result.in_app.failed == 0
    assert len(NotificationRepository(session).list_for_user(dentist.id)) == 1


def test_explicit_unconfigured_channel_raises(session, make_user) -> None:
    user = make_user(Role.ADMIN)
    dispatcher = NotificationDispatcher(session)

    with pytest.raises(NotificationConfigurationError):
        asyncio.run(
            dispatcher.dispatch(_event(), Targeting(user_id=user.id), channels=[Channel.LINE])
        )


def test_default_channels_skip_unconfigured_ones(session, make_user, push_sender) -> None:
    user = make_user(Role.ADMIN, line_user_id="U-admin")
    dispatcher = NotificationDispatcher(session, push_sender=push_sender)

    assert dispatcher.select_channels(EventKind.CASE_ASSIGNED) == (Channel.PUSH, Channel.IN_APP)

    result = asyncio.run(dispatcher.dispatch(_event(), Targeting(user_id=user.id)))
    assert result.line.sent == 0
    assert result.line.failed == 0


def test_default_channels_per_event_kind(dispatcher) -> None:
    assert dispatcher.select_channels(EventKind.URGENT_CASE) == (Channel.PUSH, Channel.IN_APP)
    assert dispatcher.select_channels(EventKind.DAILY_SUMMARY) == (Channel.PUSH, Channel.LINE)
    assert dispatcher.select_channels(EventKind.SUPPLIER_PO) == (Channel.LINE,)


def test_empty_role_targeting_raises(make_user, dispatcher) -> None:
    make_user(Role.ADMIN)

    with pytest.raises(NoRecipientsError):
        asyncio.run(dispatcher.dispatch(_event(), Targeting(roles=(Role.CS,))))


def test_long_messages_are_truncated_in_the_log(
    session, make_user, make_subscription, dispatcher
) -> None:
    user = make_user(Role.ADMIN)
    make_subscription(user)

    asyncio.run(
        dispatcher.dispatch(
            _event(body="x" * 2000), Targeting(user_id=user.id), channels=[Channel.PUSH]
        )
    )

    (entry,) = NotificationLogRepository(session).list_recent(channel="push")
    assert len(entry.message) <= 500


def test_flex_event_is_sent_as_flex(session, make_user, dispatcher, line_sender) -> None:
    user = make_user(Role.ADMIN, line_user_id="U-admin")
    flex = LineFlexMessage(alt_text="Card", contents={"type": "bubble"})

    asyncio.run(
        dispatcher.dispatch(
            _event(flex=flex), Targeting(user_id=user.id), channels=[Channel.LINE]
        )
    )

    assert line_sender.messages == [("U-admin", flex)]
