"""Tests for LINE account linking and webhook event handling."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest
from zoneinfo import ZoneInfo

from dentalstock.application.use_cases.notifications import (
    LineWebhookEvent,
    LineWebhookHandler,
    get_link_status,
    issue_link_code,
    unlink_line_account,
)
from dentalstock.application.use_cases.notifications.line_linking import (
    CONFLICT_REPLY,
    EXPIRED_REPLY,
    HELP_REPLY,
    LINKED_REPLY,
    NOT_FOUND_REPLY,
    WELCOME_REPLY,
)
from dentalstock.domain.entities import LinkOutcome, Role
from dentalstock.infrastructure.repositories import (
    LineLinkRepository,
    NotificationLogRepository,
    UserRepository,
)

BANGKOK = ZoneInfo("Asia/Bangkok")
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=BANGKOK)


def _message(text: str, line_user_id: str = "U-line", token: str = "reply-1") -> LineWebhookEvent:
    return LineWebhookEvent(
        type="message",
        line_user_id=line_user_id,
        reply_token=token,
        message_type="text",
        text=text,
        message_id="m-1",
        timestamp=1760839200000,
    )


def _handler(session, line_sender, now: datetime = NOW) -> LineWebhookHandler:
    return LineWebhookHandler(session, replier=line_sender, now=lambda: now)


def test_code_binds_exactly_once(session, make_user, line_sender) -> None:
    user = make_user(Role.DENTIST)
    code = issue_link_code(session, user, ttl_minutes=15, now=NOW)

    asyncio.run(_handler(session, line_sender).handle([_message(code.code)]))
    asyncio.run(
        _handler(session, line_sender).handle([_message(code.code, line_user_id="U-second")])
    )

    assert UserRepository(session).get(user.id).line_user_id == "U-line"
    assert UserRepository(session).get_by_line_user_id("U-second") is None
    assert [text for _, text in line_sender.replies] == [LINKED_REPLY, NOT_FOUND_REPLY]


def test_code_is_matched_inside_a_sentence(session, make_user, line_sender) -> None:
    user = make_user(Role.CS)
    code = issue_link_code(session, user, ttl_minutes=15, now=NOW)

    asyncio.run(
        _handler(session, line_sender).handle([_message(f"hi, my code is {code.code.lower()}")])
    )

    assert UserRepository(session).get(user.id).line_user_id == "U-line"


def test_expired_code_is_removed_without_binding(session, make_user, line_sender) -> None:
    user = make_user(Role.DENTIST)
    code = issue_link_code(session, user, ttl_minutes=15, now=NOW)
    later = NOW + timedelta(minutes=16)

    asyncio.run(_handler(session, line_sender, now=later).handle([_message(code.code)]))

    assert UserRepository(session).get(user.id).line_user_id is None
    assert LineLinkRepository(session).code_exists(code.code) is False
    assert line_sender.replies == [("reply-1", EXPIRED_REPLY)]


def test_expired_code_from_bound_line_account_is_removed(
    session, make_user, line_sender
) -> None:
    other = make_user(Role.ADMIN, line_user_id="U-line")
    user = make_user(Role.DENTIST)
    code = issue_link_code(session, user, ttl_minutes=15, now=NOW)
    later = NOW + timedelta(minutes=16)

    asyncio.run(_handler(session, line_sender, now=later).handle([_message(code.code)]))

    assert line_sender.replies == [("reply-1", EXPIRED_REPLY)]
    assert LineLinkRepository(session).code_exists(code.code) is False
    assert UserRepository(session).get(user.id).line_user_id is None
    assert UserRepository(session).get(other.id).line_user_id == "U-line"


def test_line_account_owned_by_another_user_conflicts(session, make_user, line_sender) -> None:
    make_user(Role.ADMIN, line_user_id="U-line")
    user = make_user(Role.DENTIST)
    code = issue_link_code(session, user, ttl_minutes=15, now=NOW)

    outcome, _ = LineLinkRepository(session).redeem_code(code.code, "U-line", NOW)
    asyncio.run(_handler(session, line_sender).handle([_message(code.code)]))

    assert outcome is LinkOutcome.CONFLICT
    assert UserRepository(session).get(user.id).line_user_id is None
    assert LineLinkRepository(session).code_exists(code.code) is True
    assert line_sender.replies[-1][1] == CONFLICT_REPLY


def test_reissuing_replaces_previous_code(session, make_user) -> None:
    user = make_user(Role.DENTIST)
    first = issue_link_code(session, user, ttl_minutes=15, now=NOW)
    second = issue_link_code(session, user, ttl_minutes=15, now=NOW)

    repository = LineLinkRepository(session)
    if first.code != second.code:
        assert repository.code_exists(first.code) is False
    assert repository.get_code_for_user(user.id).code == second.code


def test_linked_user_cannot_request_code(session, make_user) -> None:
    user = make_user(Role.DENTIST, line_user_id="U-line")

    with pytest.raises(ValueError):
        issue_link_code(session, user, ttl_minutes=15, now=NOW)


def test_link_status_hides_expired_codes(session, make_user) -> None:
    user = make_user(Role.DENTIST)
    issue_link_code(session, user, ttl_minutes=15, now=NOW)

    pending = get_link_status(session, user, now=NOW + timedelta(minutes=5))
    expired = get_link_status(session, user, now=NOW + timedelta(minutes=30))

    assert pending.linked is False and pending.pending_code is not None
    assert expired.pending_code is None


def test_unlink_clears_identity(session, make_user) -> None:
    user = make_user(Role.DENTIST, line_user_id="U-line")

    updated = unlink_line_account(session, user)

    assert updated.line_user_id is None
    assert get_link_status(session, updated).linked is False


def test_follow_and_unfollow_track_pending_links(session, line_sender) -> None:
    follow = LineWebhookEvent(type="follow", line_user_id="U-new", reply_token="r-follow")
    unfollow = LineWebhookEvent(type="unfollow", line_user_id="U-new")
    repository = LineLinkRepository(session)

    asyncio.run(_handler(session, line_sender).handle([follow]))
    assert repository.get_pending("U-new") is not None
    assert line_sender.replies == [("r-follow", WELCOME_REPLY)]

    asyncio.run(_handler(session, line_sender).handle([unfollow]))
    assert repository.get_pending("U-new") is None

    types = {entry.notification_type for entry in NotificationLogRepository(session).list_recent()}
    assert types == {"follow", "unfollow"}


def test_unfollow_keeps_confirmed_link(session, make_user, line_sender) -> None:
    user = make_user(Role.DENTIST, line_user_id="U-line")

    asyncio.run(
        _handler(session, line_sender).handle(
            [LineWebhookEvent(type="unfollow", line_user_id="U-line")]
        )
    )

    assert UserRepository(session).get(user.id).line_user_id == "U-line"


def test_other_text_gets_help_reply(session, line_sender) -> None:
    asyncio.run(_handler(session, line_sender).handle([_message("hello there")]))

    assert line_sender.replies == [("reply-1", HELP_REPLY)]
    (entry,) = NotificationLogRepository(session).list_recent()
    assert entry.notification_type == "message_received"
    assert entry.message == "hello there"


def test_failing_event_does_not_stop_the_batch(session, line_sender, monkeypatch) -> None:
    handler = _handler(session, line_sender)
    original = handler._on_follow

    async def flaky(event):
        if event.line_user_id == "U-bad":
            raise RuntimeError("boom")
        await original(event)

    monkeypatch.setattr(handler, "_on_follow", flaky)
    processed = asyncio.run(
        handler.handle(
            [
                LineWebhookEvent(type="follow", line_user_id="U-bad"),
                LineWebhookEvent(type="follow", line_user_id="U-good"),
            ]
        )
    )

    assert processed == 1
    assert LineLinkRepository(session).get_pending("U-good") is not None
