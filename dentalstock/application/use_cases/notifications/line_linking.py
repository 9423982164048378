"""Binding LINE accounts to users and handling LINE webhook events."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

import httpx
from sqlalchemy.orm import Session

from dentalstock.domain.entities import (
    LineLinkCode,
    LinkOutcome,
    LogStatus,
    NotificationLogEntry,
    PendingLineLink,
    RecipientType,
    User,
    extract_link_code,
)
from dentalstock.infrastructure.notifications import LineResponse
from dentalstock.infrastructure.repositories import (
    LineLinkRepository,
    NotificationLogRepository,
    UserRepository,
)
from dentalstock.infrastructure.security import generate_link_code
from dentalstock.utils import now_in_app_timezone, truncate

logger = logging.getLogger(__name__)

_MAX_CODE_ATTEMPTS = 5

WELCOME_REPLY = (
    "Welcome to DentalStock notifications. To link your account, open your "
    "profile, generate a LINK code and send it here."
)
LINKED_REPLY = "Your LINE account is now linked. You will receive DentalStock notifications here."
EXPIRED_REPLY = "This linking code has expired. Please generate a new one from your profile."
NOT_FOUND_REPLY = "This linking code was not found. Please check it or generate a new one."
CONFLICT_REPLY = (
    "This LINE account is already linked to another DentalStock user. "
    "Unlink it first or contact an administrator."
)
HELP_REPLY = (
    "Thank you for your message. This is the DentalStock automatic notification "
    "service. Please contact an administrator if you need help."
)


class LineReplier(Protocol):
    async def reply(self, reply_token: str, text: str) -> LineResponse:
        ...


@dataclass(frozen=True)
class LineLinkStatus:
    linked: bool
    line_user_id: str | None = None
    pending_code: LineLinkCode | None = None


@dataclass(frozen=True)
class LineWebhookEvent:
    """Subset of a LINE webhook event used by the handler."""

    type: str
    line_user_id: str | None = None
    reply_token: str | None = None
    message_type: str | None = None
    text: str | None = None
    message_id: str | None = None
    timestamp: int | None = None


def issue_link_code(
    session: Session,
    user: User,
    *,
    ttl_minutes: int,
    now: datetime | None = None,
) -> LineLinkCode:
    """Create a fresh linking code for ``user``, replacing any previous one."""

    if user.line_connected:
        raise ValueError("LINE account is already linked")

    repository = LineLinkRepository(session)
    issued_at = now or now_in_app_timezone()
    for _ in range(_MAX_CODE_ATTEMPTS):
        code = generate_link_code()
        if not repository.code_exists(code):
            break
    else:
        raise RuntimeError("Could not generate a unique linking code")

    link_code = LineLinkCode(
        code=code,
        user_id=user.id,
        expires_at=issued_at + timedelta(minutes=ttl_minutes),
    )
    saved = repository.replace_code(link_code)
    logger.info("Issued LINE linking code for user %s", user.id)
    return saved


def get_link_status(
    session: Session, user: User, *, now: datetime | None = None
) -> LineLinkStatus:
    if user.line_connected:
        return LineLinkStatus(linked=True, line_user_id=user.line_user_id)
    pending = LineLinkRepository(session).get_code_for_user(user.id)
    if pending is not None and pending.is_expired(now or now_in_app_timezone()):
        pending = None
    return LineLinkStatus(linked=False, pending_code=pending)


def unlink_line_account(session: Session, user: User) -> User:
    """Clear the user's LINE identity and any outstanding linking code."""

    LineLinkRepository(session).delete_codes_for_user(user.id)
    updated = UserRepository(session).set_line_user_id(user.id, None)
    logger.info("Unlinked LINE account from user %s", user.id)
    return updated


class LineWebhookHandler:
    """Apply follow, unfollow and message events coming from the LINE platform.

    Each event is processed on its own; a failure is logged and the remaining
    events still run.
    """

    def __init__(
        self,
        session: Session,
        *,
        replier: LineReplier | None = None,
        now: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self.session = session
        self._replier = replier
        self._now = now
        self._links = LineLinkRepository(session)
        self._logs = NotificationLogRepository(session)

    async def handle(self, events: Sequence[LineWebhookEvent]) -> int:
        processed = 0
        for event in events:
            try:
                await self._handle_event(event)
            except Exception:
                self.session.rollback()
                logger.exception("Failed to process LINE %s event", event.type)
                continue
            processed += 1
        return processed

    async def _handle_event(self, event: LineWebhookEvent) -> None:
        logger.info("LINE webhook event %s from %s", event.type, event.line_user_id)
        if event.type == "follow" and event.line_user_id:
            await self._on_follow(event)
        elif event.type == "unfollow" and event.line_user_id:
            self._on_unfollow(event)
        elif event.type == "message" and event.message_type == "text" and event.line_user_id:
            await self._on_text_message(event)
        else:
            logger.debug("Ignoring LINE event type %s", event.type)

    async def _on_follow(self, event: LineWebhookEvent) -> None:
        self._links.upsert_pending(
            PendingLineLink(line_user_id=event.line_user_id, followed_at=self._now())
        )
        self._record(event, "follow", "LINE Follow", f"New LINE user followed: {event.line_user_id}")
        await self._reply(event, WELCOME_REPLY)

    def _on_unfollow(self, event: LineWebhookEvent) -> None:
        # A confirmed link is kept; only the pending entry goes away.
        self._links.delete_pending(event.line_user_id)
        self._record(
            event, "unfollow", "LINE Unfollow", f"LINE user unfollowed: {event.line_user_id}"
        )

    async def _on_text_message(self, event: LineWebhookEvent) -> None:
        self._record(
            event,
            "message_received",
            "LINE Message Received",
            truncate(event.text) or "[No text]",
        )

        code = extract_link_code(event.text)
        if code is None:
            await self._reply(event, HELP_REPLY)
            return

        outcome, user_id = self._links.redeem_code(code, event.line_user_id, self._now())
        logger.info("LINE linking code %s redeemed with outcome %s", code, outcome.value)
        if outcome is LinkOutcome.LINKED:
            self._record(
                event,
                "line_linked",
                "LINE Account Linked",
                f"LINE user {event.line_user_id} linked to user {user_id}",
                user_id=user_id,
            )
            await self._reply(event, LINKED_REPLY)
        elif outcome is LinkOutcome.EXPIRED:
            await self._reply(event, EXPIRED_REPLY)
        elif outcome is LinkOutcome.CONFLICT:
            await self._reply(event, CONFLICT_REPLY)
        else:
            await self._reply(event, NOT_FOUND_REPLY)

    async def _reply(self, event: LineWebhookEvent, text: str) -> None:
        if self._replier is None or not event.reply_token:
            return
        try:
            await self._replier.reply(event.reply_token, text)
        except httpx.HTTPError as exc:
            logger.warning("LINE reply failed: %s", exc)

    def _record(
        self,
        event: LineWebhookEvent,
        notification_type: str,
        title: str,
        message: str,
        *,
        user_id: int | None = None,
    ) -> None:
        metadata = {"line_user_id": event.line_user_id, "timestamp": event.timestamp}
        if event.message_id:
            metadata["message_id"] = event.message_id
        self._logs.append(
            NotificationLogEntry(
                recipient_type=RecipientType.SYSTEM,
                channel="line",
                notification_type=notification_type,
                title=title,
                message=message,
                status=LogStatus.DELIVERED,
                user_id=user_id,
                recipient_id=event.line_user_id,
                metadata=metadata,
            )
        )


__all__ = [
    "LineLinkStatus",
    "LineWebhookEvent",
    "LineWebhookHandler",
    "get_link_status",
    "issue_link_code",
    "unlink_line_account",
]
