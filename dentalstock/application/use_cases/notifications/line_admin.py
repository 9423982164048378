"""Administrative LINE operations: ad-hoc messages and token verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from dentalstock.domain.entities import (
    DeliveryResult,
    EventKind,
    LineFlexMessage,
    NotificationEvent,
    RecipientType,
    SettingKey,
)
from dentalstock.infrastructure.notifications import LineMessagingClient
from dentalstock.infrastructure.repositories import SettingsRepository, UserRepository

from .dispatch import NotificationDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineTokenCheck:
    valid: bool
    saved: bool = False
    bot: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


async def send_line_message(
    session: Session,
    dispatcher: NotificationDispatcher,
    *,
    to: str,
    text: str | None = None,
    flex: LineFlexMessage | None = None,
    title: str = "Message from DentalStock",
) -> DeliveryResult:
    """Send a text or flex message to a LINE id and log the attempt."""

    if flex is None and not (text and text.strip()):
        raise ValueError("A text or flex message is required")

    user = UserRepository(session).get_by_line_user_id(to)
    event = NotificationEvent(
        kind=EventKind.GENERAL,
        title=title,
        body=text if text and text.strip() else flex.alt_text,
        flex=flex,
    )
    return await dispatcher.send_line_direct(
        to,
        event,
        recipient_type=RecipientType.USER if user else RecipientType.SYSTEM,
        recipient_id=str(user.id) if user else to,
        user_id=user.id if user else None,
    )


async def verify_line_token(
    session: Session,
    client: LineMessagingClient,
    *,
    save_token: str | None = None,
) -> LineTokenCheck:
    """Call the bot-info API with ``client`` and optionally persist the token."""

    response = await client.get_bot_info()
    if not response.ok:
        return LineTokenCheck(valid=False, error=response.error)

    bot = {
        "user_id": response.data.get("userId"),
        "basic_id": response.data.get("basicId"),
        "display_name": response.data.get("displayName"),
        "picture_url": response.data.get("pictureUrl"),
    }
    if not save_token:
        return LineTokenCheck(valid=True, bot=bot)

    repository = SettingsRepository(session)
    repository.set_value(
        SettingKey.LINE_ACCESS_TOKEN,
        save_token,
        description="LINE Messaging API channel access token",
    )
    if bot["user_id"]:
        repository.set_value(SettingKey.LINE_BOT_USER_ID, bot["user_id"])
    if bot["basic_id"]:
        repository.set_value(SettingKey.LINE_BOT_BASIC_ID, bot["basic_id"])
    logger.info("Stored LINE channel access token for bot %s", bot["basic_id"])
    return LineTokenCheck(valid=True, saved=True, bot=bot)


__all__ = ["LineTokenCheck", "send_line_message", "verify_line_token"]
