"""Entities used while binding a LINE account to a clinic user."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final

LINK_CODE_PREFIX: Final[str] = "LINK-"
LINK_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\bLINK-([0-9A-F]{6})\b", re.IGNORECASE
)


def extract_link_code(text: str | None) -> str | None:
    """Return the normalized linking code contained in ``text``, if any."""

    if not text:
        return None
    match = LINK_CODE_PATTERN.search(text)
    if match is None:
        return None
    return f"{LINK_CODE_PREFIX}{match.group(1).upper()}"


@dataclass
class LineLinkCode:
    """One-time code a user sends to the LINE bot to link their account."""

    code: str
    user_id: int
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class LinkOutcome(str, Enum):
    """Result of redeeming a linking code sent to the bot."""

    LINKED = "linked"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    CONFLICT = "conflict"


@dataclass
class PendingLineLink:
    """LINE account that followed the bot but is not linked yet."""

    line_user_id: str
    followed_at: datetime | None = None


__all__ = [
    "LINK_CODE_PATTERN",
    "LINK_CODE_PREFIX",
    "LineLinkCode",
    "LinkOutcome",
    "PendingLineLink",
    "extract_link_code",
]
