"""Domain entity describing one recorded notification attempt."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class LogStatus(str, Enum):
    """Outcome recorded for a notification attempt."""

    SENT = "sent"
    FAILED = "failed"
    DELIVERED = "delivered"


class RecipientType(str, Enum):
    """Kind of party a log entry refers to."""

    USER = "user"
    SUPPLIER = "supplier"
    SYSTEM = "system"


@dataclass(frozen=True)
class NotificationLogEntry:
    """Append-only audit record written after each delivery attempt.

    Entries are never updated once persisted; ``id`` and ``created_at`` are
    filled in by the repository on insert.
    """

    recipient_type: RecipientType
    channel: str
    notification_type: str
    title: str
    message: str | None
    status: LogStatus
    user_id: int | None = None
    recipient_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None


__all__ = ["LogStatus", "NotificationLogEntry", "RecipientType"]
