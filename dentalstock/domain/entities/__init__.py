"""Domain entities exposed by the application."""

from .clinic import CLOSED_CASE_STATUSES, Supplier, SurgicalCase
from .delivery import ChannelTally, DeliveryResult, DigestResult
from .line_link import (
    LINK_CODE_PREFIX,
    LineLinkCode,
    LinkOutcome,
    PendingLineLink,
    extract_link_code,
)
from .notification import Notification
from .notification_event import (
    Channel,
    EventKind,
    LineFlexMessage,
    NotificationEvent,
    Targeting,
)
from .notification_log import LogStatus, NotificationLogEntry, RecipientType
from .notification_settings import (
    DigestType,
    NotificationSettings,
    SettingKey,
    parse_clock_time,
)
from .push_subscription import PushSubscription
from .role import Role
from .user import User

__all__ = [
    "CLOSED_CASE_STATUSES",
    "Channel",
    "ChannelTally",
    "DeliveryResult",
    "DigestResult",
    "DigestType",
    "EventKind",
    "LINK_CODE_PREFIX",
    "LineFlexMessage",
    "LineLinkCode",
    "LinkOutcome",
    "LogStatus",
    "Notification",
    "NotificationEvent",
    "NotificationLogEntry",
    "NotificationSettings",
    "PendingLineLink",
    "PushSubscription",
    "RecipientType",
    "Role",
    "SettingKey",
    "Supplier",
    "SurgicalCase",
    "Targeting",
    "User",
    "extract_link_code",
    "parse_clock_time",
]
