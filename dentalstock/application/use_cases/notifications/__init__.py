"""Notification fan-out, digests and channel management use cases."""

from .digest import DailyDigestService, digest_target_date
from .dispatch import DEFAULT_CHANNELS, NotificationDispatcher
from .events import (
    notify_case_assigned,
    notify_low_stock,
    notify_material_prepared,
    notify_out_of_stock,
    notify_po_created,
    notify_supplier_po,
    notify_urgent_case,
    trigger_notification,
)
from .inbox import list_notifications, mark_notifications_read
from .line_admin import LineTokenCheck, send_line_message, verify_line_token
from .line_linking import (
    LineLinkStatus,
    LineWebhookEvent,
    LineWebhookHandler,
    get_link_status,
    issue_link_code,
    unlink_line_account,
)
from .recipients import RecipientDirectory, resolve_recipients
from .scheduler import (
    DigestRun,
    DigestScheduler,
    SEND_WINDOW_MINUTES,
    SchedulerReport,
    is_digest_due,
)
from .subscriptions import subscribe_push, unsubscribe_push

__all__ = [
    "DEFAULT_CHANNELS",
    "DailyDigestService",
    "DigestRun",
    "DigestScheduler",
    "LineLinkStatus",
    "LineTokenCheck",
    "LineWebhookEvent",
    "LineWebhookHandler",
    "NotificationDispatcher",
    "RecipientDirectory",
    "SEND_WINDOW_MINUTES",
    "SchedulerReport",
    "digest_target_date",
    "get_link_status",
    "is_digest_due",
    "issue_link_code",
    "list_notifications",
    "mark_notifications_read",
    "notify_case_assigned",
    "notify_low_stock",
    "notify_material_prepared",
    "notify_out_of_stock",
    "notify_po_created",
    "notify_supplier_po",
    "notify_urgent_case",
    "resolve_recipients",
    "send_line_message",
    "subscribe_push",
    "trigger_notification",
    "unlink_line_account",
    "unsubscribe_push",
]
