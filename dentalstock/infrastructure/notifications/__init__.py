"""Outbound notification channels for the infrastructure layer."""

from .line import DEFAULT_LINE_API_BASE_URL, LineMessagingClient, LineResponse, text_message
from .push import GONE_STATUS_CODES, PushResult, PushStatus, WebPushSender

__all__ = [
    "DEFAULT_LINE_API_BASE_URL",
    "GONE_STATUS_CODES",
    "LineMessagingClient",
    "LineResponse",
    "PushResult",
    "PushStatus",
    "WebPushSender",
    "text_message",
]
