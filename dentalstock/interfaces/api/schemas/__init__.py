from .auth import Token
from .line import (
    LineLinkCodeResponse,
    LineLinkStatusResponse,
    LineSendRequest,
    LineTestRequest,
    LineTestResponse,
    LineWebhookEventIn,
    LineWebhookPayload,
)
from .notification import (
    DeliveryResultRead,
    NotificationLogRead,
    NotificationMarkReadRequest,
    NotificationRead,
    TRIGGER_DATA_SCHEMAS,
    TriggerRequest,
    TriggerResponse,
)
from .push import (
    PushSendRequest,
    PushSubscribeRequest,
    PushSubscribeResponse,
    PushUnsubscribeRequest,
    VapidKeyResponse,
)

__all__ = [
    "DeliveryResultRead",
    "LineLinkCodeResponse",
    "LineLinkStatusResponse",
    "LineSendRequest",
    "LineTestRequest",
    "LineTestResponse",
    "LineWebhookEventIn",
    "LineWebhookPayload",
    "NotificationLogRead",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "PushSendRequest",
    "PushSubscribeRequest",
    "PushSubscribeResponse",
    "PushUnsubscribeRequest",
    "TRIGGER_DATA_SCHEMAS",
    "Token",
    "TriggerRequest",
    "TriggerResponse",
    "VapidKeyResponse",
]
