"""Repository implementations for infrastructure layer."""

from .clinic_repository import ClinicRepository
from .line_link_repository import LineLinkRepository
from .notification_log_repository import NotificationLogRepository
from .notification_repository import NotificationRepository
from .push_subscription_repository import PushSubscriptionRepository
from .settings_repository import MarkerClaim, SettingsRepository
from .user_repository import UserRepository

__all__ = [
    "ClinicRepository",
    "LineLinkRepository",
    "MarkerClaim",
    "NotificationLogRepository",
    "NotificationRepository",
    "PushSubscriptionRepository",
    "SettingsRepository",
    "UserRepository",
]
