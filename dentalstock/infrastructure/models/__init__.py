"""ORM models used by the application infrastructure."""

from .clinic import CaseReservationModel, SupplierModel, SurgicalCaseModel
from .line_link import LineLinkCodeModel, LinePendingLinkModel
from .notification import NotificationModel
from .notification_log import NotificationLogModel
from .push_subscription import PushSubscriptionModel
from .setting import SettingModel
from .user import UserModel

__all__ = [
    "CaseReservationModel",
    "LineLinkCodeModel",
    "LinePendingLinkModel",
    "NotificationLogModel",
    "NotificationModel",
    "PushSubscriptionModel",
    "SettingModel",
    "SupplierModel",
    "SurgicalCaseModel",
    "UserModel",
]
