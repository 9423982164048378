"""Domain entity representing a browser push subscription."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class PushSubscription:
    """Durable push endpoint bound to one user.

    A subscription is deactivated, not deleted, when the push service reports
    the endpoint as gone; explicit unsubscribes delete it.
    """

    id: int | None
    user_id: int
    endpoint: str
    p256dh_key: str
    auth_key: str
    user_agent: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def subscription_info(self) -> dict[str, Any]:
        """Return the structure expected by the web push protocol library."""

        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }


__all__ = ["PushSubscription"]
