"""Transient notification events and the targeting used to fan them out."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dentalstock.domain.errors import EventValidationError, InvalidTargetingError

from .role import Role

DEFAULT_ICON = "/icons/icon-192x192.png"
DEFAULT_BADGE = "/icons/badge-72x72.png"


class Channel(str, Enum):
    """Delivery mechanisms a notification can travel through."""

    PUSH = "push"
    LINE = "line"
    IN_APP = "in_app"


class EventKind(str, Enum):
    """Clinic events that produce notifications."""

    CASE_ASSIGNED = "case_assigned"
    OUT_OF_STOCK = "out_of_stock"
    URGENT_CASE = "urgent_case"
    LOW_STOCK = "low_stock"
    MATERIAL_PREPARED = "material_prepared"
    PO_CREATED = "po_created"
    SUPPLIER_PO = "supplier_po"
    DAILY_SUMMARY = "daily_summary"
    GENERAL = "general"


@dataclass(frozen=True)
class LineFlexMessage:
    """Rich card variant used for LINE deliveries instead of plain text."""

    alt_text: str
    contents: dict[str, Any]

    def to_message(self) -> dict[str, Any]:
        return {"type": "flex", "altText": self.alt_text, "contents": self.contents}


@dataclass(frozen=True)
class NotificationEvent:
    """Typed payload produced by a triggering action.

    Events are never persisted; only the delivery attempts they cause are.
    """

    kind: EventKind
    title: str
    body: str
    url: str | None = None
    tag: str | None = None
    reference_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    flex: LineFlexMessage | None = None

    def __post_init__(self) -> None:
        for name in ("title", "body"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                msg = f"Notification event field '{name}' must not be empty"
                raise EventValidationError(msg)

    def push_payload(self) -> dict[str, Any]:
        """Return the JSON document delivered to the browser service worker."""

        data: dict[str, Any] = {"type": self.kind.value, **self.data}
        if self.url:
            data["url"] = self.url
        if self.reference_id:
            data["referenceId"] = self.reference_id
        return {
            "title": self.title,
            "body": self.body,
            "icon": DEFAULT_ICON,
            "badge": DEFAULT_BADGE,
            "tag": self.tag,
            "data": data,
        }

    def line_text(self) -> str:
        return f"{self.title}\n\n{self.body}"


@dataclass(frozen=True)
class Targeting:
    """Who should receive an event.

    The three mechanisms are combined: the resolved recipients are the union of
    ``user_id``, ``user_ids`` and every active user holding one of ``roles``.
    """

    user_id: int | None = None
    user_ids: tuple[int, ...] = ()
    roles: tuple[Role, ...] = ()

    def __post_init__(self) -> None:
        if self.user_id is None and not self.user_ids and not self.roles:
            raise InvalidTargetingError(
                "Targeting requires a user id, a list of user ids or a list of roles"
            )

    @classmethod
    def build(
        cls,
        *,
        user_id: int | None = None,
        user_ids: Iterable[int] | None = None,
        roles: Iterable[Role | str] | None = None,
    ) -> "Targeting":
        parsed_roles = tuple(
            role if isinstance(role, Role) else Role.parse(role) for role in roles or ()
        )
        return cls(
            user_id=user_id,
            user_ids=tuple(user_ids or ()),
            roles=parsed_roles,
        )


__all__ = [
    "Channel",
    "DEFAULT_BADGE",
    "DEFAULT_ICON",
    "EventKind",
    "LineFlexMessage",
    "NotificationEvent",
    "Targeting",
]
