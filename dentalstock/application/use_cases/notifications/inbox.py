"""Use cases for reading the in-app notification inbox."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from dentalstock.domain.entities import Notification
from dentalstock.infrastructure.repositories import NotificationRepository


def list_notifications(
    session: Session,
    user_id: int,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> Sequence[Notification]:
    repository = NotificationRepository(session)
    if unread_only:
        return repository.list_unread_for_user(user_id, limit=limit)
    return repository.list_for_user(user_id, limit=limit)


def mark_notifications_read(
    session: Session, user_id: int, notification_ids: Iterable[int]
) -> int:
    return NotificationRepository(session).mark_as_read(notification_ids, user_id=user_id)


__all__ = ["list_notifications", "mark_notifications_read"]
