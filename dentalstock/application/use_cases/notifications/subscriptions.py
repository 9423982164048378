"""Use cases for registering and removing browser push subscriptions."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalstock.domain.entities import (
    LogStatus,
    NotificationLogEntry,
    PushSubscription,
    RecipientType,
)
from dentalstock.infrastructure.repositories import (
    NotificationLogRepository,
    PushSubscriptionRepository,
)

logger = logging.getLogger(__name__)


def subscribe_push(
    session: Session,
    *,
    user_id: int,
    endpoint: str,
    p256dh_key: str,
    auth_key: str,
    user_agent: str | None = None,
) -> tuple[PushSubscription, bool]:
    """Upsert the subscription for ``endpoint``; returns it and whether it is new."""

    if not endpoint or not p256dh_key or not auth_key:
        raise ValueError("Invalid subscription data")

    subscription, created = PushSubscriptionRepository(session).upsert(
        PushSubscription(
            id=None,
            user_id=user_id,
            endpoint=endpoint,
            p256dh_key=p256dh_key,
            auth_key=auth_key,
            user_agent=user_agent,
        )
    )
    action = "subscribe" if created else "resubscribe"
    _record(
        session,
        user_id=user_id,
        notification_type=action,
        title="Push subscription" if created else "Push subscription refreshed",
        metadata={"subscription_id": subscription.id, "user_agent": user_agent},
    )
    logger.info("User %s push %s (subscription %s)", user_id, action, subscription.id)
    return subscription, created


def unsubscribe_push(session: Session, *, user_id: int, endpoint: str) -> bool:
    """Remove the user's subscription for ``endpoint``; unknown endpoints are fine."""

    if not endpoint:
        raise ValueError("Endpoint is required")
    removed = PushSubscriptionRepository(session).delete_by_endpoint(endpoint, user_id=user_id)
    if removed:
        _record(
            session,
            user_id=user_id,
            notification_type="unsubscribe",
            title="Push unsubscribed",
            metadata={},
        )
    return removed


def _record(
    session: Session,
    *,
    user_id: int,
    notification_type: str,
    title: str,
    metadata: dict,
) -> None:
    try:
        NotificationLogRepository(session).append(
            NotificationLogEntry(
                recipient_type=RecipientType.USER,
                channel="push",
                notification_type=notification_type,
                title=title,
                message=None,
                status=LogStatus.DELIVERED,
                user_id=user_id,
                recipient_id=str(user_id),
                metadata=metadata,
            )
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to log push %s for user %s", notification_type, user_id)


__all__ = ["subscribe_push", "unsubscribe_push"]
