"""Endpoints for triggering events and reading notifications."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from dentalstock.application.use_cases.notifications import (
    NotificationDispatcher,
    list_notifications,
    mark_notifications_read,
    trigger_notification,
)
from dentalstock.config import Settings, get_settings
from dentalstock.domain.entities import Notification, NotificationLogEntry, User
from dentalstock.domain.errors import NoRecipientsError, NotificationConfigurationError
from dentalstock.infrastructure.database import get_db
from dentalstock.infrastructure.repositories import NotificationLogRepository
from dentalstock.interfaces.api.dependencies import (
    get_current_active_user,
    get_dispatcher,
    require_admin,
)
from dentalstock.interfaces.api.schemas import (
    NotificationLogRead,
    NotificationMarkReadRequest,
    NotificationRead,
    TRIGGER_DATA_SCHEMAS,
    TriggerRequest,
    TriggerResponse,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or 0,
        user_id=notification.user_id,
        event_type=notification.event_type,
        title=notification.title,
        message=notification.message,
        payload=notification.payload or {},
        created_at=notification.created_at,
        read_at=notification.read_at,
    )


def _log_to_schema(entry: NotificationLogEntry) -> NotificationLogRead:
    return NotificationLogRead(
        id=entry.id or 0,
        user_id=entry.user_id,
        recipient_type=entry.recipient_type.value,
        recipient_id=entry.recipient_id,
        channel=entry.channel,
        notification_type=entry.notification_type,
        title=entry.title,
        message=entry.message,
        status=entry.status.value,
        error_message=entry.error_message,
        sent_at=entry.sent_at,
        created_at=entry.created_at,
        metadata=entry.metadata,
    )


def _validation_detail(exc: ValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in error['loc']) or 'data'}: {error['msg']}"
        for error in exc.errors()
    ]
    return "; ".join(problems)


@router.post("/trigger", response_model=TriggerResponse)
async def trigger(
    payload: TriggerRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Dispatch the notification that corresponds to an application event."""

    schema = TRIGGER_DATA_SCHEMAS.get(payload.type)
    if schema is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown trigger type: {payload.type.value}",
        )
    try:
        data = schema.model_validate(payload.data)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_validation_detail(exc),
        ) from exc

    logger.info("User %s triggered %s", current_user.id, payload.type.value)
    try:
        result = await trigger_notification(
            db,
            dispatcher,
            payload.type,
            data.model_dump(),
            base_url=settings.app_base_url,
        )
    except NotificationConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except NoRecipientsError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return {"success": True, "type": payload.type, "result": result.to_dict()}


@router.get("/", response_model=list[NotificationRead])
def read_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[NotificationRead]:
    """Return the most recent notifications for the authenticated user."""

    notifications = list_notifications(
        db, current_user.id, unread_only=unread_only, limit=limit
    )
    return [_notification_to_schema(notification) for notification in notifications]


@router.post("/read")
def mark_read(
    payload: NotificationMarkReadRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    updated = mark_notifications_read(db, current_user.id, payload.unique_ids())
    return {"success": True, "updated": updated}


@router.get("/logs", response_model=list[NotificationLogRead])
def read_logs(
    channel: str | None = Query(None),
    notification_type: str | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> list[NotificationLogRead]:
    entries = NotificationLogRepository(db).list_recent(
        channel=channel, notification_type=notification_type, limit=limit
    )
    return [_log_to_schema(entry) for entry in entries]
