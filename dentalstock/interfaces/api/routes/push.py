"""Browser push subscription endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from dentalstock.application.use_cases.notifications import (
    NotificationDispatcher,
    subscribe_push,
    unsubscribe_push,
)
from dentalstock.domain.entities import (
    Channel,
    EventKind,
    NotificationEvent,
    NotificationSettings,
    Targeting,
    User,
)
from dentalstock.domain.errors import NoRecipientsError, NotificationConfigurationError
from dentalstock.infrastructure.database import get_db
from dentalstock.interfaces.api.dependencies import (
    get_current_active_user,
    get_dispatcher,
    get_notification_settings,
    require_admin,
)
from dentalstock.interfaces.api.schemas import (
    PushSendRequest,
    PushSubscribeRequest,
    PushSubscribeResponse,
    PushUnsubscribeRequest,
    VapidKeyResponse,
)

router = APIRouter(prefix="/push", tags=["push"])
logger = logging.getLogger(__name__)


@router.post("/subscribe", response_model=PushSubscribeResponse)
def subscribe(
    payload: PushSubscribeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    try:
        subscription, created = subscribe_push(
            db,
            user_id=current_user.id,
            endpoint=payload.subscription.endpoint,
            p256dh_key=payload.subscription.keys.p256dh,
            auth_key=payload.subscription.keys.auth,
            user_agent=payload.user_agent,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {
        "success": True,
        "message": "Subscribed" if created else "Subscription updated",
        "subscription_id": subscription.id,
    }


@router.post("/unsubscribe")
def unsubscribe(
    payload: PushUnsubscribeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    try:
        removed = unsubscribe_push(db, user_id=current_user.id, endpoint=payload.endpoint)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "removed": removed}


@router.get("/vapid-key", response_model=VapidKeyResponse)
def vapid_key(
    notification_settings: NotificationSettings = Depends(get_notification_settings),
):
    if not notification_settings.vapid_public_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="VAPID public key not configured",
        )
    return VapidKeyResponse(public_key=notification_settings.vapid_public_key)


@router.post("/send")
async def send_push(
    payload: PushSendRequest,
    _: User = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Send an ad-hoc push notification to users and/or roles."""

    event = NotificationEvent(
        kind=EventKind.GENERAL,
        title=payload.title,
        body=payload.body,
        url=payload.url,
    )
    targeting = Targeting.build(
        user_id=payload.user_id, user_ids=payload.user_ids, roles=payload.roles
    )
    try:
        result = await dispatcher.dispatch(event, targeting, channels=[Channel.PUSH])
    except NotificationConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except NoRecipientsError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"success": True, "sent": result.push.sent, "failed": result.push.failed}
