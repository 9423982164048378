"""LINE webhook and administrative LINE endpoints."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from dentalstock.application.use_cases.notifications import (
    LineWebhookHandler,
    NotificationDispatcher,
    send_line_message,
    verify_line_token,
)
from dentalstock.config import Settings, get_settings
from dentalstock.domain.entities import LineFlexMessage, NotificationSettings, User
from dentalstock.domain.errors import NotificationConfigurationError
from dentalstock.infrastructure.database import get_db
from dentalstock.infrastructure.notifications import LineMessagingClient
from dentalstock.infrastructure.security import verify_line_signature
from dentalstock.interfaces.api.dependencies import (
    LineClientFactory,
    get_dispatcher,
    get_line_client,
    get_line_client_factory,
    get_notification_settings,
    require_admin,
)
from dentalstock.interfaces.api.schemas import (
    LineSendRequest,
    LineTestRequest,
    LineTestResponse,
    LineWebhookPayload,
)

router = APIRouter(prefix="/line", tags=["line"])
logger = logging.getLogger(__name__)


@router.get("/webhook")
def webhook_info(request: Request):
    """Return the URL to configure in the LINE Developers console."""

    return {
        "webhook_url": str(request.url_for("line_webhook")),
        "instructions": (
            "Configure this URL in the LINE Developers Console under "
            "Messaging API > Webhook settings"
        ),
    }


@router.post("/webhook")
async def line_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    line_client: LineMessagingClient | None = Depends(get_line_client),
):
    """Receive follow, unfollow and message events from the LINE platform."""

    if not settings.line_channel_secret:
        logger.error("LINE channel secret not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LINE channel secret not configured",
        )

    body = await request.body()
    signature = request.headers.get("x-line-signature")
    if not verify_line_signature(settings.line_channel_secret, body, signature):
        logger.warning("Rejected LINE webhook with an invalid signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = LineWebhookPayload.model_validate_json(body)
    except ValidationError as exc:
        logger.warning("Ignoring malformed LINE webhook body: %s", exc)
        return {"success": True}

    handler = LineWebhookHandler(db, replier=line_client)
    await handler.handle([event.to_event() for event in payload.events])
    return {"success": True}


@router.post("/send")
async def send_message(
    payload: LineSendRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Send a text or flex message to a LINE user id."""

    text: str | None = None
    flex: LineFlexMessage | None = None
    if payload.type == "flex":
        flex = LineFlexMessage(alt_text=payload.alt_text or payload.title, contents=payload.message)
    else:
        text = payload.message

    try:
        result = await send_line_message(
            db, dispatcher, to=payload.to, text=text, flex=flex, title=payload.title
        )
    except NotificationConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return {"success": result.line.sent > 0, "result": result.to_dict()}


@router.post("/test", response_model=LineTestResponse)
async def test_token(
    payload: LineTestRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notification_settings: NotificationSettings = Depends(get_notification_settings),
    client_factory: LineClientFactory = Depends(get_line_client_factory),
):
    """Validate a channel access token and optionally store it."""

    token = payload.token or notification_settings.line_channel_access_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No LINE access token provided or configured",
        )

    save_token = payload.token if payload.save and payload.token else None
    try:
        check = await verify_line_token(db, client_factory(token), save_token=save_token)
    except httpx.HTTPError as exc:
        logger.warning("LINE token check failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not reach the LINE API",
        ) from exc

    return LineTestResponse(
        success=check.valid, saved=check.saved, bot=check.bot, error=check.error
    )
