"""Profile endpoints for linking a LINE account."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from dentalstock.application.use_cases.notifications import (
    get_link_status,
    issue_link_code,
    unlink_line_account,
)
from dentalstock.config import Settings, get_settings
from dentalstock.domain.entities import SettingKey, User
from dentalstock.infrastructure.database import get_db
from dentalstock.infrastructure.repositories import SettingsRepository
from dentalstock.interfaces.api.dependencies import get_current_active_user
from dentalstock.interfaces.api.schemas import LineLinkCodeResponse, LineLinkStatusResponse

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("/link-line", response_model=LineLinkStatusResponse)
def link_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    link = get_link_status(db, current_user)
    return LineLinkStatusResponse(
        linked=link.linked,
        line_user_id=link.line_user_id,
        code=link.pending_code.code if link.pending_code else None,
        expires_at=link.pending_code.expires_at if link.pending_code else None,
    )


@router.post("/link-line", response_model=LineLinkCodeResponse)
def create_link_code(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_active_user),
):
    """Issue a one-time code the user sends to the LINE bot."""

    try:
        link_code = issue_link_code(
            db, current_user, ttl_minutes=settings.link_code_ttl_minutes
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    basic_id = SettingsRepository(db).get_value(SettingKey.LINE_BOT_BASIC_ID)
    return LineLinkCodeResponse(
        code=link_code.code,
        expires_at=link_code.expires_at,
        instructions=(
            f"Add the DentalStock bot as a friend on LINE and send this code: {link_code.code}. "
            f"The code expires in {settings.link_code_ttl_minutes} minutes."
        ),
        add_friend_url=f"https://line.me/R/ti/p/{basic_id}" if basic_id else None,
    )


@router.post("/unlink-line")
def unlink_line(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    unlink_line_account(db, current_user)
    return {"success": True}
