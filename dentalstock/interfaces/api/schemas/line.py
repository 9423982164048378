"""Schemas for the LINE webhook, admin operations and account linking."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dentalstock.application.use_cases.notifications import LineWebhookEvent


class LineEventSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


class LineEventMessage(BaseModel):
    type: str
    id: str | None = None
    text: str | None = None


class LineWebhookEventIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    timestamp: int | None = None
    source: LineEventSource | None = None
    reply_token: str | None = Field(default=None, alias="replyToken")
    message: LineEventMessage | None = None

    def to_event(self) -> LineWebhookEvent:
        return LineWebhookEvent(
            type=self.type,
            line_user_id=self.source.user_id if self.source else None,
            reply_token=self.reply_token,
            message_type=self.message.type if self.message else None,
            text=self.message.text if self.message else None,
            message_id=self.message.id if self.message else None,
            timestamp=self.timestamp,
        )


class LineWebhookPayload(BaseModel):
    destination: str | None = None
    events: list[LineWebhookEventIn] = Field(default_factory=list)


class LineSendRequest(BaseModel):
    to: str = Field(..., min_length=1)
    type: Literal["text", "flex"] = "text"
    message: str | dict[str, Any]
    alt_text: str | None = Field(default=None, alias="altText")
    title: str = "Message from DentalStock"

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _check_message(self) -> "LineSendRequest":
        if self.type == "text" and not (isinstance(self.message, str) and self.message.strip()):
            raise ValueError("A text message requires a non-empty string")
        if self.type == "flex" and not isinstance(self.message, dict):
            raise ValueError("A flex message requires an object")
        return self


class LineTestRequest(BaseModel):
    token: str | None = None
    save: bool = False


class LineTestResponse(BaseModel):
    success: bool
    saved: bool = False
    bot: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class LineLinkCodeResponse(BaseModel):
    code: str
    expires_at: datetime
    instructions: str
    add_friend_url: str | None = None


class LineLinkStatusResponse(BaseModel):
    linked: bool
    line_user_id: str | None = None
    code: str | None = None
    expires_at: datetime | None = None


__all__ = [
    "LineEventMessage",
    "LineEventSource",
    "LineLinkCodeResponse",
    "LineLinkStatusResponse",
    "LineSendRequest",
    "LineTestRequest",
    "LineTestResponse",
    "LineWebhookEventIn",
    "LineWebhookPayload",
]
