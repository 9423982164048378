"""Schemas for browser push subscription endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dentalstock.domain.entities import Role


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionIn(BaseModel):
    """Shape of ``PushSubscription.toJSON()`` in the browser."""

    endpoint: str = Field(..., min_length=1, max_length=1024)
    keys: PushKeys


class PushSubscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscription: PushSubscriptionIn
    user_agent: str | None = Field(default=None, alias="userAgent")


class PushSubscribeResponse(BaseModel):
    success: bool
    message: str
    subscription_id: int


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)


class PushSendRequest(BaseModel):
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    url: str | None = None
    user_id: int | None = None
    user_ids: list[int] = Field(default_factory=list)
    roles: list[Role] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_target(self) -> "PushSendRequest":
        if self.user_id is None and not self.user_ids and not self.roles:
            raise ValueError("user_id, user_ids or roles is required")
        return self


class VapidKeyResponse(BaseModel):
    public_key: str = Field(..., serialization_alias="publicKey")


__all__ = [
    "PushKeys",
    "PushSendRequest",
    "PushSubscribeRequest",
    "PushSubscribeResponse",
    "PushSubscriptionIn",
    "PushUnsubscribeRequest",
    "VapidKeyResponse",
]
