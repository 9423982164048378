"""Async client for the LINE Messaging API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from dentalstock.domain.entities import LineFlexMessage
from dentalstock.utils import truncate

logger = logging.getLogger(__name__)

DEFAULT_LINE_API_BASE_URL = "https://api.line.me"
PUSH_PATH = "/v2/bot/message/push"
REPLY_PATH = "/v2/bot/message/reply"
BOT_INFO_PATH = "/v2/bot/info"
# LINE rejects text messages longer than this.
MAX_TEXT_LENGTH = 5000


@dataclass(frozen=True)
class LineResponse:
    """Normalized answer from the Messaging API."""

    ok: bool
    status_code: int
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class LineMessagingClient:
    """Send push and reply messages through a channel access token.

    HTTP error answers are returned as unsuccessful :class:`LineResponse`
    objects. Network failures and timeouts raise :class:`httpx.HTTPError`.
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = DEFAULT_LINE_API_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def push_messages(self, to: str, messages: list[dict[str, Any]]) -> LineResponse:
        return await self._request("POST", PUSH_PATH, json={"to": to, "messages": messages})

    async def push_text(self, to: str, text: str) -> LineResponse:
        return await self.push_messages(to, [text_message(text)])

    async def push_flex(self, to: str, flex: LineFlexMessage) -> LineResponse:
        return await self.push_messages(to, [flex.to_message()])

    async def reply(self, reply_token: str, text: str) -> LineResponse:
        return await self._request(
            "POST",
            REPLY_PATH,
            json={"replyToken": reply_token, "messages": [text_message(text)]},
        )

    async def get_bot_info(self) -> LineResponse:
        return await self._request("GET", BOT_INFO_PATH)

    async def _request(
        self, method: str, path: str, *, json: dict[str, Any] | None = None
    ) -> LineResponse:
        headers = {"Authorization": f"Bearer {self._access_token}"}
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            response = await client.request(method, path, json=json, headers=headers)

        if response.is_success:
            return LineResponse(ok=True, status_code=response.status_code, data=_json_body(response))

        error = f"LINE API error: {response.status_code}"
        body = response.text
        if body:
            error = f"{error} {truncate(body, 200)}"
        logger.warning("LINE %s %s failed: %s", method, path, error)
        return LineResponse(ok=False, status_code=response.status_code, error=error)


def text_message(text: str) -> dict[str, Any]:
    return {"type": "text", "text": truncate(text, MAX_TEXT_LENGTH)}


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


__all__ = [
    "DEFAULT_LINE_API_BASE_URL",
    "LineMessagingClient",
    "LineResponse",
    "text_message",
]
