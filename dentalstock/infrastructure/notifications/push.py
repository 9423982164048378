"""Web Push channel built on VAPID and :mod:`pywebpush`."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import anyio
from pywebpush import WebPushException, webpush

from dentalstock.domain.entities import PushSubscription

logger = logging.getLogger(__name__)

# Push services answer 404/410 once a browser dropped the subscription.
GONE_STATUS_CODES = frozenset({404, 410})


class PushStatus(str, Enum):
    OK = "ok"
    GONE = "gone"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class PushResult:
    """Outcome of one delivery attempt to one subscription."""

    status: PushStatus
    status_code: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status is PushStatus.OK

    @property
    def gone(self) -> bool:
        return self.status is PushStatus.GONE


class WebPushSender:
    """Encrypt and deliver payloads to browser push endpoints.

    :func:`pywebpush.webpush` is blocking, so each delivery runs in a worker
    thread. Transport errors other than HTTP rejections propagate to the caller.
    """

    def __init__(
        self,
        *,
        vapid_private_key: str,
        vapid_subject: str,
        timeout: float = 10.0,
        ttl: int = 60 * 60,
    ) -> None:
        self._vapid_private_key = vapid_private_key
        self._vapid_subject = vapid_subject
        self._timeout = timeout
        self._ttl = ttl

    async def send(self, subscription: PushSubscription, payload: dict[str, Any]) -> PushResult:
        data = json.dumps(payload, ensure_ascii=False)
        try:
            await anyio.to_thread.run_sync(self._send_sync, subscription.subscription_info(), data)
        except WebPushException as exc:
            status_code = getattr(exc.response, "status_code", None)
            if status_code in GONE_STATUS_CODES:
                logger.info(
                    "Push subscription %s is gone (HTTP %s)", subscription.id, status_code
                )
                return PushResult(PushStatus.GONE, status_code=status_code, error=str(exc))
            logger.warning(
                "Push delivery to subscription %s failed (HTTP %s): %s",
                subscription.id,
                status_code,
                exc,
            )
            return PushResult(PushStatus.TRANSIENT, status_code=status_code, error=str(exc))
        return PushResult(PushStatus.OK, status_code=201)

    def _send_sync(self, subscription_info: dict[str, Any], data: str) -> None:
        webpush(
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=self._vapid_private_key,
            # webpush mutates the claims it receives.
            vapid_claims={"sub": self._vapid_subject},
            timeout=self._timeout,
            ttl=self._ttl,
        )


__all__ = ["GONE_STATUS_CODES", "PushResult", "PushStatus", "WebPushSender"]
