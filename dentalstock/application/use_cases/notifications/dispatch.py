"""Fan-out of notification events over push, LINE and the in-app inbox."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalstock.domain.entities import (
    Channel,
    DeliveryResult,
    EventKind,
    LineFlexMessage,
    LogStatus,
    Notification,
    NotificationEvent,
    NotificationLogEntry,
    PushSubscription,
    RecipientType,
    Targeting,
)
from dentalstock.domain.errors import NotificationConfigurationError
from dentalstock.infrastructure.notifications import LineResponse, PushResult
from dentalstock.infrastructure.repositories import (
    NotificationLogRepository,
    NotificationRepository,
    PushSubscriptionRepository,
    UserRepository,
)
from dentalstock.utils import now_in_app_timezone

from .recipients import resolve_recipients

logger = logging.getLogger(__name__)

DEFAULT_CHANNELS: dict[EventKind, tuple[Channel, ...]] = {
    EventKind.CASE_ASSIGNED: (Channel.PUSH, Channel.LINE, Channel.IN_APP),
    EventKind.OUT_OF_STOCK: (Channel.PUSH, Channel.LINE, Channel.IN_APP),
    EventKind.URGENT_CASE: (Channel.PUSH, Channel.IN_APP),
    EventKind.LOW_STOCK: (Channel.PUSH, Channel.IN_APP),
    EventKind.MATERIAL_PREPARED: (Channel.PUSH, Channel.IN_APP),
    EventKind.PO_CREATED: (Channel.PUSH, Channel.LINE, Channel.IN_APP),
    EventKind.SUPPLIER_PO: (Channel.LINE,),
    EventKind.DAILY_SUMMARY: (Channel.PUSH, Channel.LINE),
    EventKind.GENERAL: (Channel.PUSH, Channel.LINE, Channel.IN_APP),
}


class PushSender(Protocol):
    async def send(self, subscription: PushSubscription, payload: dict[str, Any]) -> PushResult:
        ...


class LineSender(Protocol):
    async def push_text(self, to: str, text: str) -> LineResponse:
        ...

    async def push_flex(self, to: str, flex: LineFlexMessage) -> LineResponse:
        ...


@dataclass
class _Attempt:
    channel: Channel
    user_id: int | None
    recipient_type: RecipientType = RecipientType.USER
    recipient_id: str | None = None
    subscription: PushSubscription | None = None
    line_user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class _Outcome:
    success: bool
    gone: bool = False
    error: str | None = None


class NotificationDispatcher:
    """Deliver one event to every resolved recipient on the selected channels.

    A channel counts as configured when its sender was provided. Every
    push and LINE attempt runs concurrently with its own timeout; one
    failing attempt never affects the others.
    """

    def __init__(
        self,
        session: Session,
        *,
        push_sender: PushSender | None = None,
        line_sender: LineSender | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.session = session
        self._push_sender = push_sender
        self._line_sender = line_sender
        self._timeout = timeout
        self._users = UserRepository(session)
        self._subscriptions = PushSubscriptionRepository(session)
        self._notifications = NotificationRepository(session)
        self._logs = NotificationLogRepository(session)

    def is_configured(self, channel: Channel) -> bool:
        if channel is Channel.PUSH:
            return self._push_sender is not None
        if channel is Channel.LINE:
            return self._line_sender is not None
        return True

    def select_channels(
        self, kind: EventKind, channels: Iterable[Channel] | None = None
    ) -> tuple[Channel, ...]:
        if channels is not None:
            requested = tuple(dict.fromkeys(channels))
            missing = [channel.value for channel in requested if not self.is_configured(channel)]
            if missing:
                raise NotificationConfigurationError(
                    f"Notification channel(s) not configured: {', '.join(missing)}"
                )
            return requested

        selected = []
        for channel in DEFAULT_CHANNELS.get(kind, (Channel.IN_APP,)):
            if self.is_configured(channel):
                selected.append(channel)
            else:
                logger.warning(
                    "Skipping %s channel for %s: not configured", channel.value, kind.value
                )
        return tuple(selected)

    async def dispatch(
        self,
        event: NotificationEvent,
        targeting: Targeting,
        *,
        channels: Iterable[Channel] | None = None,
    ) -> DeliveryResult:
        selected = self.select_channels(event.kind, channels)
        recipients = resolve_recipients(targeting, self._users)

        attempts: list[_Attempt] = []
        if Channel.PUSH in selected:
            for subscription in self._subscriptions.list_active_for_users(recipients):
                attempts.append(
                    _Attempt(
                        channel=Channel.PUSH,
                        user_id=subscription.user_id,
                        recipient_id=str(subscription.user_id),
                        subscription=subscription,
                        metadata={"subscription_id": subscription.id},
                    )
                )
        if Channel.LINE in selected:
            line_ids = self._users.get_line_identities(sorted(recipients))
            for user_id, line_user_id in sorted(line_ids.items()):
                attempts.append(
                    _Attempt(
                        channel=Channel.LINE,
                        user_id=user_id,
                        recipient_id=str(user_id),
                        line_user_id=line_user_id,
                        metadata={"line_user_id": line_user_id},
                    )
                )

        result = await self._deliver(event, attempts)

        if Channel.IN_APP in selected:
            self._store_in_app(event, sorted(recipients), result)

        logger.info(
            "Dispatched %s to %d recipient(s): %s",
            event.kind.value,
            len(recipients),
            result.to_dict(),
        )
        return result

    async def send_line_direct(
        self,
        line_user_id: str,
        event: NotificationEvent,
        *,
        recipient_type: RecipientType,
        recipient_id: str | None = None,
        user_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        """Send ``event`` over LINE to an identity outside the user directory."""

        self.select_channels(event.kind, [Channel.LINE])
        attempt = _Attempt(
            channel=Channel.LINE,
            user_id=user_id,
            recipient_type=recipient_type,
            recipient_id=recipient_id,
            line_user_id=line_user_id,
            metadata={"line_user_id": line_user_id, **(metadata or {})},
        )
        return await self._deliver(event, [attempt])

    async def _deliver(
        self, event: NotificationEvent, attempts: Sequence[_Attempt]
    ) -> DeliveryResult:
        result = DeliveryResult()
        if not attempts:
            return result

        outcomes = await asyncio.gather(
            *(self._run_attempt(event, attempt) for attempt in attempts)
        )

        entries: list[NotificationLogEntry] = []
        gone: list[int] = []
        for attempt, outcome in zip(attempts, outcomes):
            result.tally(attempt.channel).record(outcome.success)
            if outcome.gone and attempt.subscription is not None:
                gone.append(attempt.subscription.id)
            entries.append(self._log_entry(event, attempt, outcome))

        if gone:
            self._deactivate(gone)
        self._append_logs(entries)
        return result

    async def _run_attempt(self, event: NotificationEvent, attempt: _Attempt) -> _Outcome:
        try:
            return await asyncio.wait_for(self._send(event, attempt), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "%s delivery to %s timed out after %ss",
                attempt.channel.value,
                attempt.recipient_id,
                self._timeout,
            )
            return _Outcome(success=False, error=f"Timed out after {self._timeout}s")
        except Exception as exc:  # one recipient must not break the batch
            logger.warning(
                "%s delivery to %s raised: %s", attempt.channel.value, attempt.recipient_id, exc
            )
            return _Outcome(success=False, error=str(exc) or exc.__class__.__name__)

    async def _send(self, event: NotificationEvent, attempt: _Attempt) -> _Outcome:
        if attempt.channel is Channel.PUSH:
            push_result = await self._push_sender.send(attempt.subscription, event.push_payload())
            return _Outcome(
                success=push_result.success, gone=push_result.gone, error=push_result.error
            )

        if event.flex is not None:
            response = await self._line_sender.push_flex(attempt.line_user_id, event.flex)
        else:
            response = await self._line_sender.push_text(attempt.line_user_id, event.line_text())
        return _Outcome(success=response.ok, error=response.error)

    def _store_in_app(
        self, event: NotificationEvent, recipients: Sequence[int], result: DeliveryResult
    ) -> None:
        created_at = now_in_app_timezone()
        payload: dict[str, Any] = {"url": event.url, "tag": event.tag, **event.data}
        if event.reference_id:
            payload["reference_id"] = event.reference_id
        notifications = [
            Notification(
                id=None,
                user_id=user_id,
                event_type=event.kind.value,
                title=event.title,
                message=event.body,
                payload=payload,
                created_at=created_at,
            )
            for user_id in recipients
        ]
        try:
            stored = self._notifications.create_many(notifications)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Failed to store %d in-app notification(s)", len(notifications))
            result.in_app.failed += len(notifications)
            return
        result.in_app.sent += stored

    def _deactivate(self, subscription_ids: list[int]) -> None:
        try:
            count = self._subscriptions.deactivate(subscription_ids)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Failed to deactivate gone push subscriptions %s", subscription_ids)
            return
        logger.info("Deactivated %d gone push subscription(s)", count)

    def _append_logs(self, entries: list[NotificationLogEntry]) -> None:
        try:
            self._logs.append_many(entries)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Failed to write %d notification log entries", len(entries))

    @staticmethod
    def _log_entry(
        event: NotificationEvent, attempt: _Attempt, outcome: _Outcome
    ) -> NotificationLogEntry:
        metadata = dict(attempt.metadata)
        if event.tag:
            metadata["tag"] = event.tag
        if event.reference_id:
            metadata["reference_id"] = event.reference_id
        return NotificationLogEntry(
            recipient_type=attempt.recipient_type,
            channel=attempt.channel.value,
            notification_type=event.kind.value,
            title=event.title,
            message=event.body,
            status=LogStatus.SENT if outcome.success else LogStatus.FAILED,
            user_id=attempt.user_id,
            recipient_id=attempt.recipient_id,
            error_message=None if outcome.success else outcome.error,
            sent_at=now_in_app_timezone() if outcome.success else None,
            metadata=metadata,
        )


__all__ = [
    "DEFAULT_CHANNELS",
    "LineSender",
    "NotificationDispatcher",
    "PushSender",
]
