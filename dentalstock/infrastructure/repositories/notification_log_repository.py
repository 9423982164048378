"""Append-only persistence for notification log entries."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from dentalstock.domain.entities import LogStatus, NotificationLogEntry, RecipientType
from dentalstock.infrastructure.models import NotificationLogModel
from dentalstock.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
    truncate,
)


class NotificationLogRepository:
    """Insert and list :class:`NotificationLogEntry` rows; never updates them."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, entry: NotificationLogEntry) -> NotificationLogEntry:
        model = self._to_model(entry)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def append_many(self, entries: Sequence[NotificationLogEntry]) -> int:
        if not entries:
            return 0
        self.session.add_all([self._to_model(entry) for entry in entries])
        self.session.commit()
        return len(entries)

    def list_recent(
        self,
        *,
        channel: str | None = None,
        notification_type: str | None = None,
        user_id: int | None = None,
        limit: int = 100,
    ) -> Sequence[NotificationLogEntry]:
        query = self.session.query(NotificationLogModel)
        if channel is not None:
            query = query.filter(NotificationLogModel.channel == channel)
        if notification_type is not None:
            query = query.filter(NotificationLogModel.notification_type == notification_type)
        if user_id is not None:
            query = query.filter(NotificationLogModel.user_id == user_id)
        query = query.order_by(
            NotificationLogModel.created_at.desc(), NotificationLogModel.id.desc()
        ).limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count(self) -> int:
        return self.session.query(NotificationLogModel).count()

    @staticmethod
    def _to_model(entry: NotificationLogEntry) -> NotificationLogModel:
        return NotificationLogModel(
            user_id=entry.user_id,
            recipient_type=entry.recipient_type.value,
            recipient_id=entry.recipient_id,
            channel=entry.channel,
            notification_type=entry.notification_type,
            title=truncate(entry.title, 200),
            message=truncate(entry.message),
            status=entry.status.value,
            error_message=entry.error_message,
            sent_at=ensure_app_naive_datetime(entry.sent_at),
            created_at=ensure_app_naive_datetime(entry.created_at or now_in_app_timezone()),
            details=entry.metadata or {},
        )

    @staticmethod
    def _to_entity(model: NotificationLogModel) -> NotificationLogEntry:
        return NotificationLogEntry(
            id=model.id,
            user_id=model.user_id,
            recipient_type=RecipientType(model.recipient_type),
            recipient_id=model.recipient_id,
            channel=model.channel,
            notification_type=model.notification_type,
            title=model.title,
            message=model.message,
            status=LogStatus(model.status),
            error_message=model.error_message,
            sent_at=ensure_app_timezone(model.sent_at),
            created_at=ensure_app_timezone(model.created_at),
            metadata=model.details or {},
        )


__all__ = ["NotificationLogRepository"]
