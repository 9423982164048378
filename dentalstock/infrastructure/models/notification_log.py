"""SQLAlchemy model for the append-only notification log."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text

from dentalstock.infrastructure.database import Base
from dentalstock.utils import now_in_app_naive_datetime


class NotificationLogModel(Base):
    """Audit row written for every delivery attempt and webhook event."""

    __tablename__ = "notification_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True)
    recipient_type = Column(String(20), nullable=False)
    recipient_id = Column(String(64), nullable=True)
    channel = Column(String(20), nullable=False, index=True)
    notification_type = Column(String(50), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    # ``metadata`` is reserved on declarative classes.
    details = Column("metadata", JSON, nullable=False, default=dict)


__all__ = ["NotificationLogModel"]
