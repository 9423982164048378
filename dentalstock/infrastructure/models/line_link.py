"""SQLAlchemy models backing the LINE account linking flow."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from dentalstock.infrastructure.database import Base
from dentalstock.utils import now_in_app_naive_datetime


class LineLinkCodeModel(Base):
    """Outstanding one-time linking code; at most one per user."""

    __tablename__ = "line_link_code"

    code = Column(String(16), primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    expires_at = Column(DateTime(), nullable=False)


class LinePendingLinkModel(Base):
    """LINE account that followed the bot and awaits linking."""

    __tablename__ = "line_pending_link"

    line_user_id = Column(String(64), primary_key=True)
    followed_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["LineLinkCodeModel", "LinePendingLinkModel"]
