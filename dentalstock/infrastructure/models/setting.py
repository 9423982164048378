"""SQLAlchemy model for key/value application settings."""

from sqlalchemy import Column, DateTime, String, Text

from dentalstock.infrastructure.database import Base
from dentalstock.utils import now_in_app_naive_datetime


class SettingModel(Base):
    """Setting row whose ``value`` holds a JSON-serialised scalar or object."""

    __tablename__ = "setting"

    key = Column(String(120), primary_key=True)
    value = Column(Text, nullable=False)
    description = Column(String(255), nullable=True)
    updated_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["SettingModel"]
