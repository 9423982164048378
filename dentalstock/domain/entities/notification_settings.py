"""Typed snapshot of the runtime notification configuration."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, time
from enum import Enum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError, field_validator

from dentalstock.domain.errors import SettingsValidationError

_TIME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(?P<hour>\d{2}):(?P<minute>\d{2})$")


class DigestType(str, Enum):
    """Scheduled daily summaries."""

    MORNING = "morning"
    EVENING = "evening"

    @property
    def time_key(self) -> str:
        return f"{self.value}_notification_time"

    @property
    def marker_key(self) -> str:
        return f"last_{self.value}_notification"

    @property
    def day_offset(self) -> int:
        """Morning digests cover today's cases, evening digests tomorrow's."""

        return 0 if self is DigestType.MORNING else 1


class SettingKey:
    """Keys of the ``setting`` table read by the notification subsystem."""

    ENABLED = "scheduled_notification_enabled"
    MORNING_TIME = DigestType.MORNING.time_key
    EVENING_TIME = DigestType.EVENING.time_key
    NOTIFY_STOCK = "notify_stock_daily"
    NOTIFY_CS = "notify_cs_daily"
    NOTIFY_DENTIST = "notify_dentist_daily"
    LINE_ACCESS_TOKEN = "line_channel_access_token"
    LINE_BOT_USER_ID = "line_bot_user_id"
    LINE_BOT_BASIC_ID = "line_bot_basic_id"
    LAST_MORNING = DigestType.MORNING.marker_key
    LAST_EVENING = DigestType.EVENING.marker_key

    ALL: Final[tuple[str, ...]] = (
        ENABLED,
        MORNING_TIME,
        EVENING_TIME,
        NOTIFY_STOCK,
        NOTIFY_CS,
        NOTIFY_DENTIST,
        LINE_ACCESS_TOKEN,
        LAST_MORNING,
        LAST_EVENING,
    )


def parse_clock_time(value: Any) -> time:
    """Parse an ``HH:MM`` string, rejecting anything else."""

    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected an 'HH:MM' string, got {value!r}")
    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"expected an 'HH:MM' string, got {value!r}")
    return time(int(match.group("hour")), int(match.group("minute")))


class NotificationSettings(BaseModel):
    """Immutable configuration passed into the dispatcher and scheduler.

    Built once per request from the ``setting`` table and environment
    secrets, so delivery code never reads configuration mid-flight.
    """

    model_config = ConfigDict(frozen=True)

    enabled: StrictBool = True
    morning_time: time = time(8, 0)
    evening_time: time = time(17, 0)
    notify_stock_daily: StrictBool = True
    notify_cs_daily: StrictBool = True
    notify_dentist_daily: StrictBool = True
    line_channel_access_token: str | None = None
    vapid_public_key: str | None = None
    vapid_private_key: str | None = None
    vapid_subject: str = "mailto:admin@dentalstock.com"
    last_morning_sent: date | None = None
    last_evening_sent: date | None = None

    @field_validator("morning_time", "evening_time", mode="before")
    @classmethod
    def _parse_time(cls, value: Any) -> time:
        return parse_clock_time(value)

    @field_validator("last_morning_sent", "last_evening_sent", mode="before")
    @classmethod
    def _parse_marker(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @field_validator("line_channel_access_token", mode="before")
    @classmethod
    def _blank_token(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_stored(
        cls,
        values: Mapping[str, Any],
        *,
        line_channel_access_token: str | None = None,
        vapid_public_key: str | None = None,
        vapid_private_key: str | None = None,
        vapid_subject: str | None = None,
    ) -> "NotificationSettings":
        """Validate decoded ``setting`` rows merged with environment secrets.

        A token stored in the database takes precedence over the environment
        fallback. Malformed values raise :class:`SettingsValidationError`.
        """

        field_map = {
            SettingKey.ENABLED: "enabled",
            SettingKey.MORNING_TIME: "morning_time",
            SettingKey.EVENING_TIME: "evening_time",
            SettingKey.NOTIFY_STOCK: "notify_stock_daily",
            SettingKey.NOTIFY_CS: "notify_cs_daily",
            SettingKey.NOTIFY_DENTIST: "notify_dentist_daily",
            SettingKey.LINE_ACCESS_TOKEN: "line_channel_access_token",
            SettingKey.LAST_MORNING: "last_morning_sent",
            SettingKey.LAST_EVENING: "last_evening_sent",
        }
        data: dict[str, Any] = {
            field_name: values[key] for key, field_name in field_map.items() if key in values
        }
        if not data.get("line_channel_access_token") and line_channel_access_token:
            data["line_channel_access_token"] = line_channel_access_token
        data["vapid_public_key"] = vapid_public_key
        data["vapid_private_key"] = vapid_private_key
        if vapid_subject:
            data["vapid_subject"] = vapid_subject

        try:
            return cls(**data)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
            raise SettingsValidationError(f"Invalid notification settings: {details}") from exc

    @property
    def line_configured(self) -> bool:
        return bool(self.line_channel_access_token)

    @property
    def push_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    def target_time(self, digest_type: DigestType) -> time:
        return self.morning_time if digest_type is DigestType.MORNING else self.evening_time

    def last_sent(self, digest_type: DigestType) -> date | None:
        if digest_type is DigestType.MORNING:
            return self.last_morning_sent
        return self.last_evening_sent


__all__ = [
    "DigestType",
    "NotificationSettings",
    "SettingKey",
    "parse_clock_time",
]
