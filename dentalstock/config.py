"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key for signing JWT tokens", min_length=1
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_timezone: str = Field(
        default="Asia/Bangkok",
        description="Civil timezone used for digest schedules and daily send markers",
    )
    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Public base URL of the clinic web application, used in message links",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    cron_secret: str | None = Field(
        default=None,
        description="Shared secret expected by the scheduled trigger endpoints",
    )

    line_channel_secret: str | None = Field(
        default=None,
        description="LINE channel secret used to verify webhook signatures",
    )
    line_channel_access_token: str | None = Field(
        default=None,
        description="Fallback LINE channel access token when none is stored in settings",
    )
    line_api_base_url: str = Field(
        default="https://api.line.me",
        description="Base URL of the LINE Messaging API",
    )

    vapid_public_key: str | None = Field(
        default=None, description="Public VAPID key handed to browsers on subscribe"
    )
    vapid_private_key: str | None = Field(
        default=None, description="Private VAPID key used to sign push requests"
    )
    vapid_subject: str = Field(
        default="mailto:admin@dentalstock.com",
        description="Contact URI sent in the VAPID claims",
    )

    delivery_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound for a single push or LINE delivery attempt",
        gt=0,
    )
    link_code_ttl_minutes: int = Field(
        default=15,
        description="Validity window of a LINE linking code",
        gt=0,
    )

    @model_validator(mode="after")
    def _validate_vapid_pair(self) -> "Settings":
        if bool(self.vapid_public_key) ^ bool(self.vapid_private_key):
            raise ValueError(
                "VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY must both be provided to enable push"
            )
        return self

    @property
    def push_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
