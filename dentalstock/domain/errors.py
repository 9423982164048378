"""Exceptions raised by the notification subsystem."""

from __future__ import annotations


class NotificationConfigurationError(RuntimeError):
    """A secret, token or key pair required for delivery is not configured."""


class SettingsValidationError(ValueError):
    """A stored setting could not be parsed into the typed configuration."""


class EventValidationError(ValueError):
    """A notification event is missing one of its required fields."""


class InvalidTargetingError(ValueError):
    """No targeting mechanism (id, id list or roles) was provided."""


class NoRecipientsError(LookupError):
    """The targeting resolved to an empty recipient set."""


__all__ = [
    "EventValidationError",
    "InvalidTargetingError",
    "NoRecipientsError",
    "NotificationConfigurationError",
    "SettingsValidationError",
]
