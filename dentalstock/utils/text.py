"""Small string helpers shared by logging and persistence code."""

from __future__ import annotations

LOG_MESSAGE_LIMIT = 500


def truncate(value: str | None, limit: int = LOG_MESSAGE_LIMIT) -> str | None:
    """Return ``value`` cut down to at most ``limit`` characters."""

    if value is None:
        return None
    if len(value) <= limit:
        return value
    return value[:limit]


__all__ = ["LOG_MESSAGE_LIMIT", "truncate"]
