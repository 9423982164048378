"""Role aliases assigned to clinic staff."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles a user can hold inside the clinic."""

    ADMIN = "admin"
    DENTIST = "dentist"
    STOCK_STAFF = "stock_staff"
    ASSISTANT = "assistant"
    CS = "cs"

    @classmethod
    def parse(cls, alias: str) -> "Role":
        """Return the role matching ``alias`` regardless of case."""

        try:
            return cls(alias.strip().lower())
        except ValueError as exc:
            msg = f"Unknown role '{alias}'"
            raise ValueError(msg) from exc


__all__ = ["Role"]
