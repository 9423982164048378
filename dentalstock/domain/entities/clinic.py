"""Read-only projections of clinic records used to build notifications."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

CLOSED_CASE_STATUSES = ("completed", "cancelled")


@dataclass(frozen=True)
class SurgicalCase:
    """Scheduled surgery as seen by the daily digest."""

    id: int
    case_number: str
    patient_name: str
    dentist_id: int | None
    surgery_date: date
    status: str


@dataclass(frozen=True)
class Supplier:
    """Material supplier that may receive purchase orders over LINE."""

    id: int
    name: str
    line_user_id: str | None


__all__ = ["CLOSED_CASE_STATUSES", "Supplier", "SurgicalCase"]
