"""Content and fan-out of the morning and evening daily digests."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta

from sqlalchemy.orm import Session

from dentalstock.domain.entities import (
    DeliveryResult,
    DigestResult,
    DigestType,
    EventKind,
    NotificationEvent,
    NotificationSettings,
    Role,
    Targeting,
)
from dentalstock.domain.errors import NoRecipientsError
from dentalstock.infrastructure.repositories import ClinicRepository

from .dispatch import NotificationDispatcher

logger = logging.getLogger(__name__)

DENTIST_PREVIEW_LIMIT = 3


def digest_target_date(digest_type: DigestType, today: date) -> date:
    """Morning digests cover ``today``, evening digests the following day."""

    return today + timedelta(days=digest_type.day_offset)


def stock_digest_event(
    digest_type: DigestType, target: date, case_count: int, pending_count: int
) -> NotificationEvent:
    day_label = "today" if digest_type is DigestType.MORNING else "tomorrow"
    return NotificationEvent(
        kind=EventKind.DAILY_SUMMARY,
        title=f"Work summary for {day_label}",
        body=f"Cases {day_label}: {case_count}\nUnprepared materials: {pending_count}",
        url="/stock/preparation",
        tag=f"daily-stock-{digest_type.value}-{target.isoformat()}",
    )


def cs_digest_event(
    digest_type: DigestType, target: date, case_count: int, pending_count: int
) -> NotificationEvent:
    day_label = "today" if digest_type is DigestType.MORNING else "tomorrow"
    if pending_count == 0:
        ready_text = "All materials are ready"
    else:
        ready_text = f"Waiting on {pending_count} material(s)"
    return NotificationEvent(
        kind=EventKind.DAILY_SUMMARY,
        title=f"Cases {day_label}",
        body=f"Number of cases: {case_count}\n{ready_text}",
        url="/cases",
        tag=f"daily-cs-{digest_type.value}-{target.isoformat()}",
    )


def dentist_digest_event(
    digest_type: DigestType, target: date, dentist_id: int, patients: list[str]
) -> NotificationEvent:
    day_label = "today" if digest_type is DigestType.MORNING else "tomorrow"
    body = ", ".join(patients[:DENTIST_PREVIEW_LIMIT])
    remaining = len(patients) - DENTIST_PREVIEW_LIMIT
    if remaining > 0:
        body = f"{body} and {remaining} more"
    return NotificationEvent(
        kind=EventKind.DAILY_SUMMARY,
        title=f"Your cases {day_label} ({len(patients)})",
        body=body,
        url="/dentist/cases",
        tag=f"daily-dentist-{digest_type.value}-{target.isoformat()}-{dentist_id}",
    )


class DailyDigestService:
    """Compose per-audience digests and hand them to the dispatcher."""

    def __init__(
        self,
        session: Session,
        dispatcher: NotificationDispatcher,
        notification_settings: NotificationSettings,
    ) -> None:
        self.session = session
        self._dispatcher = dispatcher
        self._settings = notification_settings
        self._clinic = ClinicRepository(session)

    async def send(self, digest_type: DigestType, today: date) -> DigestResult:
        target = digest_target_date(digest_type, today)
        result = DigestResult()

        case_count = self._clinic.count_active_cases_on(target)
        pending_count = self._clinic.count_pending_reservations_on(target)

        if self._settings.notify_stock_daily:
            result.stock = await self._send_to_audience(
                stock_digest_event(digest_type, target, case_count, pending_count),
                Targeting(roles=(Role.STOCK_STAFF,)),
            )
        if self._settings.notify_cs_daily:
            result.cs = await self._send_to_audience(
                cs_digest_event(digest_type, target, case_count, pending_count),
                Targeting(roles=(Role.CS,)),
            )
        if self._settings.notify_dentist_daily:
            patients_by_dentist: dict[int, list[str]] = defaultdict(list)
            for case in self._clinic.list_active_cases_on(target):
                if case.dentist_id is not None:
                    patients_by_dentist[case.dentist_id].append(case.patient_name)
            for dentist_id, patients in patients_by_dentist.items():
                dentist_result = await self._send_to_audience(
                    dentist_digest_event(digest_type, target, dentist_id, patients),
                    Targeting(user_id=dentist_id),
                )
                result.dentist.add(dentist_result)

        logger.info(
            "%s digest for %s: %s", digest_type.value.capitalize(), target, result.summary()
        )
        return result

    async def _send_to_audience(
        self, event: NotificationEvent, targeting: Targeting
    ) -> DeliveryResult:
        try:
            return await self._dispatcher.dispatch(event, targeting)
        except NoRecipientsError as exc:
            logger.info("Skipping digest audience: %s", exc)
            return DeliveryResult()


__all__ = [
    "DailyDigestService",
    "cs_digest_event",
    "dentist_digest_event",
    "digest_target_date",
    "stock_digest_event",
]
