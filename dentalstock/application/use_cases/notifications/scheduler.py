"""Time-window evaluation and at-most-once execution of daily digests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalstock.domain.entities import (
    DigestResult,
    DigestType,
    LogStatus,
    NotificationLogEntry,
    NotificationSettings,
    RecipientType,
)
from dentalstock.infrastructure.repositories import NotificationLogRepository, SettingsRepository
from dentalstock.utils import now_in_app_timezone

from .digest import DailyDigestService

logger = logging.getLogger(__name__)

SEND_WINDOW_MINUTES = 15
CRON_CHANNEL = "cron"


def is_digest_due(
    now: datetime | time, target: time, window_minutes: int = SEND_WINDOW_MINUTES
) -> bool:
    """Return whether ``now`` falls in ``[target, target + window)`` on the wall clock."""

    current = now.hour * 60 + now.minute
    scheduled = target.hour * 60 + target.minute
    return 0 <= current - scheduled < window_minutes


@dataclass
class DigestRun:
    """What happened to one digest type during a trigger invocation."""

    digest_type: DigestType
    sent: bool
    reason: str
    results: DigestResult | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"sent": self.sent, "reason": self.reason}
        if self.results is not None:
            payload["results"] = self.results.to_dict()
        return payload


@dataclass
class SchedulerReport:
    """Result of a scheduler entry point, shaped for the cron responses."""

    local_time: datetime
    runs: list[DigestRun] = field(default_factory=list)
    enabled: bool = True

    @property
    def sent(self) -> bool:
        return any(run.sent for run in self.runs)

    def run_for(self, digest_type: DigestType) -> DigestRun | None:
        for run in self.runs:
            if run.digest_type is digest_type:
                return run
        return None

    def results(self) -> dict[str, Any]:
        return {run.digest_type.value: run.to_dict() for run in self.runs}


class DigestScheduler:
    """Decide whether a digest should go out and make sure it goes out once a day.

    ``now`` is injectable so the window logic can be exercised with fixed times.
    The daily marker is claimed atomically before the fan-out and released
    again when the fan-out raises.
    """

    def __init__(
        self,
        session: Session,
        notification_settings: NotificationSettings,
        digest_service: DailyDigestService,
        *,
        now: Callable[[], datetime] = now_in_app_timezone,
        window_minutes: int = SEND_WINDOW_MINUTES,
    ) -> None:
        self.session = session
        self._settings = notification_settings
        self._digests = digest_service
        self._now = now
        self._window_minutes = window_minutes
        self._settings_repository = SettingsRepository(session)
        self._logs = NotificationLogRepository(session)

    async def check(self) -> SchedulerReport:
        """Send every digest whose window is open and which has not run today."""

        now = self._now()
        report = SchedulerReport(local_time=now, enabled=self._settings.enabled)
        if not self._settings.enabled:
            logger.info("Scheduled notifications are disabled")
            return report

        for digest_type in DigestType:
            target = self._settings.target_time(digest_type)
            if not is_digest_due(now, target, self._window_minutes):
                report.runs.append(DigestRun(digest_type, sent=False, reason="not_due"))
                continue
            report.runs.append(
                await self._run_once(digest_type, now, notification_type="scheduled_check")
            )
        return report

    async def run_scheduled(self, digest_type: DigestType) -> SchedulerReport:
        """Send ``digest_type`` unless it already ran today, ignoring the window."""

        now = self._now()
        report = SchedulerReport(local_time=now, enabled=self._settings.enabled)
        if not self._settings.enabled:
            logger.info("Scheduled notifications are disabled")
            return report
        report.runs.append(
            await self._run_once(
                digest_type, now, notification_type=f"daily_{digest_type.value}"
            )
        )
        return report

    async def force(self, digest_types: Iterable[DigestType]) -> SchedulerReport:
        """Manual override: send regardless of the window and the daily marker."""

        now = self._now()
        report = SchedulerReport(local_time=now, enabled=self._settings.enabled)
        if not self._settings.enabled:
            logger.info("Scheduled notifications are disabled; manual run skipped")
            return report

        for digest_type in dict.fromkeys(digest_types):
            results = await self._digests.send(digest_type, now.date())
            self._write_summary(digest_type, results, now, "daily_manual", forced=True)
            report.runs.append(DigestRun(digest_type, sent=True, reason="forced", results=results))
        return report

    async def _run_once(
        self, digest_type: DigestType, now: datetime, *, notification_type: str
    ) -> DigestRun:
        today = now.date()
        if self._settings.last_sent(digest_type) == today:
            return DigestRun(digest_type, sent=False, reason="already_sent")

        claim = self._settings_repository.claim_daily_marker(digest_type.marker_key, today)
        if not claim.claimed:
            logger.info("%s digest already sent for %s", digest_type.value, today)
            return DigestRun(digest_type, sent=False, reason="already_sent")

        try:
            results = await self._digests.send(digest_type, today)
        except Exception:
            logger.exception("%s digest failed; releasing daily marker", digest_type.value)
            self.session.rollback()
            self._settings_repository.release_daily_marker(
                digest_type.marker_key, today, claim
            )
            raise

        self._write_summary(digest_type, results, now, notification_type)
        return DigestRun(digest_type, sent=True, reason="sent", results=results)

    def _write_summary(
        self,
        digest_type: DigestType,
        results: DigestResult,
        now: datetime,
        notification_type: str,
        *,
        forced: bool = False,
    ) -> None:
        entry = NotificationLogEntry(
            recipient_type=RecipientType.SYSTEM,
            channel=CRON_CHANNEL,
            notification_type=notification_type,
            title=f"{digest_type.value.capitalize()} digest completed",
            message=results.summary(),
            status=LogStatus.SENT,
            sent_at=now,
            metadata={
                "digest_type": digest_type.value,
                "forced": forced,
                "local_time": now.strftime("%H:%M"),
                "results": results.to_dict(),
            },
        )
        try:
            self._logs.append(entry)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Failed to record %s digest summary", digest_type.value)


__all__ = [
    "DigestRun",
    "DigestScheduler",
    "SEND_WINDOW_MINUTES",
    "SchedulerReport",
    "is_digest_due",
]
