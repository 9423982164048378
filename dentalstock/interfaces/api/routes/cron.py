"""Cron endpoints that drive the scheduled daily digests."""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query

from dentalstock.application.use_cases.notifications import DigestScheduler, SchedulerReport
from dentalstock.domain.entities import DigestType
from dentalstock.interfaces.api.dependencies import get_digest_scheduler, require_cron_secret
from dentalstock.utils import now_in_app_timezone

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(require_cron_secret)],
)
logger = logging.getLogger(__name__)

DailyType = Literal["morning", "evening", "both"]


def _response(report: SchedulerReport, type_: str, **extra: Any) -> dict[str, Any]:
    return {
        "success": True,
        "type": type_,
        "enabled": report.enabled,
        "sent": report.sent,
        "results": report.results(),
        "timestamp": now_in_app_timezone().isoformat(),
        **extra,
    }


@router.api_route("/morning", methods=["GET", "POST"])
async def cron_morning(scheduler: DigestScheduler = Depends(get_digest_scheduler)):
    """Send today's digest unless it already went out today."""

    logger.info("Morning cron triggered")
    report = await scheduler.run_scheduled(DigestType.MORNING)
    return _response(report, DigestType.MORNING.value)


@router.api_route("/evening", methods=["GET", "POST"])
async def cron_evening(scheduler: DigestScheduler = Depends(get_digest_scheduler)):
    """Send tomorrow's preview unless it already went out today."""

    logger.info("Evening cron triggered")
    report = await scheduler.run_scheduled(DigestType.EVENING)
    return _response(report, DigestType.EVENING.value)


@router.api_route("/check", methods=["GET", "POST"])
async def cron_check(scheduler: DigestScheduler = Depends(get_digest_scheduler)):
    """Intended to run every 15 minutes; sends whichever digest is due."""

    report = await scheduler.check()
    logger.info("Cron check at %s: sent=%s", report.local_time.strftime("%H:%M"), report.sent)
    return _response(report, "check", local_time=report.local_time.strftime("%H:%M"))


@router.api_route("/daily", methods=["GET", "POST"])
async def cron_daily(
    type: DailyType = Query("both"),
    scheduler: DigestScheduler = Depends(get_digest_scheduler),
):
    """Manual override that sends the requested digests regardless of markers."""

    if type == "both":
        digest_types = [DigestType.MORNING, DigestType.EVENING]
    else:
        digest_types = [DigestType(type)]
    logger.info("Manual daily cron triggered for %s", type)
    report = await scheduler.force(digest_types)
    return _response(report, f"daily_{type}")
