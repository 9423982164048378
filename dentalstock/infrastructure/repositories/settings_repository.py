"""Key/value settings persistence, including the daily digest markers."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dentalstock.config import Settings
from dentalstock.domain.entities import NotificationSettings, SettingKey
from dentalstock.domain.errors import SettingsValidationError
from dentalstock.infrastructure.models import SettingModel
from dentalstock.utils import now_in_app_naive_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerClaim:
    """Outcome of trying to claim a daily marker.

    ``previous`` holds the raw stored value before the claim so that a failed
    run can restore it.
    """

    claimed: bool
    previous: str | None = None


class SettingsRepository:
    """Read and write JSON-encoded rows of the ``setting`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_values(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return decoded values for the stored subset of ``keys``."""

        wanted = list(keys)
        if not wanted:
            return {}
        rows = self.session.query(SettingModel).filter(SettingModel.key.in_(wanted)).all()
        values: dict[str, Any] = {}
        for row in rows:
            try:
                values[row.key] = json.loads(row.value)
            except (TypeError, ValueError) as exc:
                msg = f"Setting '{row.key}' does not hold valid JSON"
                raise SettingsValidationError(msg) from exc
        return values

    def get_value(self, key: str, default: Any = None) -> Any:
        return self.get_values([key]).get(key, default)

    def set_value(self, key: str, value: Any, *, description: str | None = None) -> None:
        model = self.session.get(SettingModel, key)
        if model is None:
            model = SettingModel(key=key)
        model.value = json.dumps(value)
        if description is not None:
            model.description = description
        model.updated_at = now_in_app_naive_datetime()
        self.session.add(model)
        self.session.commit()

    def load_notification_settings(self, settings: Settings) -> NotificationSettings:
        """Build the immutable configuration snapshot from rows and env secrets."""

        return NotificationSettings.from_stored(
            self.get_values(SettingKey.ALL),
            line_channel_access_token=settings.line_channel_access_token,
            vapid_public_key=settings.vapid_public_key,
            vapid_private_key=settings.vapid_private_key,
            vapid_subject=settings.vapid_subject,
        )

    def claim_daily_marker(self, key: str, day: date) -> MarkerClaim:
        """Atomically record that ``key`` ran on ``day``.

        Exactly one caller per day gets ``claimed=True``: the conditional update
        only matches rows not yet holding ``day`` and a concurrent first insert
        is rejected by the primary key.
        """

        marker = json.dumps(day.isoformat())
        current = self.session.get(SettingModel, key)
        if current is None:
            self.session.add(
                SettingModel(key=key, value=marker, updated_at=now_in_app_naive_datetime())
            )
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                logger.info("Daily marker %s already claimed by a concurrent run", key)
                return MarkerClaim(claimed=False)
            return MarkerClaim(claimed=True, previous=None)

        previous = current.value
        if previous == marker:
            return MarkerClaim(claimed=False, previous=previous)

        updated = (
            self.session.query(SettingModel)
            .filter(SettingModel.key == key, SettingModel.value == previous)
            .update(
                {
                    SettingModel.value: marker,
                    SettingModel.updated_at: now_in_app_naive_datetime(),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        self.session.expire_all()
        return MarkerClaim(claimed=updated == 1, previous=previous)

    def release_daily_marker(self, key: str, day: date, claim: MarkerClaim) -> None:
        """Undo a successful claim so a later run may retry the same day."""

        if not claim.claimed:
            return
        marker = json.dumps(day.isoformat())
        query = self.session.query(SettingModel).filter(
            SettingModel.key == key, SettingModel.value == marker
        )
        if claim.previous is None:
            query.delete(synchronize_session=False)
        else:
            query.update(
                {
                    SettingModel.value: claim.previous,
                    SettingModel.updated_at: now_in_app_naive_datetime(),
                },
                synchronize_session=False,
            )
        self.session.commit()
        self.session.expire_all()


__all__ = ["MarkerClaim", "SettingsRepository"]
