"""Persistence for LINE linking codes and pending followers."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from dentalstock.domain.entities import LineLinkCode, LinkOutcome, PendingLineLink
from dentalstock.infrastructure.models import (
    LineLinkCodeModel,
    LinePendingLinkModel,
    UserModel,
)
from dentalstock.utils import ensure_app_naive_datetime, ensure_app_timezone


class LineLinkRepository:
    """Manage one-time linking codes and the follow-but-unlinked list."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_code_for_user(self, user_id: int) -> LineLinkCode | None:
        model = (
            self.session.query(LineLinkCodeModel)
            .filter(LineLinkCodeModel.user_id == user_id)
            .first()
        )
        return self._to_entity(model) if model else None

    def code_exists(self, code: str) -> bool:
        return self.session.get(LineLinkCodeModel, code) is not None

    def replace_code(self, link_code: LineLinkCode) -> LineLinkCode:
        """Store ``link_code`` after dropping any code the user held before."""

        self.session.query(LineLinkCodeModel).filter(
            LineLinkCodeModel.user_id == link_code.user_id
        ).delete(synchronize_session=False)
        model = LineLinkCodeModel(
            code=link_code.code,
            user_id=link_code.user_id,
            expires_at=ensure_app_naive_datetime(link_code.expires_at),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def delete_codes_for_user(self, user_id: int) -> int:
        deleted = (
            self.session.query(LineLinkCodeModel)
            .filter(LineLinkCodeModel.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def redeem_code(
        self, code: str, line_user_id: str, now: datetime
    ) -> tuple[LinkOutcome, int | None]:
        """Consume ``code`` and bind ``line_user_id`` to its owner in one transaction.

        The code row is deleted with a conditional delete, so a code can bind at
        most one account even when two messages race. Expired codes are removed
        without binding, whoever sends them. A LINE account already bound to
        another user leaves a live code untouched.
        """

        model = self.session.get(LineLinkCodeModel, code)
        if model is None:
            return LinkOutcome.NOT_FOUND, None
        link_code = self._to_entity(model)

        if link_code.is_expired(now):
            deleted = self._delete_code(code)
            self.session.commit()
            if deleted != 1:
                return LinkOutcome.NOT_FOUND, None
            return LinkOutcome.EXPIRED, link_code.user_id

        owner = (
            self.session.query(UserModel)
            .filter(UserModel.line_user_id == line_user_id)
            .first()
        )
        if owner is not None and owner.id != link_code.user_id:
            return LinkOutcome.CONFLICT, owner.id

        deleted = self._delete_code(code)
        if deleted != 1:
            self.session.rollback()
            return LinkOutcome.NOT_FOUND, None

        user = self.session.get(UserModel, link_code.user_id)
        if user is None:
            self.session.commit()
            return LinkOutcome.NOT_FOUND, None
        user.line_user_id = line_user_id
        self.session.add(user)
        self.session.query(LinePendingLinkModel).filter(
            LinePendingLinkModel.line_user_id == line_user_id
        ).delete(synchronize_session=False)
        self.session.commit()
        return LinkOutcome.LINKED, link_code.user_id

    def _delete_code(self, code: str) -> int:
        return (
            self.session.query(LineLinkCodeModel)
            .filter(LineLinkCodeModel.code == code)
            .delete(synchronize_session=False)
        )

    def upsert_pending(self, pending: PendingLineLink) -> None:
        model = self.session.get(LinePendingLinkModel, pending.line_user_id)
        if model is None:
            model = LinePendingLinkModel(line_user_id=pending.line_user_id)
        model.followed_at = ensure_app_naive_datetime(pending.followed_at)
        self.session.add(model)
        self.session.commit()

    def delete_pending(self, line_user_id: str) -> bool:
        deleted = (
            self.session.query(LinePendingLinkModel)
            .filter(LinePendingLinkModel.line_user_id == line_user_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted > 0

    def get_pending(self, line_user_id: str) -> PendingLineLink | None:
        model = self.session.get(LinePendingLinkModel, line_user_id)
        if model is None:
            return None
        return PendingLineLink(
            line_user_id=model.line_user_id,
            followed_at=ensure_app_timezone(model.followed_at),
        )

    @staticmethod
    def _to_entity(model: LineLinkCodeModel) -> LineLinkCode:
        return LineLinkCode(
            code=model.code,
            user_id=model.user_id,
            expires_at=ensure_app_timezone(model.expires_at),
        )


__all__ = ["LineLinkRepository"]
