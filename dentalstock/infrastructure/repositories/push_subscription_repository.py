"""Persistence helpers for browser push subscriptions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from dentalstock.domain.entities import PushSubscription
from dentalstock.infrastructure.models import PushSubscriptionModel
from dentalstock.utils import ensure_app_timezone, now_in_app_naive_datetime


class PushSubscriptionRepository:
    """Store push endpoints keyed by their unique ``endpoint`` URL."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_endpoint(self, endpoint: str) -> PushSubscription | None:
        model = self._get_model_by_endpoint(endpoint)
        return self._to_entity(model) if model else None

    def upsert(self, subscription: PushSubscription) -> tuple[PushSubscription, bool]:
        """Insert or refresh a subscription by endpoint.

        Returns the stored subscription and whether a new row was created. An
        existing endpoint is re-bound to ``subscription.user_id`` and reactivated.
        """

        model = self._get_model_by_endpoint(subscription.endpoint)
        created = model is None
        if model is None:
            model = PushSubscriptionModel(endpoint=subscription.endpoint)
        else:
            model.updated_at = now_in_app_naive_datetime()
        model.user_id = subscription.user_id
        model.p256dh_key = subscription.p256dh_key
        model.auth_key = subscription.auth_key
        model.user_agent = subscription.user_agent
        model.is_active = True
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model), created

    def delete_by_endpoint(self, endpoint: str, *, user_id: int | None = None) -> bool:
        query = self.session.query(PushSubscriptionModel).filter(
            PushSubscriptionModel.endpoint == endpoint
        )
        if user_id is not None:
            query = query.filter(PushSubscriptionModel.user_id == user_id)
        deleted = query.delete(synchronize_session=False)
        self.session.commit()
        return deleted > 0

    def list_active_for_users(self, user_ids: Iterable[int]) -> Sequence[PushSubscription]:
        ids = set(user_ids)
        if not ids:
            return []
        query = (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.user_id.in_(ids))
            .filter(PushSubscriptionModel.is_active.is_(True))
            .order_by(PushSubscriptionModel.id)
        )
        return [self._to_entity(model) for model in query.all()]

    def deactivate(self, subscription_ids: Iterable[int]) -> int:
        ids = [subscription_id for subscription_id in subscription_ids if subscription_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.id.in_(ids))
            .update(
                {
                    PushSubscriptionModel.is_active: False,
                    PushSubscriptionModel.updated_at: now_in_app_naive_datetime(),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def _get_model_by_endpoint(self, endpoint: str) -> PushSubscriptionModel | None:
        return (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.endpoint == endpoint)
            .first()
        )

    @staticmethod
    def _to_entity(model: PushSubscriptionModel) -> PushSubscription:
        return PushSubscription(
            id=model.id,
            user_id=model.user_id,
            endpoint=model.endpoint,
            p256dh_key=model.p256dh_key,
            auth_key=model.auth_key,
            user_agent=model.user_agent,
            is_active=bool(model.is_active),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["PushSubscriptionRepository"]
