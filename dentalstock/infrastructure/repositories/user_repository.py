"""Persistence layer for user data."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from dentalstock.domain.entities import Role, User
from dentalstock.infrastructure.models import UserModel
from dentalstock.utils import ensure_app_timezone


class UserRepository:
    """Provide lookups over the user directory.

    Also acts as the recipient directory used when resolving targeting.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        model = (
            self.session.query(UserModel)
            .filter(UserModel.email == email.strip().lower())
            .first()
        )
        return self._to_entity(model) if model else None

    def get_by_line_user_id(self, line_user_id: str) -> User | None:
        model = (
            self.session.query(UserModel)
            .filter(UserModel.line_user_id == line_user_id)
            .first()
        )
        return self._to_entity(model) if model else None

    def create(self, user: User) -> User:
        model = UserModel()
        self._apply_entity_to_model(model, user)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_existing_ids(self, user_ids: Iterable[int]) -> set[int]:
        ids = set(user_ids)
        if not ids:
            return set()
        query = self.session.query(UserModel.id).filter(UserModel.id.in_(ids))
        return {user_id for (user_id,) in query.all()}

    def list_active_ids_by_roles(self, roles: Iterable[Role]) -> set[int]:
        aliases = [role.value for role in roles]
        if not aliases:
            return set()
        query = (
            self.session.query(UserModel.id)
            .filter(UserModel.role.in_(aliases))
            .filter(UserModel.is_active.is_(True))
        )
        return {user_id for (user_id,) in query.all()}

    def get_line_identities(self, user_ids: Sequence[int]) -> dict[int, str]:
        """Return ``{user_id: line_user_id}`` for linked users among ``user_ids``."""

        if not user_ids:
            return {}
        query = (
            self.session.query(UserModel.id, UserModel.line_user_id)
            .filter(UserModel.id.in_(set(user_ids)))
            .filter(UserModel.line_user_id.is_not(None))
        )
        return {user_id: line_user_id for user_id, line_user_id in query.all()}

    def set_line_user_id(self, user_id: int, line_user_id: str | None) -> User:
        model = self.session.get(UserModel, user_id)
        if model is None:
            msg = f"User with id {user_id} not found"
            raise ValueError(msg)
        model.line_user_id = line_user_id
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _apply_entity_to_model(model: UserModel, user: User) -> None:
        model.name = user.name
        model.email = user.email.strip().lower()
        model.password = user.password
        model.role = user.role.value
        model.line_user_id = user.line_user_id
        model.is_active = user.is_active

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            role=Role.parse(model.role),
            name=model.name,
            email=model.email,
            password=model.password,
            line_user_id=model.line_user_id,
            is_active=bool(model.is_active),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["UserRepository"]
