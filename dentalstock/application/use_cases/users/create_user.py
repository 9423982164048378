"""Use case for creating users."""

from sqlalchemy.orm import Session

from dentalstock.domain.entities import Role, User
from dentalstock.infrastructure.repositories import UserRepository
from dentalstock.infrastructure.security import get_password_hash


def create_user(
    session: Session,
    *,
    name: str,
    role: Role | str,
    email: str,
    password: str,
    line_user_id: str | None = None,
) -> User:
    """Create a new user ensuring unique email addresses."""

    repository = UserRepository(session)

    if repository.get_by_email(email):
        msg = "Email address is already registered"
        raise ValueError(msg)

    parsed_role = role if isinstance(role, Role) else Role.parse(role)

    user = User(
        id=None,
        role=parsed_role,
        name=name,
        email=email,
        password=get_password_hash(password),
        line_user_id=line_user_id,
        is_active=True,
    )

    return repository.create(user)
