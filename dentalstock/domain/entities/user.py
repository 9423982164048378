"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime

from .role import Role


@dataclass
class User:
    """Core attributes describing an application user."""

    id: int | None
    role: Role
    name: str
    email: str
    password: str
    line_user_id: str | None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def has_role(self, role: Role | str) -> bool:
        """Return ``True`` when the user holds ``role``."""

        alias = role.value if isinstance(role, Role) else role
        return self.role.value == alias.lower()

    def is_admin(self) -> bool:
        """Return ``True`` when the user is an administrator."""

        return self.has_role(Role.ADMIN)

    @property
    def line_connected(self) -> bool:
        return bool(self.line_user_id)
