"""Resolve notification targeting into a concrete set of user ids."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from dentalstock.domain.entities import Role, Targeting
from dentalstock.domain.errors import NoRecipientsError


class RecipientDirectory(Protocol):
    """Lookups needed to validate explicit ids and expand role targeting."""

    def list_existing_ids(self, user_ids: Iterable[int]) -> set[int]:
        ...

    def list_active_ids_by_roles(self, roles: Iterable[Role]) -> set[int]:
        ...


def resolve_recipients(targeting: Targeting, directory: RecipientDirectory) -> set[int]:
    """Return the deduplicated union of every targeting mechanism.

    Explicit ids missing from the directory are dropped. Raises
    :class:`NoRecipientsError` when the union is empty.
    """

    explicit: set[int] = set(targeting.user_ids)
    if targeting.user_id is not None:
        explicit.add(targeting.user_id)

    recipients: set[int] = set()
    if explicit:
        recipients.update(directory.list_existing_ids(explicit))
    if targeting.roles:
        recipients.update(directory.list_active_ids_by_roles(targeting.roles))

    if not recipients:
        if targeting.roles:
            roles = ", ".join(role.value for role in targeting.roles)
            raise NoRecipientsError(f"No recipients found for roles: {roles}")
        raise NoRecipientsError("No recipients found for the given user ids")
    return recipients


__all__ = ["RecipientDirectory", "resolve_recipients"]
