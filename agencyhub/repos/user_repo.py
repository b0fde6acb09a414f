from __future__ import annotations

import threading
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from agencyhub.models.roles import Role
from agencyhub.models.user import User


class UserRepo(Protocol):
    def get_by_id(self, user_id: UUID) -> User | None: ...
    def get_by_email(self, email: str) -> User | None: ...
    def add(self, user: User) -> None: ...
    def add_if_below_cap(self, user: User, cap: int) -> bool: ...
    def list_by_org(self, org_id: UUID) -> list[User]: ...
    def count_active_by_org(self, org_id: UUID) -> int: ...
    def activate_if_below_cap(self, user_id: UUID, cap: int) -> bool: ...
    def set_active(self, user_id: UUID, is_active: bool) -> User | None: ...
    def set_role(self, user_id: UUID, role: Role) -> User | None: ...


class InMemoryUserRepo:
    """Users keyed by id with a unique lower-cased email index.

    ``add_if_below_cap`` counts and inserts under one lock, the in-memory
    equivalent of a conditional INSERT ... WHERE (SELECT count(*)) < cap.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}
        self._by_email: dict[str, User] = {}
        self._lock = threading.Lock()

    def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email.strip().lower())

    def add(self, user: User) -> None:
        with self._lock:
            self._insert(user)

    def add_if_below_cap(self, user: User, cap: int) -> bool:
        with self._lock:
            if user.organization_id is not None and cap >= 0:
                if self._count_active(user.organization_id) >= cap:
                    return False
            self._insert(user)
            return True

    def list_by_org(self, org_id: UUID) -> list[User]:
        return [u for u in self._by_id.values() if u.organization_id == org_id]

    def count_active_by_org(self, org_id: UUID) -> int:
        return self._count_active(org_id)

    def activate_if_below_cap(self, user_id: UUID, cap: int) -> bool:
        with self._lock:
            u = self._by_id.get(user_id)
            if u is None:
                raise KeyError(user_id)
            if u.is_active:
                return True
            if u.organization_id is not None and cap >= 0:
                if self._count_active(u.organization_id) >= cap:
                    return False
            self._replace(replace(u, is_active=True))
            return True

    def set_active(self, user_id: UUID, is_active: bool) -> User | None:
        return self._update(user_id, is_active=is_active)

    def set_role(self, user_id: UUID, role: Role) -> User | None:
        return self._update(user_id, role=role)

    def _update(self, user_id: UUID, **changes) -> User | None:
        with self._lock:
            u = self._by_id.get(user_id)
            if u is None:
                return None
            updated = replace(u, **changes)
            self._replace(updated)
            return updated

    def _replace(self, user: User) -> None:
        self._by_id[user.id] = user
        self._by_email[user.email] = user

    def _insert(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    def _count_active(self, org_id: UUID) -> int:
        return sum(
            1 for u in self._by_id.values() if u.organization_id == org_id and u.is_active
        )
