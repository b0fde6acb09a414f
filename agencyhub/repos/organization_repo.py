from __future__ import annotations

import threading
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from agencyhub.models.organization import Organization


class OrganizationRepo(Protocol):
    def get(self, org_id: UUID) -> Organization | None: ...
    def get_by_subdomain(self, subdomain: str) -> Organization | None: ...
    def add(self, org: Organization) -> None: ...
    def remove(self, org_id: UUID) -> bool: ...
    def set_plan(self, org_id: UUID, plan_id: UUID | None) -> Organization | None: ...
    def set_active(self, org_id: UUID, is_active: bool) -> Organization | None: ...


class InMemoryOrganizationRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, Organization] = {}
        self._by_subdomain: dict[str, UUID] = {}
        self._lock = threading.Lock()

    def get(self, org_id: UUID) -> Organization | None:
        return self._store.get(org_id)

    def get_by_subdomain(self, subdomain: str) -> Organization | None:
        org_id = self._by_subdomain.get(subdomain.strip().lower())
        return self._store.get(org_id) if org_id else None

    def add(self, org: Organization) -> None:
        with self._lock:
            if org.subdomain in self._by_subdomain:
                raise ValueError("subdomain already exists")
            self._store[org.id] = org
            self._by_subdomain[org.subdomain] = org.id

    def remove(self, org_id: UUID) -> bool:
        with self._lock:
            org = self._store.pop(org_id, None)
            if org is None:
                return False
            del self._by_subdomain[org.subdomain]
            return True

    def set_plan(self, org_id: UUID, plan_id: UUID | None) -> Organization | None:
        return self._update(org_id, plan_id=plan_id)

    def set_active(self, org_id: UUID, is_active: bool) -> Organization | None:
        return self._update(org_id, is_active=is_active)

    def _update(self, org_id: UUID, **changes) -> Organization | None:
        with self._lock:
            org = self._store.get(org_id)
            if org is None:
                return None
            updated = replace(org, **changes)
            self._store[org_id] = updated
            return updated
