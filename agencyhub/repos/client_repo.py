from __future__ import annotations

import threading
from typing import Protocol
from uuid import UUID

from agencyhub.models.client import Client


class ClientRepo(Protocol):
    def get(self, org_id: UUID, client_id: UUID) -> Client | None: ...
    def list_by_org(self, org_id: UUID) -> list[Client]: ...
    def count_by_org(self, org_id: UUID) -> int: ...
    def add_if_below_cap(self, client: Client, cap: int) -> bool: ...
    def save(self, client: Client) -> None: ...
    def delete(self, org_id: UUID, client_id: UUID) -> bool: ...


class InMemoryClientRepo:
    """Clients are always looked up with their organization id.

    A client id from another tenant behaves exactly like a missing one.
    """

    def __init__(self) -> None:
        self._store: dict[UUID, Client] = {}
        self._lock = threading.Lock()

    def get(self, org_id: UUID, client_id: UUID) -> Client | None:
        c = self._store.get(client_id)
        if c is None or c.organization_id != org_id:
            return None
        return c

    def list_by_org(self, org_id: UUID) -> list[Client]:
        clients = [c for c in self._store.values() if c.organization_id == org_id]
        return sorted(clients, key=lambda c: c.created_at, reverse=True)

    def count_by_org(self, org_id: UUID) -> int:
        return sum(1 for c in self._store.values() if c.organization_id == org_id)

    def add_if_below_cap(self, client: Client, cap: int) -> bool:
        # Negative cap is unlimited
        with self._lock:
            if cap >= 0 and self.count_by_org(client.organization_id) >= cap:
                return False
            self._store[client.id] = client
            return True

    def save(self, client: Client) -> None:
        with self._lock:
            if client.id not in self._store:
                raise KeyError("client not found")
            self._store[client.id] = client

    def delete(self, org_id: UUID, client_id: UUID) -> bool:
        with self._lock:
            if self.get(org_id, client_id) is None:
                return False
            del self._store[client_id]
            return True
