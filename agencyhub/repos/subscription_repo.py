from __future__ import annotations

from typing import Protocol
from uuid import UUID

from agencyhub.models.subscription import SubscriptionRecord


class SubscriptionRepo(Protocol):
    def add(self, sub: SubscriptionRecord) -> None: ...
    def save(self, sub: SubscriptionRecord) -> None: ...
    def get_by_external_id(self, provider: str, external_id: str) -> SubscriptionRecord | None: ...
    def list_by_org(self, org_id: UUID) -> list[SubscriptionRecord]: ...
    def current_for_org(self, org_id: UUID) -> SubscriptionRecord | None: ...


class InMemorySubscriptionRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, SubscriptionRecord] = {}

    def add(self, sub: SubscriptionRecord) -> None:
        self._store[sub.id] = sub

    def save(self, sub: SubscriptionRecord) -> None:
        if sub.id not in self._store:
            raise KeyError("subscription not found")
        self._store[sub.id] = sub

    def get_by_external_id(
        self, provider: str, external_id: str
    ) -> SubscriptionRecord | None:
        return next(
            (
                s
                for s in self._store.values()
                if s.provider == provider and s.external_id == external_id
            ),
            None,
        )

    def list_by_org(self, org_id: UUID) -> list[SubscriptionRecord]:
        items = [s for s in self._store.values() if s.organization_id == org_id]
        return sorted(items, key=lambda s: s.created_at, reverse=True)

    def current_for_org(self, org_id: UUID) -> SubscriptionRecord | None:
        """Most recent active or trialing subscription, if any."""
        return next((s for s in self.list_by_org(org_id) if s.is_active), None)
