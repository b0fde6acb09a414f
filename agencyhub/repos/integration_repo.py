from __future__ import annotations

from typing import Protocol
from uuid import UUID

from agencyhub.models.integration import MarketingIntegration


class IntegrationRepo(Protocol):
    def add(self, integration: MarketingIntegration) -> None: ...
    def list_by_org(self, org_id: UUID) -> list[MarketingIntegration]: ...
    def count_active_by_org(self, org_id: UUID) -> int: ...


class InMemoryIntegrationRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, MarketingIntegration] = {}

    def add(self, integration: MarketingIntegration) -> None:
        self._store[integration.id] = integration

    def list_by_org(self, org_id: UUID) -> list[MarketingIntegration]:
        return [i for i in self._store.values() if i.organization_id == org_id]

    def count_active_by_org(self, org_id: UUID) -> int:
        return sum(
            1
            for i in self._store.values()
            if i.organization_id == org_id and i.is_active
        )
