from __future__ import annotations

from typing import Protocol
from uuid import UUID

from agencyhub.models.ai_strategy import AiStrategy


class AiStrategyRepo(Protocol):
    def add(self, strategy: AiStrategy) -> None: ...
    def list_by_org(self, org_id: UUID) -> list[AiStrategy]: ...


class InMemoryAiStrategyRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, AiStrategy] = {}

    def add(self, strategy: AiStrategy) -> None:
        self._store[strategy.id] = strategy

    def list_by_org(self, org_id: UUID) -> list[AiStrategy]:
        items = [s for s in self._store.values() if s.organization_id == org_id]
        return sorted(items, key=lambda s: s.created_at, reverse=True)
