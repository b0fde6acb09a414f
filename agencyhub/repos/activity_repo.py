from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from agencyhub.models.activity import Activity


class ActivityRepo(Protocol):
    def add(self, activity: Activity) -> None: ...
    def list_by_org(self, org_id: UUID, *, limit: int = 50) -> list[Activity]: ...
    def count_in_window(
        self, org_id: UUID, activity_type: str, start: datetime, end: datetime
    ) -> int: ...


class InMemoryActivityRepo:
    def __init__(self) -> None:
        self._store: list[Activity] = []

    def add(self, activity: Activity) -> None:
        self._store.append(activity)

    def list_by_org(self, org_id: UUID, *, limit: int = 50) -> list[Activity]:
        items = [a for a in self._store if a.organization_id == org_id]
        items.sort(key=lambda a: a.created_at, reverse=True)
        return items[:limit]

    def count_in_window(
        self, org_id: UUID, activity_type: str, start: datetime, end: datetime
    ) -> int:
        # Both bounds inclusive
        return sum(
            1
            for a in self._store
            if a.organization_id == org_id
            and a.type == activity_type
            and start <= a.created_at <= end
        )
