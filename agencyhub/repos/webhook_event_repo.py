from __future__ import annotations

import threading
from typing import Protocol
from uuid import UUID

from agencyhub.models.webhook_event import EventStatus, WebhookEvent


class WebhookEventRepo(Protocol):
    def add(self, event: WebhookEvent) -> bool: ...
    def get(self, event_id: UUID) -> WebhookEvent | None: ...
    def save(self, event: WebhookEvent) -> None: ...
    def list_by_status(self, *statuses: EventStatus) -> list[WebhookEvent]: ...


class InMemoryWebhookEventRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, WebhookEvent] = {}
        self._keys: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def add(self, event: WebhookEvent) -> bool:
        """Store the event; False when (provider, external_id) was already seen."""
        key = (event.provider, event.external_id)
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            self._store[event.id] = event
            return True

    def get(self, event_id: UUID) -> WebhookEvent | None:
        return self._store.get(event_id)

    def save(self, event: WebhookEvent) -> None:
        if event.id not in self._store:
            raise KeyError("webhook event not found")
        self._store[event.id] = event

    def list_by_status(self, *statuses: EventStatus) -> list[WebhookEvent]:
        items = [e for e in self._store.values() if e.status in statuses]
        return sorted(items, key=lambda e: e.received_at)
