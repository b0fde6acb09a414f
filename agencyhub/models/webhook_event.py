from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class EventStatus(StrEnum):
    RECEIVED = "received"
    PROCESSED = "processed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class WebhookEvent:
    """Raw processor event as received.  Applied later by the worker."""

    id: UUID
    provider: str
    external_id: str
    event_type: str
    payload: dict
    status: EventStatus = EventStatus.RECEIVED
    error: str | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    processed_at: datetime | None = None

    @staticmethod
    def new(
        *, provider: str, external_id: str, event_type: str, payload: dict
    ) -> WebhookEvent:
        return WebhookEvent(
            id=uuid4(),
            provider=provider,
            external_id=external_id,
            event_type=event_type,
            payload=payload,
        )
