"""PostgreSQL implementation of WebhookEventRepo.

This is the outbox the worker reads from, so the API process and the
worker process must both point at it.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session, sessionmaker

from agencyhub.db.tables import WebhookEventRow
from agencyhub.models.webhook_event import EventStatus, WebhookEvent


class PgWebhookEventRepo:
    """Satisfies the WebhookEventRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def add(self, event: WebhookEvent) -> bool:
        """Store the event; False when (provider, external_id) was already seen."""
        stmt = (
            insert(WebhookEventRow)
            .values(
                id=event.id,
                provider=event.provider,
                external_id=event.external_id,
                event_type=event.event_type,
                payload=event.payload,
                status=str(event.status),
                error=event.error,
                received_at=event.received_at,
                processed_at=event.processed_at,
            )
            .on_conflict_do_nothing(constraint="uq_webhook_events_provider_external_id")
        )
        with self._sessions.begin() as session:
            return session.execute(stmt).rowcount == 1

    def get(self, event_id: UUID) -> WebhookEvent | None:
        with self._sessions() as session:
            row = session.get(WebhookEventRow, event_id)
            return None if row is None else _row_to_event(row)

    def save(self, event: WebhookEvent) -> None:
        with self._sessions.begin() as session:
            row = session.get(WebhookEventRow, event.id)
            if row is None:
                raise KeyError("webhook event not found")
            row.status = str(event.status)
            row.error = event.error
            row.processed_at = event.processed_at

    def list_by_status(self, *statuses: EventStatus) -> list[WebhookEvent]:
        stmt = (
            select(WebhookEventRow)
            .where(WebhookEventRow.status.in_([str(s) for s in statuses]))
            .order_by(WebhookEventRow.received_at)
        )
        with self._sessions() as session:
            return [_row_to_event(r) for r in session.execute(stmt).scalars()]


def _row_to_event(row: WebhookEventRow) -> WebhookEvent:
    return WebhookEvent(
        id=row.id,
        provider=row.provider,
        external_id=row.external_id,
        event_type=row.event_type,
        payload=dict(row.payload),
        status=EventStatus(row.status),
        error=row.error,
        received_at=row.received_at,
        processed_at=row.processed_at,
    )
