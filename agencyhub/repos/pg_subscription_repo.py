"""PostgreSQL implementation of SubscriptionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from agencyhub.db.tables import SubscriptionRow
from agencyhub.models.subscription import ACTIVE_STATUSES, SubscriptionRecord

_COLUMNS = (
    "organization_id",
    "plan_id",
    "provider",
    "status",
    "external_id",
    "customer_ref",
    "current_period_end",
    "cancel_at_period_end",
    "payment_url",
    "created_at",
)


class PgSubscriptionRepo:
    """Satisfies the SubscriptionRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def add(self, sub: SubscriptionRecord) -> None:
        with self._sessions.begin() as session:
            session.add(SubscriptionRow(id=sub.id, **{n: getattr(sub, n) for n in _COLUMNS}))

    def save(self, sub: SubscriptionRecord) -> None:
        with self._sessions.begin() as session:
            row = session.get(SubscriptionRow, sub.id)
            if row is None:
                raise KeyError("subscription not found")
            for name in _COLUMNS:
                setattr(row, name, getattr(sub, name))

    def get_by_external_id(
        self, provider: str, external_id: str
    ) -> SubscriptionRecord | None:
        stmt = select(SubscriptionRow).where(
            SubscriptionRow.provider == provider,
            SubscriptionRow.external_id == external_id,
        )
        with self._sessions() as session:
            row = session.execute(stmt).scalars().first()
            return None if row is None else _row_to_sub(row)

    def list_by_org(self, org_id: UUID) -> list[SubscriptionRecord]:
        with self._sessions() as session:
            rows = session.execute(_by_org(org_id)).scalars()
            return [_row_to_sub(r) for r in rows]

    def current_for_org(self, org_id: UUID) -> SubscriptionRecord | None:
        """Most recent active or trialing subscription, if any."""
        stmt = _by_org(org_id).where(SubscriptionRow.status.in_(ACTIVE_STATUSES)).limit(1)
        with self._sessions() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return None if row is None else _row_to_sub(row)


def _by_org(org_id: UUID):
    return (
        select(SubscriptionRow)
        .where(SubscriptionRow.organization_id == org_id)
        .order_by(SubscriptionRow.created_at.desc())
    )


def _row_to_sub(row: SubscriptionRow) -> SubscriptionRecord:
    return SubscriptionRecord(id=row.id, **{n: getattr(row, n) for n in _COLUMNS})
