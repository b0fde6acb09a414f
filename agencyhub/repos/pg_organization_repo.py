"""PostgreSQL implementation of OrganizationRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from agencyhub.db.tables import OrganizationRow
from agencyhub.models.organization import Organization


class PgOrganizationRepo:
    """Satisfies the OrganizationRepo Protocol using PostgreSQL via SQLAlchemy.

    Subdomain uniqueness is the ``organizations.subdomain`` unique index.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def get(self, org_id: UUID) -> Organization | None:
        with self._sessions() as session:
            row = session.get(OrganizationRow, org_id)
            return None if row is None else _row_to_org(row)

    def get_by_subdomain(self, subdomain: str) -> Organization | None:
        stmt = select(OrganizationRow).where(
            OrganizationRow.subdomain == subdomain.strip().lower()
        )
        with self._sessions() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return None if row is None else _row_to_org(row)

    def add(self, org: Organization) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(
                    OrganizationRow(
                        id=org.id,
                        name=org.name,
                        subdomain=org.subdomain,
                        plan_id=org.plan_id,
                        max_users=org.max_users,
                        max_clients=org.max_clients,
                        is_active=org.is_active,
                        settings=dict(org.settings),
                        created_at=org.created_at,
                    )
                )
        except IntegrityError as e:
            raise ValueError("subdomain already exists") from e

    def remove(self, org_id: UUID) -> bool:
        with self._sessions.begin() as session:
            result = session.execute(delete(OrganizationRow).where(OrganizationRow.id == org_id))
            return result.rowcount == 1

    def set_plan(self, org_id: UUID, plan_id: UUID | None) -> Organization | None:
        return self._update(org_id, plan_id=plan_id)

    def set_active(self, org_id: UUID, is_active: bool) -> Organization | None:
        return self._update(org_id, is_active=is_active)

    def _update(self, org_id: UUID, **values) -> Organization | None:
        stmt = (
            update(OrganizationRow)
            .where(OrganizationRow.id == org_id)
            .values(**values)
            .returning(OrganizationRow)
        )
        with self._sessions.begin() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return None if row is None else _row_to_org(row)


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        subdomain=row.subdomain,
        plan_id=row.plan_id,
        max_users=row.max_users,
        max_clients=row.max_clients,
        is_active=row.is_active,
        settings=dict(row.settings or {}),
        created_at=row.created_at,
    )
