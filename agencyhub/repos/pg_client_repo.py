"""PostgreSQL implementation of ClientRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Insert, delete, func, insert, literal, select
from sqlalchemy.orm import Session, sessionmaker

from agencyhub.db.tables import ClientRow, OrganizationRow
from agencyhub.models.client import Client, ClientStatus

_FIELDS = (
    "name",
    "email",
    "phone",
    "company",
    "industry",
    "contact_person",
    "monthly_value",
    "notes",
)


class PgClientRepo:
    """Satisfies the ClientRepo Protocol using PostgreSQL via SQLAlchemy.

    Every query filters on ``organization_id`` as well as the client id.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def get(self, org_id: UUID, client_id: UUID) -> Client | None:
        stmt = select(ClientRow).where(
            ClientRow.id == client_id, ClientRow.organization_id == org_id
        )
        with self._sessions() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return None if row is None else _row_to_client(row)

    def list_by_org(self, org_id: UUID) -> list[Client]:
        stmt = (
            select(ClientRow)
            .where(ClientRow.organization_id == org_id)
            .order_by(ClientRow.created_at.desc())
        )
        with self._sessions() as session:
            return [_row_to_client(r) for r in session.execute(stmt).scalars()]

    def count_by_org(self, org_id: UUID) -> int:
        with self._sessions() as session:
            return session.execute(_count(org_id)).scalar_one()

    def add_if_below_cap(self, client: Client, cap: int) -> bool:
        with self._sessions.begin() as session:
            if cap < 0:
                session.add(ClientRow(**_client_values(client)))
                return True
            # Admissions for one tenant queue up behind this row lock
            session.execute(
                select(OrganizationRow.id)
                .where(OrganizationRow.id == client.organization_id)
                .with_for_update()
            )
            return session.execute(insert_client_below_cap(client, cap)).rowcount == 1

    def save(self, client: Client) -> None:
        with self._sessions.begin() as session:
            row = session.get(ClientRow, client.id)
            if row is None or row.organization_id != client.organization_id:
                raise KeyError("client not found")
            for name in _FIELDS:
                setattr(row, name, getattr(client, name))
            row.status = str(client.status)

    def delete(self, org_id: UUID, client_id: UUID) -> bool:
        stmt = delete(ClientRow).where(
            ClientRow.id == client_id, ClientRow.organization_id == org_id
        )
        with self._sessions.begin() as session:
            return session.execute(stmt).rowcount == 1


def _count(org_id: UUID):
    return select(func.count()).select_from(ClientRow).where(ClientRow.organization_id == org_id)


def insert_client_below_cap(client: Client, cap: int) -> Insert:
    """INSERT ... SELECT that writes nothing once the tenant holds ``cap`` clients."""
    values = _client_values(client)
    columns = ClientRow.__table__.c
    source = select(
        *(literal(value, type_=columns[name].type) for name, value in values.items())
    ).where(_count(client.organization_id).scalar_subquery() < cap)
    return insert(ClientRow).from_select(list(values), source)


def _client_values(client: Client) -> dict:
    values = {name: getattr(client, name) for name in _FIELDS}
    values.update(
        id=client.id,
        organization_id=client.organization_id,
        status=str(client.status),
        created_at=client.created_at,
    )
    return values


def _row_to_client(row: ClientRow) -> Client:
    return Client(
        id=row.id,
        organization_id=row.organization_id,
        status=ClientStatus(row.status),
        created_at=row.created_at,
        **{name: getattr(row, name) for name in _FIELDS},
    )
