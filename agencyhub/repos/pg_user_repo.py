"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Insert, func, insert, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from agencyhub.db.tables import OrganizationRow, UserRow
from agencyhub.models.roles import Role
from agencyhub.models.user import User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy.

    Email uniqueness is the ``users.email`` unique index, so a lost race
    surfaces as the same ValueError the in-memory repo raises.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def get_by_id(self, user_id: UUID) -> User | None:
        with self._sessions() as session:
            row = session.get(UserRow, user_id)
            return None if row is None else _row_to_user(row)

    def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email.strip().lower())
        with self._sessions() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return None if row is None else _row_to_user(row)

    def add(self, user: User) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(UserRow(**_user_values(user)))
        except IntegrityError as e:
            raise ValueError("email already exists") from e

    def add_if_below_cap(self, user: User, cap: int) -> bool:
        try:
            with self._sessions.begin() as session:
                if user.organization_id is None or cap < 0:
                    session.add(UserRow(**_user_values(user)))
                    return True
                _lock_organization(session, user.organization_id)
                return session.execute(insert_user_below_cap(user, cap)).rowcount == 1
        except IntegrityError as e:
            raise ValueError("email already exists") from e

    def list_by_org(self, org_id: UUID) -> list[User]:
        stmt = select(UserRow).where(UserRow.organization_id == org_id).order_by(UserRow.email)
        with self._sessions() as session:
            return [_row_to_user(r) for r in session.execute(stmt).scalars()]

    def count_active_by_org(self, org_id: UUID) -> int:
        with self._sessions() as session:
            return session.execute(_active_count(org_id)).scalar_one()

    def activate_if_below_cap(self, user_id: UUID, cap: int) -> bool:
        with self._sessions.begin() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                raise KeyError(user_id)
            if row.is_active:
                return True
            if row.organization_id is not None and cap >= 0:
                _lock_organization(session, row.organization_id)
                if session.execute(_active_count(row.organization_id)).scalar_one() >= cap:
                    return False
            row.is_active = True
            return True

    def set_active(self, user_id: UUID, is_active: bool) -> User | None:
        return self._update(user_id, is_active=is_active)

    def set_role(self, user_id: UUID, role: Role) -> User | None:
        return self._update(user_id, role=str(role))

    def _update(self, user_id: UUID, **values) -> User | None:
        stmt = update(UserRow).where(UserRow.id == user_id).values(**values).returning(UserRow)
        with self._sessions.begin() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return None if row is None else _row_to_user(row)


def _lock_organization(session: Session, org_id: UUID) -> None:
    # Admissions for one tenant queue up behind this row lock
    session.execute(
        select(OrganizationRow.id).where(OrganizationRow.id == org_id).with_for_update()
    )


def _active_count(org_id: UUID):
    return (
        select(func.count())
        .select_from(UserRow)
        .where(UserRow.organization_id == org_id, UserRow.is_active.is_(True))
    )


def insert_user_below_cap(user: User, cap: int) -> Insert:
    """INSERT ... SELECT that writes nothing once ``cap`` active users exist."""
    values = _user_values(user)
    columns = UserRow.__table__.c
    source = select(
        *(literal(value, type_=columns[name].type) for name, value in values.items())
    ).where(_active_count(user.organization_id).scalar_subquery() < cap)
    return insert(UserRow).from_select(list(values), source)


def _user_values(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "password_hash": user.password_hash,
        "name": user.name,
        "organization_id": user.organization_id,
        "role": str(user.role),
        "roles": list(user.roles),
        "is_active": user.is_active,
    }


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        organization_id=row.organization_id,
        role=Role(row.role),
        name=row.name or "",
        roles=tuple(row.roles) if row.roles else (),
        is_active=row.is_active,
    )
