"""PostgreSQL repositories without a live database.

Statements are compiled against the postgres dialect and the repos are
driven through a recording session so the admission and dedupe logic can
be checked in-process.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from agencyhub.db.tables import UserRow
from agencyhub.models.client import Client
from agencyhub.models.plan import Plan
from agencyhub.models.roles import Role
from agencyhub.models.user import User
from agencyhub.repos.pg_client_repo import PgClientRepo, insert_client_below_cap
from agencyhub.repos.pg_plan_repo import _plan_to_row, _row_to_plan
from agencyhub.repos.pg_user_repo import PgUserRepo, insert_user_below_cap


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


class _Result:
    def __init__(self, rowcount: int, count: int) -> None:
        self.rowcount = rowcount
        self._count = count

    def scalar_one(self) -> int:
        return self._count


class _RecordingSession:
    def __init__(self, rowcount: int, count: int) -> None:
        self.statements: list = []
        self.added: list = []
        self.rows: dict = {}
        self._rowcount = rowcount
        self._count = count

    def execute(self, stmt):
        self.statements.append(stmt)
        return _Result(self._rowcount, self._count)

    def get(self, model, key):
        return self.rows.get(key)

    def add(self, row) -> None:
        self.added.append(row)


class _RecordingFactory:
    """Stands in for ``sessionmaker``: ``begin()`` yields one shared session."""

    def __init__(self, rowcount: int = 1, count: int = 0) -> None:
        self.session = _RecordingSession(rowcount, count)

    @contextmanager
    def begin(self):
        yield self.session


def test_client_admission_is_one_conditional_insert() -> None:
    org_id = uuid4()
    sql = _sql(insert_client_below_cap(Client.new(organization_id=org_id, name="Acme"), 2))

    assert sql.startswith("INSERT INTO clients")
    assert "SELECT count(*)" in sql
    assert "clients.organization_id = " in sql
    assert "< " in sql


def test_user_admission_counts_only_active_members() -> None:
    user = User.new(email="a@x.io", password_hash="h", organization_id=uuid4())
    sql = _sql(insert_user_below_cap(user, 5))

    assert sql.startswith("INSERT INTO users")
    assert "users.is_active IS true" in sql


def test_client_admission_locks_the_tenant_row_first() -> None:
    factory = _RecordingFactory(rowcount=1)
    repo = PgClientRepo(factory)  # type: ignore[arg-type]

    assert repo.add_if_below_cap(Client.new(organization_id=uuid4(), name="Acme"), 3) is True

    lock, conditional = factory.session.statements
    assert "FROM organizations" in _sql(lock)
    assert "FOR UPDATE" in _sql(lock)
    assert _sql(conditional).startswith("INSERT INTO clients")


def test_client_admission_reports_full_when_nothing_inserted() -> None:
    factory = _RecordingFactory(rowcount=0)
    repo = PgClientRepo(factory)  # type: ignore[arg-type]
    assert repo.add_if_below_cap(Client.new(organization_id=uuid4(), name="Acme"), 3) is False


def test_unlimited_cap_inserts_without_counting() -> None:
    factory = _RecordingFactory()
    repo = PgUserRepo(factory)  # type: ignore[arg-type]
    user = User.new(email="b@x.io", password_hash="h", organization_id=uuid4(), role=Role.ADMIN)

    assert repo.add_if_below_cap(user, -1) is True
    assert factory.session.statements == []
    (row,) = factory.session.added
    assert row.email == "b@x.io"
    assert row.role == "admin"


def test_plan_row_mapping_keeps_every_field() -> None:
    plan = Plan.new(
        code="agency",
        name="Agency",
        price=Decimal("149.00"),
        features=("white_label", "api"),
        max_users=None,
        max_clients=-1,
        has_ai_strategies=True,
        stripe_price_id="price_agency",
    )
    assert _row_to_plan(_plan_to_row(plan)) == plan


def _inactive_member_row(org_id) -> UserRow:
    return UserRow(
        id=uuid4(),
        email="back@x.io",
        password_hash="h",
        name="",
        organization_id=org_id,
        role="user",
        roles=[],
        is_active=False,
    )


def test_reactivation_counts_under_the_tenant_lock() -> None:
    factory = _RecordingFactory(count=1)
    row = _inactive_member_row(uuid4())
    factory.session.rows[row.id] = row
    repo = PgUserRepo(factory)  # type: ignore[arg-type]

    assert repo.activate_if_below_cap(row.id, 2) is True

    lock, count = factory.session.statements
    assert "FOR UPDATE" in _sql(lock)
    assert "count(*)" in _sql(count)
    assert row.is_active is True


def test_reactivation_refused_when_seats_are_full() -> None:
    factory = _RecordingFactory(count=2)
    row = _inactive_member_row(uuid4())
    factory.session.rows[row.id] = row
    repo = PgUserRepo(factory)  # type: ignore[arg-type]

    assert repo.activate_if_below_cap(row.id, 2) is False
    assert row.is_active is False
