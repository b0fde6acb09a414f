"""PostgreSQL implementation of PlanRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from agencyhub.db.tables import PlanRow
from agencyhub.models.plan import Plan

_COLUMNS = (
    "code",
    "name",
    "description",
    "price",
    "interval",
    "max_users",
    "max_clients",
    "has_ai_strategies",
    "has_integrations",
    "has_advanced_reports",
    "is_active",
    "stripe_price_id",
)


class PgPlanRepo:
    """Satisfies the PlanRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def get(self, plan_id: UUID) -> Plan | None:
        return self._one(select(PlanRow).where(PlanRow.id == plan_id))

    def get_by_code(self, code: str) -> Plan | None:
        return self._one(select(PlanRow).where(PlanRow.code == code))

    def get_by_stripe_price(self, price_id: str) -> Plan | None:
        return self._one(select(PlanRow).where(PlanRow.stripe_price_id == price_id))

    def list(self, *, active_only: bool = True) -> list[Plan]:
        stmt = select(PlanRow).order_by(PlanRow.price)
        if active_only:
            stmt = stmt.where(PlanRow.is_active.is_(True))
        with self._sessions() as session:
            return [_row_to_plan(r) for r in session.execute(stmt).scalars()]

    def add(self, plan: Plan) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(_plan_to_row(plan))
        except IntegrityError as e:
            raise ValueError("plan code already exists") from e

    def save(self, plan: Plan) -> None:
        with self._sessions.begin() as session:
            row = session.get(PlanRow, plan.id)
            if row is None:
                raise KeyError("plan not found")
            for name in _COLUMNS:
                setattr(row, name, getattr(plan, name))
            row.features = list(plan.features)

    def _one(self, stmt) -> Plan | None:
        with self._sessions() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return None if row is None else _row_to_plan(row)


def _plan_to_row(plan: Plan) -> PlanRow:
    row = PlanRow(id=plan.id, features=list(plan.features))
    for name in _COLUMNS:
        setattr(row, name, getattr(plan, name))
    return row


def _row_to_plan(row: PlanRow) -> Plan:
    return Plan(
        id=row.id,
        features=tuple(row.features or ()),
        **{name: getattr(row, name) for name in _COLUMNS},
    )
