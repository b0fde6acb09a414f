from __future__ import annotations

from typing import Protocol
from uuid import UUID

from agencyhub.models.plan import Plan


class PlanRepo(Protocol):
    def get(self, plan_id: UUID) -> Plan | None: ...
    def get_by_code(self, code: str) -> Plan | None: ...
    def get_by_stripe_price(self, price_id: str) -> Plan | None: ...
    def list(self, *, active_only: bool = True) -> list[Plan]: ...
    def add(self, plan: Plan) -> None: ...
    def save(self, plan: Plan) -> None: ...


class InMemoryPlanRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, Plan] = {}

    def get(self, plan_id: UUID) -> Plan | None:
        return self._store.get(plan_id)

    def get_by_code(self, code: str) -> Plan | None:
        return next((p for p in self._store.values() if p.code == code), None)

    def get_by_stripe_price(self, price_id: str) -> Plan | None:
        return next(
            (p for p in self._store.values() if p.stripe_price_id == price_id), None
        )

    def list(self, *, active_only: bool = True) -> list[Plan]:
        plans = [p for p in self._store.values() if p.is_active or not active_only]
        return sorted(plans, key=lambda p: p.price)

    def add(self, plan: Plan) -> None:
        if self.get_by_code(plan.code) is not None:
            raise ValueError("plan code already exists")
        self._store[plan.id] = plan

    def save(self, plan: Plan) -> None:
        if plan.id not in self._store:
            raise KeyError("plan not found")
        self._store[plan.id] = plan
