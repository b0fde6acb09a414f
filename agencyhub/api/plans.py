"""Public plan catalog.  Served under both paths for older clients."""

from __future__ import annotations

from fastapi import APIRouter

from agencyhub.api.schemas import PlanOut, plan_out
from agencyhub.services import wiring

router = APIRouter(tags=["plans"])


@router.get("/api/plans", response_model=list[PlanOut])
@router.get("/api/billing/plans", response_model=list[PlanOut])
def list_plans() -> list[PlanOut]:
    return [plan_out(p) for p in wiring.plan_registry.list_plans()]
