"""Platform-admin plan management (requires the ``admin`` token role)."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from agencyhub.api.dependencies import require_role
from agencyhub.api.schemas import PlanOut, plan_out
from agencyhub.models.principal import Principal
from agencyhub.services import wiring

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

AdminPrincipal = Annotated[Principal, Depends(require_role("admin"))]

_NULLABLE = frozenset({"max_users", "max_clients", "stripe_price_id"})


class PlanCreateIn(BaseModel):
    code: str = Field(pattern=r"^[a-z0-9_-]{2,64}$")
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    description: str = ""
    interval: str = "month"
    features: list[str] = []
    max_users: int | None = None
    max_clients: int | None = None
    has_ai_strategies: bool = False
    has_integrations: bool = False
    has_advanced_reports: bool = False
    stripe_price_id: str | None = None


class PlanUpdateIn(BaseModel):
    name: str | None = None
    price: Decimal | None = Field(default=None, ge=0)
    description: str | None = None
    interval: str | None = None
    features: list[str] | None = None
    max_users: int | None = None
    max_clients: int | None = None
    has_ai_strategies: bool | None = None
    has_integrations: bool | None = None
    has_advanced_reports: bool | None = None
    stripe_price_id: str | None = None


@router.get("/plans", response_model=list[PlanOut])
def list_all_plans(principal: AdminPrincipal) -> list[PlanOut]:
    return [plan_out(p) for p in wiring.plan_registry.list_plans(active_only=False)]


@router.post("/plans", response_model=PlanOut, status_code=status.HTTP_201_CREATED)
def create_plan(body: PlanCreateIn, principal: AdminPrincipal) -> PlanOut:
    fields = body.model_dump(exclude={"code", "name", "price"})
    plan = wiring.plan_registry.create_plan(
        code=body.code, name=body.name, price=body.price, **fields
    )
    logger.info("Admin user=%s created plan=%s", principal.user_id, plan.code)
    return plan_out(plan)


@router.patch("/plans/{plan_id}", response_model=PlanOut)
def update_plan(plan_id: UUID, body: PlanUpdateIn, principal: AdminPrincipal) -> PlanOut:
    # Only fields present in the request body change; an explicit null
    # clears a cap back to "unset"
    changes = {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k in _NULLABLE
    }
    plan = wiring.plan_registry.update_plan(plan_id, **changes)
    logger.info("Admin user=%s updated plan=%s", principal.user_id, plan.code)
    return plan_out(plan)


@router.delete("/plans/{plan_id}", response_model=PlanOut)
def deactivate_plan(plan_id: UUID, principal: AdminPrincipal) -> PlanOut:
    plan = wiring.plan_registry.deactivate_plan(plan_id)
    logger.info("Admin user=%s deactivated plan=%s", principal.user_id, plan.code)
    return plan_out(plan)
