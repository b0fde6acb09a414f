from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from agencyhub.api.dependencies import org_id_of, require_capability
from agencyhub.models.principal import Principal
from agencyhub.models.roles import Capability
from agencyhub.models.subscription import SubscriptionRecord
from agencyhub.services import wiring
from agencyhub.services.billing import AnalyticsSummary

router = APIRouter(prefix="/api/billing", tags=["billing"])

CanManageBilling = Annotated[
    Principal, Depends(require_capability(Capability.MANAGE_BILLING))
]
CanViewReports = Annotated[Principal, Depends(require_capability(Capability.VIEW_REPORTS))]


class StripeSubscriptionIn(BaseModel):
    planId: UUID
    customerRef: str


class PagSeguroSubscriptionIn(BaseModel):
    planId: UUID


class PlanChangeIn(BaseModel):
    planId: UUID


class SubscriptionOut(BaseModel):
    id: str
    plan_id: str
    provider: str
    status: str
    external_id: str | None
    current_period_end: datetime | None
    payment_url: str | None


class PlanChangeOut(BaseModel):
    organization_id: str
    previous_plan_id: str | None
    plan_id: str
    over_user_limit: bool
    over_client_limit: bool


class CancelOut(BaseModel):
    organization_active: bool
    subscription: SubscriptionOut | None


def _sub_out(s: SubscriptionRecord) -> SubscriptionOut:
    return SubscriptionOut(
        id=str(s.id),
        plan_id=str(s.plan_id),
        provider=s.provider,
        status=s.status,
        external_id=s.external_id,
        current_period_end=s.current_period_end,
        payment_url=s.payment_url,
    )


@router.post("/subscription/stripe", response_model=SubscriptionOut)
async def subscribe_stripe(body: StripeSubscriptionIn, principal: CanManageBilling) -> SubscriptionOut:
    record = await wiring.billing_service.create_subscription(
        org_id_of(principal), body.planId, body.customerRef
    )
    return _sub_out(record)


@router.post("/subscription/pagseguro", response_model=SubscriptionOut)
async def subscribe_pagseguro(
    body: PagSeguroSubscriptionIn, principal: CanManageBilling
) -> SubscriptionOut:
    record = await wiring.billing_service.create_pagseguro_subscription(
        org_id_of(principal), body.planId
    )
    return _sub_out(record)


async def _plan_change(principal: Principal, plan_id: UUID, *, upgrade: bool) -> PlanChangeOut:
    service = wiring.billing_service
    change = service.upgrade_plan if upgrade else service.downgrade_plan
    result = await change(org_id_of(principal), plan_id)
    return PlanChangeOut(
        organization_id=str(result.organization_id),
        previous_plan_id=str(result.previous_plan_id) if result.previous_plan_id else None,
        plan_id=str(result.plan_id),
        over_user_limit=result.over_user_limit,
        over_client_limit=result.over_client_limit,
    )


@router.post("/upgrade", response_model=PlanChangeOut)
async def upgrade(body: PlanChangeIn, principal: CanManageBilling) -> PlanChangeOut:
    return await _plan_change(principal, body.planId, upgrade=True)


@router.post("/downgrade", response_model=PlanChangeOut)
async def downgrade(body: PlanChangeIn, principal: CanManageBilling) -> PlanChangeOut:
    return await _plan_change(principal, body.planId, upgrade=False)


@router.post("/cancel", response_model=CancelOut)
async def cancel(principal: CanManageBilling) -> CancelOut:
    record = await wiring.billing_service.cancel_subscription(org_id_of(principal))
    return CancelOut(
        organization_active=False,
        subscription=_sub_out(record) if record else None,
    )


@router.get("/analytics", response_model=AnalyticsSummary)
async def analytics(
    principal: CanViewReports,
    period: Annotated[str, Query()] = "current_month",
) -> AnalyticsSummary:
    return await wiring.billing_service.get_usage_analytics(org_id_of(principal), period)
