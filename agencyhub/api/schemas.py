"""Response schemas shared by several routers."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

from agencyhub.models.organization import Organization
from agencyhub.models.plan import EntitlementSnapshot, Plan


class PlanOut(BaseModel):
    id: str
    code: str
    name: str
    description: str
    price: Decimal
    interval: str
    features: list[str]
    max_users: int | None
    max_clients: int | None
    has_ai_strategies: bool
    has_integrations: bool
    has_advanced_reports: bool
    is_active: bool


class LimitsOut(BaseModel):
    max_users: int
    max_clients: int
    has_ai_strategies: bool
    has_integrations: bool
    has_advanced_reports: bool
    features: list[str]


class OrganizationOut(BaseModel):
    id: str
    name: str
    subdomain: str
    plan_id: str | None
    is_active: bool
    settings: dict


def plan_out(plan: Plan) -> PlanOut:
    return PlanOut(
        id=str(plan.id),
        code=plan.code,
        name=plan.name,
        description=plan.description,
        price=plan.price,
        interval=plan.interval,
        features=list(plan.features),
        max_users=plan.max_users,
        max_clients=plan.max_clients,
        has_ai_strategies=plan.has_ai_strategies,
        has_integrations=plan.has_integrations,
        has_advanced_reports=plan.has_advanced_reports,
        is_active=plan.is_active,
    )


def limits_out(snapshot: EntitlementSnapshot) -> LimitsOut:
    return LimitsOut(
        max_users=snapshot.max_users,
        max_clients=snapshot.max_clients,
        has_ai_strategies=snapshot.has_ai_strategies,
        has_integrations=snapshot.has_integrations,
        has_advanced_reports=snapshot.has_advanced_reports,
        features=list(snapshot.features),
    )


def organization_out(org: Organization) -> OrganizationOut:
    return OrganizationOut(
        id=str(org.id),
        name=org.name,
        subdomain=org.subdomain,
        plan_id=str(org.plan_id) if org.plan_id else None,
        is_active=org.is_active,
        settings=org.settings,
    )
