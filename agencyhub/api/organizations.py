from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from agencyhub.api.dependencies import OrgPrincipal, org_id_of
from agencyhub.api.schemas import (
    LimitsOut,
    OrganizationOut,
    PlanOut,
    limits_out,
    organization_out,
    plan_out,
)
from agencyhub.core.errors import NotFoundError
from agencyhub.repos import store
from agencyhub.services import wiring

router = APIRouter(prefix="/api/organizations", tags=["organizations"])


class CurrentUserOut(BaseModel):
    id: str
    email: str
    name: str
    role: str


class CurrentOrganizationOut(BaseModel):
    user: CurrentUserOut
    organization: OrganizationOut
    plan: PlanOut | None
    limits: LimitsOut


class UsageOut(BaseModel):
    users: int
    clients: int
    integrations: int
    limits: LimitsOut
    can_add_user: bool
    can_add_client: bool


@router.get("/current", response_model=CurrentOrganizationOut)
def current_organization(principal: OrgPrincipal) -> CurrentOrganizationOut:
    org_id = org_id_of(principal)
    org = store.org_repo.get(org_id)
    user = store.user_repo.get_by_id(UUID(principal.user_id))
    if org is None or user is None:
        raise NotFoundError("Organization not found")

    plan = store.plan_repo.get(org.plan_id) if org.plan_id else None
    return CurrentOrganizationOut(
        user=CurrentUserOut(id=str(user.id), email=user.email, name=user.name, role=user.role),
        organization=organization_out(org),
        plan=plan_out(plan) if plan else None,
        limits=limits_out(wiring.entitlements.resolve_limits(org_id)),
    )


@router.get("/current/usage", response_model=UsageOut)
def current_usage(principal: OrgPrincipal) -> UsageOut:
    org_id = org_id_of(principal)
    usage = wiring.usage_counter
    return UsageOut(
        users=usage.count_active_users(org_id),
        clients=usage.count_clients(org_id),
        integrations=usage.count_integrations(org_id),
        limits=limits_out(wiring.entitlements.resolve_limits(org_id)),
        can_add_user=wiring.entitlements.can_add_user(org_id),
        can_add_client=wiring.entitlements.can_add_client(org_id),
    )
