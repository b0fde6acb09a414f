"""Team members of the current organization."""

from __future__ import annotations

import logging
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from agencyhub.api.dependencies import OrgPrincipal, org_id_of, require_capability
from agencyhub.core.errors import NotFoundError, ValidationError
from agencyhub.models.principal import Principal
from agencyhub.models.roles import Capability, Role
from agencyhub.models.user import User
from agencyhub.repos import store
from agencyhub.services import auth_service, wiring
from agencyhub.services.cache import cache_service, invalidate_org

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

CanManageTeam = Annotated[Principal, Depends(require_capability(Capability.MANAGE_TEAM))]


class MemberIn(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=8)
    name: str = ""
    # Owners are only created at sign-up
    role: Literal["admin", "user"] = "user"


class MemberPatch(BaseModel):
    role: Literal["admin", "user"] | None = None
    is_active: bool | None = None


class MemberOut(BaseModel):
    id: str
    email: str
    name: str
    role: str
    is_active: bool


def _out(u: User) -> MemberOut:
    return MemberOut(id=str(u.id), email=u.email, name=u.name, role=u.role, is_active=u.is_active)


@router.get("", response_model=list[MemberOut])
def list_members(principal: OrgPrincipal) -> list[MemberOut]:
    return [_out(u) for u in store.user_repo.list_by_org(org_id_of(principal))]


@router.post("", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def add_member(body: MemberIn, principal: CanManageTeam) -> MemberOut:
    org_id = org_id_of(principal)
    user = User.new(
        email=body.email,
        password_hash=auth_service.hash_password(body.password),
        organization_id=org_id,
        role=Role(body.role),
        name=body.name,
    )
    wiring.entitlements.admit_user(org_id, user)
    logger.info("Added member=%s role=%s", user.id, user.role)
    return _out(user)


@router.patch("/{user_id}", response_model=MemberOut)
async def update_member(user_id: UUID, body: MemberPatch, principal: CanManageTeam) -> MemberOut:
    """Change a member's role or deactivate/reactivate them.

    The owner keeps their role and seat.  Deactivating frees a seat at
    once; reactivating has to fit under the plan's user cap again.
    """
    org_id = org_id_of(principal)
    member = store.user_repo.get_by_id(user_id)
    if member is None or member.organization_id != org_id:
        raise NotFoundError("User not found")

    if member.role == Role.OWNER and (body.role is not None or body.is_active is False):
        raise ValidationError("The organization owner cannot be demoted or deactivated")
    if body.is_active is False and str(member.id) == principal.user_id:
        raise ValidationError("You cannot deactivate yourself")

    if body.is_active is True and not member.is_active:
        wiring.entitlements.readmit_user(org_id, user_id)
    elif body.is_active is False and member.is_active:
        store.user_repo.set_active(user_id, False)
    if body.role is not None and body.role != member.role:
        store.user_repo.set_role(user_id, Role(body.role))

    updated = store.user_repo.get_by_id(user_id)
    if updated is None:
        raise NotFoundError("User not found")
    await invalidate_org(cache_service, org_id)
    logger.info(
        "Updated member=%s role=%s active=%s", updated.id, updated.role, updated.is_active
    )
    return _out(updated)
