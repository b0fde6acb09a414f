"""Sign-up and sign-in.

Both return ``{accessToken, user, organization}`` so a client can store
the token and send ``x-organization-id`` on its next request.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from agencyhub.api.ratelimit import LOGIN_LIMIT, require_rate_limit
from agencyhub.api.schemas import OrganizationOut, organization_out
from agencyhub.models.organization import Organization
from agencyhub.models.user import User
from agencyhub.repos import store
from agencyhub.services import auth_service, token_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

SUBDOMAIN_PATTERN = r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$"


class RegisterIn(BaseModel):
    organizationName: str = Field(min_length=1, max_length=255)
    subdomain: str = Field(pattern=SUBDOMAIN_PATTERN)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=8)
    name: str = ""


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    role: str


class AuthResponse(BaseModel):
    accessToken: str
    user: UserOut
    organization: OrganizationOut | None


def _auth_response(user: User, org: Organization | None) -> AuthResponse:
    token = token_service.create_access_token(sub=str(user.id), roles=list(user.roles))
    return AuthResponse(
        accessToken=token,
        user=UserOut(id=str(user.id), email=user.email, name=user.name, role=user.role),
        organization=organization_out(org) if org else None,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn) -> AuthResponse:
    org, owner = auth_service.register_organization(
        org_repo=store.org_repo,
        user_repo=store.user_repo,
        plan_repo=store.plan_repo,
        organization_name=payload.organizationName,
        subdomain=payload.subdomain,
        email=payload.email,
        password=payload.password,
        name=payload.name,
    )
    return _auth_response(owner, org)


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(require_rate_limit(LOGIN_LIMIT))],
)
def login(payload: LoginIn) -> AuthResponse:
    user = auth_service.authenticate_user(store.user_repo, payload.email, payload.password)
    if user is None:
        logger.warning("Login failed for email=%s", payload.email.strip().lower())
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    logger.info("Login succeeded user=%s", user.id)
    org = store.org_repo.get(user.organization_id) if user.organization_id else None
    return _auth_response(user, org)
