"""Request guards.

Chained as FastAPI dependencies, each either returns a ``Principal`` or
stops the request:

  require_user                  bearer JWT            401
  require_organization_access   tenant membership     400 / 401 / 403
  require_feature_access(f)     plan feature          403 {error, upgrade}
  require_capability(c)         org role capability   403
  require_role(r)               platform role         403
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from agencyhub.core.errors import EntitlementError
from agencyhub.core.metrics import ENTITLEMENT_DENIALS
from agencyhub.middleware.request_context import organization_id_var
from agencyhub.models.principal import Principal
from agencyhub.models.roles import Capability
from agencyhub.repos import store
from agencyhub.services import token_service, wiring

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

TENANT_HEADER = "x-organization-id"
TENANT_FIELD = "organizationId"


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return Principal(user_id=claims["sub"], roles=frozenset(claims.get("roles", [])))


def require_role(role: str):
    """Dependency factory for platform roles, e.g. ``require_role("admin")``."""

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning("Access denied: user=%s missing role=%s", principal.user_id, role)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


async def _tenant_id_from_request(request: Request) -> str | None:
    """First non-empty of header, JSON body field, query parameter."""
    header = request.headers.get(TENANT_HEADER)
    if header:
        return header

    if request.method in ("POST", "PUT", "PATCH") and request.headers.get(
        "content-type", ""
    ).startswith("application/json"):
        try:
            body = json.loads(await request.body() or b"null")
        except (UnicodeDecodeError, json.JSONDecodeError):
            body = None
        if isinstance(body, dict) and body.get(TENANT_FIELD):
            return str(body[TENANT_FIELD])

    return request.query_params.get(TENANT_FIELD) or None


async def require_organization_access(
    request: Request,
    principal: Annotated[Principal, Depends(require_user)],
) -> Principal:
    """Confirm the caller belongs to the tenant named in the request.

    Membership is read from the stored user record, not from the token,
    so moving or deactivating a user takes effect on their next request.
    """
    raw = await _tenant_id_from_request(request)
    if raw is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization id is required",
        )
    try:
        org_id = UUID(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid organization id",
        ) from None

    try:
        user = store.user_repo.get_by_id(UUID(principal.user_id))
    except ValueError:
        user = None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.organization_id != org_id:
        logger.warning(
            "Access denied: user=%s not a member of organization=%s", user.id, org_id
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to organization",
        )

    organization_id_var.set(str(org_id))
    return replace(principal, organization_id=org_id, org_role=user.role)


OrgPrincipal = Annotated[Principal, Depends(require_organization_access)]


def org_id_of(principal: Principal) -> UUID:
    """Tenant of a principal that passed ``require_organization_access``."""
    if principal.organization_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization id is required",
        )
    return principal.organization_id


def require_feature_access(feature: str):
    """Dependency factory: the tenant's plan must include ``feature``."""

    def _guard(principal: OrgPrincipal) -> Principal:
        org_id = org_id_of(principal)
        if not wiring.entitlements.has_feature_access(org_id, feature):
            ENTITLEMENT_DENIALS.labels(kind="feature").inc()
            logger.warning(
                "Feature denied: organization=%s feature=%s",
                org_id,
                feature,
            )
            raise EntitlementError(f"Access denied to feature: {feature}", kind="feature")
        return principal

    return _guard


def require_capability(capability: Capability):
    """Dependency factory: the caller's org role must grant ``capability``."""

    def _guard(principal: OrgPrincipal) -> Principal:
        if not principal.can(capability):
            logger.warning(
                "Access denied: user=%s org_role=%s lacks %s",
                principal.user_id,
                principal.org_role,
                capability,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard
