from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from agencyhub.api.dependencies import (
    OrgPrincipal,
    org_id_of,
    require_capability,
    require_feature_access,
)
from agencyhub.core.errors import NotFoundError
from agencyhub.models.integration import MarketingIntegration, Platform
from agencyhub.models.principal import Principal
from agencyhub.models.roles import Capability
from agencyhub.repos import store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/integrations",
    tags=["integrations"],
    dependencies=[Depends(require_feature_access("integrations"))],
)


class IntegrationIn(BaseModel):
    clientId: UUID
    platform: Platform


class IntegrationOut(BaseModel):
    id: str
    client_id: str
    platform: Platform
    is_active: bool
    created_at: datetime


def _out(i: MarketingIntegration) -> IntegrationOut:
    return IntegrationOut(
        id=str(i.id),
        client_id=str(i.client_id),
        platform=i.platform,
        is_active=i.is_active,
        created_at=i.created_at,
    )


@router.get("", response_model=list[IntegrationOut])
def list_integrations(principal: OrgPrincipal) -> list[IntegrationOut]:
    return [_out(i) for i in store.integration_repo.list_by_org(org_id_of(principal))]


@router.post("", response_model=IntegrationOut, status_code=status.HTTP_201_CREATED)
def connect_integration(
    body: IntegrationIn,
    principal: Annotated[
        Principal, Depends(require_capability(Capability.MANAGE_INTEGRATIONS))
    ],
) -> IntegrationOut:
    org_id = org_id_of(principal)
    if store.client_repo.get(org_id, body.clientId) is None:
        raise NotFoundError("Client not found")

    integration = MarketingIntegration.new(
        organization_id=org_id, client_id=body.clientId, platform=body.platform
    )
    store.integration_repo.add(integration)
    logger.info("Connected %s integration=%s", integration.platform, integration.id)
    return _out(integration)
