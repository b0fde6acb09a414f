"""Tenant-scoped client CRUD.

Creation goes through the entitlement evaluator's atomic admission, so a
tenant at its client cap gets 403 ``{error, upgrade: true}``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from agencyhub.api.dependencies import org_id_of, require_capability
from agencyhub.core.errors import NotFoundError
from agencyhub.models.client import Client, ClientStatus
from agencyhub.models.principal import Principal
from agencyhub.models.roles import Capability
from agencyhub.repos import store
from agencyhub.services import wiring
from agencyhub.services.cache import cache_service, invalidate_org

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clients", tags=["clients"])

CanView = Annotated[Principal, Depends(require_capability(Capability.VIEW_CLIENTS))]
CanCreate = Annotated[Principal, Depends(require_capability(Capability.CREATE_CLIENTS))]
CanUpdate = Annotated[Principal, Depends(require_capability(Capability.UPDATE_CLIENTS))]
CanDelete = Annotated[Principal, Depends(require_capability(Capability.DELETE_CLIENTS))]


class ClientIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    industry: str | None = None
    contact_person: str | None = None
    monthly_value: Decimal | None = Field(default=None, ge=0)
    status: ClientStatus = ClientStatus.ACTIVE
    notes: str | None = None


class ClientOut(BaseModel):
    id: str
    organization_id: str
    name: str
    email: str | None
    phone: str | None
    company: str | None
    industry: str | None
    contact_person: str | None
    monthly_value: Decimal | None
    status: ClientStatus
    notes: str | None
    created_at: datetime


def _out(c: Client) -> ClientOut:
    return ClientOut(
        id=str(c.id),
        organization_id=str(c.organization_id),
        name=c.name,
        email=c.email,
        phone=c.phone,
        company=c.company,
        industry=c.industry,
        contact_person=c.contact_person,
        monthly_value=c.monthly_value,
        status=c.status,
        notes=c.notes,
        created_at=c.created_at,
    )


def _get_or_404(org_id: UUID, client_id: UUID) -> Client:
    client = store.client_repo.get(org_id, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


@router.get("", response_model=list[ClientOut])
def list_clients(principal: CanView) -> list[ClientOut]:
    return [_out(c) for c in store.client_repo.list_by_org(org_id_of(principal))]


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: UUID, principal: CanView) -> ClientOut:
    return _out(_get_or_404(org_id_of(principal), client_id))


@router.post("", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
async def create_client(body: ClientIn, principal: CanCreate) -> ClientOut:
    org_id = org_id_of(principal)
    client = Client.new(organization_id=org_id, **body.model_dump())
    wiring.entitlements.admit_client(org_id, client)
    await invalidate_org(cache_service, org_id)
    logger.info("Created client=%s", client.id)
    return _out(client)


@router.put("/{client_id}", response_model=ClientOut)
def update_client(client_id: UUID, body: ClientIn, principal: CanUpdate) -> ClientOut:
    existing = _get_or_404(org_id_of(principal), client_id)
    updated = replace(existing, **body.model_dump())
    store.client_repo.save(updated)
    return _out(updated)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client_id: UUID, principal: CanDelete) -> Response:
    org_id = org_id_of(principal)
    if not store.client_repo.delete(org_id, client_id):
        raise NotFoundError("Client not found")
    await invalidate_org(cache_service, org_id)
    logger.info("Deleted client=%s", client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
