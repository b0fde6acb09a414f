"""Organization gate: tenant resolution and cross-tenant isolation."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from agencyhub.api.dependencies import org_id_of
from agencyhub.models.principal import Principal
from agencyhub.repos import store
from tests.conftest import create_test_client, create_test_org, create_test_user, mint_token


def _bearer(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(str(user.id))}"}


def test_missing_token_is_401(client: TestClient) -> None:
    org = create_test_org("no-token")
    resp = client.get("/api/clients", headers={"x-organization-id": str(org.id)})
    assert resp.status_code == 401


def test_missing_organization_id_is_400(client: TestClient) -> None:
    org = create_test_org("no-tenant")
    owner = create_test_user(org)
    resp = client.get("/api/clients", headers=_bearer(owner))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Organization id is required"


def test_malformed_organization_id_is_400(client: TestClient) -> None:
    org = create_test_org("bad-id")
    owner = create_test_user(org)
    resp = client.get(
        "/api/clients", headers={**_bearer(owner), "x-organization-id": "not-a-uuid"}
    )
    assert resp.status_code == 400


def test_member_of_a_cannot_use_tenant_b(client: TestClient) -> None:
    org_a = create_test_org("tenant-a")
    org_b = create_test_org("tenant-b")
    owner_a = create_test_user(org_a)

    resp = client.get(
        "/api/clients", headers={**_bearer(owner_a), "x-organization-id": str(org_b.id)}
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Access denied to organization"


def test_platform_admin_gets_no_tenant_bypass(client: TestClient) -> None:
    org = create_test_org("no-bypass")
    admin = create_test_user(None, roles=("admin",), email="root@platform.io")
    token = mint_token(str(admin.id), roles=["admin"])
    resp = client.get(
        "/api/clients",
        headers={"Authorization": f"Bearer {token}", "x-organization-id": str(org.id)},
    )
    assert resp.status_code == 403


def test_token_for_unknown_user_is_401(client: TestClient) -> None:
    org = create_test_org("ghost-user")
    token = mint_token(str(uuid4()))
    resp = client.get(
        "/api/clients",
        headers={"Authorization": f"Bearer {token}", "x-organization-id": str(org.id)},
    )
    assert resp.status_code == 401


def test_deactivated_user_is_401(client: TestClient) -> None:
    org = create_test_org("deactivated")
    owner = create_test_user(org)
    store.user_repo.set_active(owner.id, False)
    resp = client.get(
        "/api/clients", headers={**_bearer(owner), "x-organization-id": str(org.id)}
    )
    assert resp.status_code == 401


def test_tenant_id_from_query_parameter(client: TestClient) -> None:
    org = create_test_org("by-query")
    owner = create_test_user(org)
    resp = client.get(f"/api/clients?organizationId={org.id}", headers=_bearer(owner))
    assert resp.status_code == 200


def test_tenant_id_from_json_body(client: TestClient) -> None:
    org = create_test_org("by-body", plan="professional")
    owner = create_test_user(org)
    resp = client.post(
        "/api/clients",
        json={"organizationId": str(org.id), "name": "Body client"},
        headers=_bearer(owner),
    )
    assert resp.status_code == 201
    assert resp.json()["organization_id"] == str(org.id)


def test_header_wins_over_body(client: TestClient) -> None:
    org_a = create_test_org("header-a", plan="professional")
    org_b = create_test_org("header-b", plan="professional")
    owner_a = create_test_user(org_a)
    resp = client.post(
        "/api/clients",
        json={"organizationId": str(org_b.id), "name": "X"},
        headers={**_bearer(owner_a), "x-organization-id": str(org_a.id)},
    )
    assert resp.status_code == 201
    assert resp.json()["organization_id"] == str(org_a.id)


def test_client_of_other_tenant_looks_missing(client: TestClient) -> None:
    org_a = create_test_org("iso-a", plan="professional")
    org_b = create_test_org("iso-b", plan="professional")
    owner_a = create_test_user(org_a)
    foreign = create_test_client(org_b)

    headers = {**_bearer(owner_a), "x-organization-id": str(org_a.id)}
    assert client.get(f"/api/clients/{foreign.id}", headers=headers).status_code == 404
    assert client.delete(f"/api/clients/{foreign.id}", headers=headers).status_code == 404
    assert store.client_repo.count_by_org(org_b.id) == 1
    assert client.get("/api/clients", headers=headers).json() == []


def test_org_id_of_returns_resolved_tenant() -> None:
    org_id = uuid4()
    principal = Principal(user_id=str(uuid4()), roles=frozenset(), organization_id=org_id)
    assert org_id_of(principal) == org_id


def test_org_id_of_without_tenant_is_400() -> None:
    principal = Principal(user_id=str(uuid4()), roles=frozenset())
    with pytest.raises(HTTPException) as exc:
        org_id_of(principal)
    assert exc.value.status_code == 400
