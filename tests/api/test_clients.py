from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from agencyhub.models.roles import Role
from agencyhub.repos import store
from tests.conftest import (
    auth_headers,
    create_test_client,
    create_test_org,
    create_test_plan,
    create_test_user,
)


def test_create_and_list_clients(client: TestClient) -> None:
    org = create_test_org("crud", plan="professional")
    owner = create_test_user(org)

    resp = client.post(
        "/api/clients",
        json={"name": "Padaria", "industry": "food", "monthly_value": "1500.00"},
        headers=auth_headers(owner),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["organization_id"] == str(org.id)
    assert body["status"] == "active"

    listed = client.get("/api/clients", headers=auth_headers(owner)).json()
    assert [c["name"] for c in listed] == ["Padaria"]


def test_create_client_over_cap_returns_upgrade_hint(client: TestClient) -> None:
    org = create_test_org("capped", plan="starter")
    owner = create_test_user(org)
    for i in range(5):
        create_test_client(org, name=f"c{i}")

    resp = client.post("/api/clients", json={"name": "sixth"}, headers=auth_headers(owner))

    assert resp.status_code == 403
    body = resp.json()
    assert body["upgrade"] is True
    assert "limit" in body["error"].lower()
    assert store.client_repo.count_by_org(org.id) == 5


def test_update_and_delete_client(client: TestClient) -> None:
    org = create_test_org("edit", plan="professional")
    owner = create_test_user(org)
    c = create_test_client(org, name="Old name")

    resp = client.put(
        f"/api/clients/{c.id}",
        json={"name": "New name", "status": "prospect"},
        headers=auth_headers(owner),
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "New name"
    assert resp.json()["status"] == "prospect"

    resp = client.delete(f"/api/clients/{c.id}", headers=auth_headers(owner))
    assert resp.status_code == 204
    assert client.get(f"/api/clients/{c.id}", headers=auth_headers(owner)).status_code == 404


def test_unknown_client_is_404(client: TestClient) -> None:
    org = create_test_org("missing", plan="professional")
    owner = create_test_user(org)
    resp = client.get(f"/api/clients/{uuid4()}", headers=auth_headers(owner))
    assert resp.status_code == 404
    assert resp.json() == {"message": "Client not found"}


def test_plain_user_can_view_but_not_create(client: TestClient) -> None:
    org = create_test_org("readonly", plan="professional")
    member = create_test_user(org, role=Role.USER)
    create_test_client(org)

    assert client.get("/api/clients", headers=auth_headers(member)).status_code == 200
    resp = client.post("/api/clients", json={"name": "nope"}, headers=auth_headers(member))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Insufficient permissions"


def test_invalid_client_body_is_422(client: TestClient) -> None:
    org = create_test_org("bad-body", plan="professional")
    owner = create_test_user(org)
    resp = client.post(
        "/api/clients", json={"name": "", "monthly_value": "-5"}, headers=auth_headers(owner)
    )
    assert resp.status_code == 422


def test_deleting_a_client_reopens_a_full_plan(client: TestClient) -> None:
    org = create_test_org("pair", plan=create_test_plan("pair", max_clients=2))
    owner = create_test_user(org)
    for name in ("first", "second"):
        resp = client.post("/api/clients", json={"name": name}, headers=auth_headers(owner))
        assert resp.status_code == 201
    second_id = resp.json()["id"]

    resp = client.post("/api/clients", json={"name": "third"}, headers=auth_headers(owner))
    assert resp.status_code == 403
    assert resp.json()["upgrade"] is True
    assert "limit" in resp.json()["error"].lower()

    resp = client.delete(f"/api/clients/{second_id}", headers=auth_headers(owner))
    assert resp.status_code == 204

    resp = client.post("/api/clients", json={"name": "third"}, headers=auth_headers(owner))
    assert resp.status_code == 201
    assert store.client_repo.count_by_org(org.id) == 2
