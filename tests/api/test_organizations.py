from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth_headers, create_test_client, create_test_org, create_test_user


def test_current_organization(client: TestClient) -> None:
    org = create_test_org("current", plan="professional")
    owner = create_test_user(org)

    resp = client.get("/api/organizations/current", headers=auth_headers(owner))

    assert resp.status_code == 200
    body = resp.json()
    assert body["organization"]["subdomain"] == "current"
    assert body["plan"]["code"] == "professional"
    assert body["user"]["role"] == "owner"
    assert body["limits"]["max_clients"] == 25
    assert body["limits"]["has_ai_strategies"] is True


def test_current_organization_without_plan(client: TestClient) -> None:
    org = create_test_org("planless", plan=None, max_clients=3)
    owner = create_test_user(org)
    body = client.get("/api/organizations/current", headers=auth_headers(owner)).json()
    assert body["plan"] is None
    assert body["limits"]["max_clients"] == 3
    assert body["limits"]["max_users"] == 5


def test_usage_reports_counts_and_headroom(client: TestClient) -> None:
    org = create_test_org("headroom", plan="starter")
    owner = create_test_user(org)
    create_test_client(org)

    body = client.get("/api/organizations/current/usage", headers=auth_headers(owner)).json()

    assert body["users"] == 1
    assert body["clients"] == 1
    assert body["can_add_user"] is False
    assert body["can_add_client"] is True


def test_plans_catalog_is_public(client: TestClient) -> None:
    for path in ("/api/plans", "/api/billing/plans"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert [p["code"] for p in resp.json()] == ["starter", "professional", "enterprise"]
