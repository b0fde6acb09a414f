"""Plan feature gating on AI strategies and integrations."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from agencyhub.core.errors import UpstreamError
from agencyhub.models.roles import Role
from agencyhub.services import wiring
from agencyhub.services.ai_provider import ChatResponse
from tests.conftest import auth_headers, create_test_client, create_test_org, create_test_user


class _StubProvider:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    async def chat(self, messages, *, temperature=0.7, json_mode=False) -> ChatResponse:
        if self.error is not None:
            raise self.error
        return ChatResponse(content=json.dumps({"title": "Plan A"}), model="stub")


@pytest.fixture(autouse=True)
def stub_provider(monkeypatch: pytest.MonkeyPatch) -> _StubProvider:
    stub = _StubProvider()
    monkeypatch.setattr(wiring.ai_strategy_service, "_provider", stub)
    return stub


def _generate(client: TestClient, user, client_id) -> object:
    return client.post(
        "/api/ai-strategies/generate",
        json={"clientId": str(client_id), "goals": ["more leads"]},
        headers=auth_headers(user),
    )


def test_starter_plan_cannot_generate(client: TestClient) -> None:
    org = create_test_org("starter-ai", plan="starter")
    owner = create_test_user(org)
    c = create_test_client(org)

    resp = _generate(client, owner, c.id)

    assert resp.status_code == 403
    assert resp.json() == {"error": "Access denied to feature: ai_strategies", "upgrade": True}


def test_professional_plan_generates(client: TestClient) -> None:
    org = create_test_org("pro-ai", plan="professional")
    owner = create_test_user(org)
    c = create_test_client(org)

    resp = _generate(client, owner, c.id)

    assert resp.status_code == 201
    assert resp.json()["title"] == "Plan A"
    listed = client.get("/api/ai-strategies", headers=auth_headers(owner)).json()
    assert len(listed) == 1


def test_plain_user_may_generate(client: TestClient) -> None:
    org = create_test_org("member-ai", plan="professional")
    member = create_test_user(org, role=Role.USER)
    c = create_test_client(org)
    assert _generate(client, member, c.id).status_code == 201


def test_provider_outage_is_502_without_detail(
    client: TestClient, stub_provider: _StubProvider
) -> None:
    stub_provider.error = UpstreamError("AI", "connect timeout to 10.0.0.3")
    org = create_test_org("outage-ai", plan="professional")
    owner = create_test_user(org)
    c = create_test_client(org)

    resp = _generate(client, owner, c.id)

    assert resp.status_code == 502
    assert "10.0.0.3" not in resp.text


def test_empty_goals_rejected(client: TestClient) -> None:
    org = create_test_org("no-goals", plan="professional")
    owner = create_test_user(org)
    c = create_test_client(org)
    resp = client.post(
        "/api/ai-strategies/generate",
        json={"clientId": str(c.id), "goals": []},
        headers=auth_headers(owner),
    )
    assert resp.status_code == 422


def test_integrations_gated_for_starter(client: TestClient) -> None:
    org = create_test_org("starter-int", plan="starter")
    owner = create_test_user(org)
    resp = client.get("/api/integrations", headers=auth_headers(owner))
    assert resp.status_code == 403
    assert resp.json()["upgrade"] is True


def test_connect_integration_on_professional(client: TestClient) -> None:
    org = create_test_org("pro-int", plan="professional")
    owner = create_test_user(org)
    c = create_test_client(org)

    resp = client.post(
        "/api/integrations",
        json={"clientId": str(c.id), "platform": "google_ads"},
        headers=auth_headers(owner),
    )
    assert resp.status_code == 201
    usage = client.get("/api/organizations/current/usage", headers=auth_headers(owner)).json()
    assert usage["integrations"] == 1
