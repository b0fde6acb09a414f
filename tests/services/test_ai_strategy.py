from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import httpx
import pytest

from agencyhub.core.errors import NotFoundError, UpstreamError
from agencyhub.models.activity import STRATEGY_GENERATED
from agencyhub.repos import store
from agencyhub.services import wiring
from agencyhub.services.ai_provider import ChatMessage, ChatResponse, OpenAICompatibleProvider
from agencyhub.services.ai_strategy import build_prompt
from tests.conftest import create_test_client, create_test_org

_STRATEGY = {
    "title": "Grow organic reach",
    "executive_summary": "Focus on content.",
    "objectives": ["+20% leads"],
    "tactics": [
        {
            "category": "SEO",
            "actions": ["audit site"],
            "timeline": "Q1",
            "budget_allocation": 0.3,
        }
    ],
    "metrics": ["leads"],
    "timeline": "3 months",
}


class FakeProvider:
    def __init__(self, content: str | None = None, error: Exception | None = None) -> None:
        self.content = json.dumps(_STRATEGY) if content is None else content
        self.error = error
        self.calls: list[list[ChatMessage]] = []

    async def chat(self, messages, *, temperature=0.7, json_mode=False) -> ChatResponse:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return ChatResponse(content=self.content, model="fake")


@pytest.fixture
def provider(monkeypatch: pytest.MonkeyPatch) -> FakeProvider:
    fake = FakeProvider()
    monkeypatch.setattr(wiring.ai_strategy_service, "_provider", fake)
    return fake


def _generations(org_id) -> int:
    now = datetime.now(UTC)
    return wiring.usage_counter.count_ai_generations_in_window(
        org_id, now - timedelta(days=1), now + timedelta(days=1)
    )


def test_generate_persists_strategy_and_counts_generation(provider: FakeProvider) -> None:
    org = create_test_org("ai-agency", plan="professional")
    client = create_test_client(org, name="Padaria Central", industry="food")

    strategy = asyncio.run(
        wiring.ai_strategy_service.generate(
            org.id, None, client.id, goals=["more foot traffic"], challenges=["low budget"]
        )
    )

    assert strategy.title == "Grow organic reach"
    assert json.loads(strategy.content)["tactics"][0]["category"] == "SEO"
    assert store.ai_strategy_repo.list_by_org(org.id) == [strategy]
    assert _generations(org.id) == 1
    activity = store.activity_repo.list_by_org(org.id)[0]
    assert activity.type == STRATEGY_GENERATED
    assert "Padaria Central" in provider.calls[0][1].content


def test_missing_title_gets_default(provider: FakeProvider) -> None:
    provider.content = json.dumps({"executive_summary": "x"})
    org = create_test_org("untitled", plan="professional")
    client = create_test_client(org, name="Loja")

    strategy = asyncio.run(
        wiring.ai_strategy_service.generate(org.id, None, client.id, goals=["g"], challenges=[])
    )
    assert strategy.title == "Marketing strategy for Loja"


def test_client_from_other_tenant_is_not_found(provider: FakeProvider) -> None:
    mine = create_test_org("mine", plan="professional")
    theirs = create_test_org("theirs", plan="professional")
    foreign = create_test_client(theirs)

    with pytest.raises(NotFoundError):
        asyncio.run(
            wiring.ai_strategy_service.generate(mine.id, None, foreign.id, goals=["g"], challenges=[])
        )
    assert provider.calls == []


def test_provider_failure_records_nothing(provider: FakeProvider) -> None:
    provider.error = UpstreamError("AI", "timeout")
    org = create_test_org("down", plan="professional")
    client = create_test_client(org)

    with pytest.raises(UpstreamError):
        asyncio.run(
            wiring.ai_strategy_service.generate(org.id, None, client.id, goals=["g"], challenges=[])
        )
    assert store.ai_strategy_repo.list_by_org(org.id) == []
    assert _generations(org.id) == 0


def test_non_json_completion_is_upstream_error(provider: FakeProvider) -> None:
    provider.content = "Sure! Here is your strategy:"
    org = create_test_org("chatty", plan="professional")
    client = create_test_client(org)

    with pytest.raises(UpstreamError):
        asyncio.run(
            wiring.ai_strategy_service.generate(org.id, None, client.id, goals=["g"], challenges=[])
        )
    assert _generations(org.id) == 0


def test_build_prompt_includes_optional_fields() -> None:
    prompt = build_prompt(
        client_name="Acme",
        industry=None,
        goals=["a", "b"],
        challenges=[],
        budget=5000,
        target_audience="students",
    )
    assert "Goals: a, b" in prompt
    assert "Industry: unspecified" in prompt
    assert "Budget: 5000" in prompt
    assert "Target audience: students" in prompt


# ---- OpenAI-compatible provider over httpx ----


def _provider(handler) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        api_key="sk-test",
        base_url="https://ai.example.com/v1/",
        model="test-model",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def test_provider_sends_chat_completion_request() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "model": "test-model",
                "choices": [{"message": {"content": "{}"}}],
                "usage": {"total_tokens": 42},
            },
        )

    resp = asyncio.run(_provider(handler).chat([ChatMessage("user", "hi")], json_mode=True))

    assert seen["url"] == "https://ai.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert resp.content == "{}"
    assert resp.total_tokens == 42


def test_provider_http_error_is_upstream_error() -> None:
    provider = _provider(lambda request: httpx.Response(503, text="overloaded"))
    with pytest.raises(UpstreamError):
        asyncio.run(provider.chat([ChatMessage("user", "hi")]))


def test_provider_malformed_body_is_upstream_error() -> None:
    provider = _provider(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(UpstreamError):
        asyncio.run(provider.chat([ChatMessage("user", "hi")]))


def test_provider_without_key_fails_fast() -> None:
    provider = OpenAICompatibleProvider(
        api_key=None, base_url="https://ai.example.com", model="m", timeout=1
    )
    with pytest.raises(UpstreamError):
        asyncio.run(provider.chat([ChatMessage("user", "hi")]))


def test_unknown_org_id_has_no_strategies() -> None:
    assert wiring.ai_strategy_service.list_strategies(uuid4()) == []
