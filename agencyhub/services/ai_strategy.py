from __future__ import annotations

import json
import logging
from uuid import UUID

from agencyhub.core.errors import NotFoundError, UpstreamError
from agencyhub.core.metrics import AI_GENERATIONS
from agencyhub.models.activity import STRATEGY_GENERATED, Activity
from agencyhub.models.ai_strategy import AiStrategy
from agencyhub.repos.activity_repo import ActivityRepo
from agencyhub.repos.ai_strategy_repo import AiStrategyRepo
from agencyhub.repos.client_repo import ClientRepo
from agencyhub.services.ai_provider import AIProvider, ChatMessage
from agencyhub.services.cache import CacheService, invalidate_org

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an expert digital marketing strategist. Reply with a single JSON "
    "object with the keys title, executive_summary, objectives, tactics, "
    "metrics and timeline. Each tactic has category, actions, timeline and "
    "budget_allocation."
)


def build_prompt(
    *,
    client_name: str,
    industry: str | None,
    goals: list[str],
    challenges: list[str],
    budget: float | None,
    target_audience: str | None,
) -> str:
    lines = [
        "Create a digital marketing strategy for this client.",
        f"Client: {client_name}",
        f"Industry: {industry or 'unspecified'}",
        f"Goals: {', '.join(goals) or 'unspecified'}",
        f"Current challenges: {', '.join(challenges) or 'none stated'}",
    ]
    if budget:
        lines.append(f"Budget: {budget}")
    if target_audience:
        lines.append(f"Target audience: {target_audience}")
    return "\n".join(lines)


class AiStrategyService:
    def __init__(
        self,
        *,
        provider: AIProvider,
        clients: ClientRepo,
        strategies: AiStrategyRepo,
        activities: ActivityRepo,
        cache: CacheService,
    ) -> None:
        self._provider = provider
        self._clients = clients
        self._strategies = strategies
        self._activities = activities
        self._cache = cache

    def list_strategies(self, org_id: UUID) -> list[AiStrategy]:
        return self._strategies.list_by_org(org_id)

    async def generate(
        self,
        org_id: UUID,
        user_id: UUID | None,
        client_id: UUID,
        *,
        goals: list[str],
        challenges: list[str],
        budget: float | None = None,
        target_audience: str | None = None,
    ) -> AiStrategy:
        """Ask the provider for a strategy and record it as one generation.

        Nothing is stored when the provider call fails.
        """
        client = self._clients.get(org_id, client_id)
        if client is None:
            raise NotFoundError("Client not found")

        prompt = build_prompt(
            client_name=client.name,
            industry=client.industry,
            goals=goals,
            challenges=challenges,
            budget=budget,
            target_audience=target_audience,
        )
        try:
            response = await self._provider.chat(
                [ChatMessage("system", _SYSTEM_PROMPT), ChatMessage("user", prompt)],
                json_mode=True,
            )
            parsed = json.loads(response.content or "{}")
        except UpstreamError:
            AI_GENERATIONS.labels(result="error").inc()
            raise
        except json.JSONDecodeError as e:
            AI_GENERATIONS.labels(result="error").inc()
            logger.error("AI strategy for client=%s was not valid JSON", client_id)
            raise UpstreamError("AI", "completion was not valid JSON") from e

        title = parsed.get("title") if isinstance(parsed, dict) else None
        strategy = AiStrategy.new(
            organization_id=org_id,
            client_id=client_id,
            title=title or f"Marketing strategy for {client.name}",
            content=json.dumps(parsed, ensure_ascii=False),
        )
        self._strategies.add(strategy)
        self._activities.add(
            Activity.new(
                organization_id=org_id,
                type=STRATEGY_GENERATED,
                description=f"AI strategy generated for {client.name}",
                user_id=user_id,
                client_id=client_id,
            )
        )
        await invalidate_org(self._cache, org_id)

        AI_GENERATIONS.labels(result="ok").inc()
        logger.info("Generated strategy=%s for client=%s", strategy.id, client_id)
        return strategy
