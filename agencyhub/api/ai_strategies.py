from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from agencyhub.api.dependencies import (
    OrgPrincipal,
    org_id_of,
    require_capability,
    require_feature_access,
)
from agencyhub.api.ratelimit import AI_GENERATE_LIMIT, require_rate_limit
from agencyhub.models.ai_strategy import AiStrategy
from agencyhub.models.principal import Principal
from agencyhub.models.roles import Capability
from agencyhub.services import wiring

router = APIRouter(prefix="/api/ai-strategies", tags=["ai-strategies"])


class GenerateIn(BaseModel):
    clientId: UUID
    goals: list[str] = Field(min_length=1)
    challenges: list[str] = []
    budget: float | None = Field(default=None, ge=0)
    targetAudience: str | None = None


class StrategyOut(BaseModel):
    id: str
    client_id: str
    title: str
    content: str
    type: str
    status: str
    created_at: datetime


def _out(s: AiStrategy) -> StrategyOut:
    return StrategyOut(
        id=str(s.id),
        client_id=str(s.client_id),
        title=s.title,
        content=s.content,
        type=s.type,
        status=s.status,
        created_at=s.created_at,
    )


@router.get("", response_model=list[StrategyOut])
def list_strategies(principal: OrgPrincipal) -> list[StrategyOut]:
    return [_out(s) for s in wiring.ai_strategy_service.list_strategies(org_id_of(principal))]


@router.post(
    "/generate",
    response_model=StrategyOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(require_feature_access("ai_strategies")),
        Depends(require_rate_limit(AI_GENERATE_LIMIT)),
    ],
)
async def generate_strategy(
    body: GenerateIn,
    principal: Annotated[Principal, Depends(require_capability(Capability.GENERATE_STRATEGIES))],
) -> StrategyOut:
    strategy = await wiring.ai_strategy_service.generate(
        org_id_of(principal),
        UUID(principal.user_id),
        body.clientId,
        goals=body.goals,
        challenges=body.challenges,
        budget=body.budget,
        target_audience=body.targetAudience,
    )
    return _out(strategy)
