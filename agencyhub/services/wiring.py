"""Process-wide service instances built on the shared repositories."""

from __future__ import annotations

from agencyhub.core.config import SETTINGS
from agencyhub.repos import store
from agencyhub.services.ai_provider import build_provider
from agencyhub.services.ai_strategy import AiStrategyService
from agencyhub.services.billing import BillingService
from agencyhub.services.cache import cache_service
from agencyhub.services.entitlements import EntitlementEvaluator
from agencyhub.services.payments import build_gateways
from agencyhub.services.plan_registry import PlanRegistry
from agencyhub.services.task_queue import task_queue
from agencyhub.services.usage import UsageCounter
from agencyhub.services.webhooks import WebhookService

plan_registry = PlanRegistry(store.plan_repo)

usage_counter = UsageCounter(
    store.user_repo, store.client_repo, store.activity_repo, store.integration_repo
)

entitlements = EntitlementEvaluator(
    store.org_repo, store.plan_repo, store.user_repo, store.client_repo, usage_counter
)

billing_service = BillingService(
    orgs=store.org_repo,
    plans=store.plan_repo,
    subscriptions=store.subscription_repo,
    usage=usage_counter,
    gateways=build_gateways(),
    cache=cache_service,
    cache_ttl=SETTINGS.analytics_cache_ttl,
)

webhook_service = WebhookService(
    events=store.webhook_event_repo,
    subscriptions=store.subscription_repo,
    orgs=store.org_repo,
    plans=store.plan_repo,
    queue=task_queue,
    cache=cache_service,
)

ai_strategy_service = AiStrategyService(
    provider=build_provider(),
    clients=store.client_repo,
    strategies=store.ai_strategy_repo,
    activities=store.activity_repo,
    cache=cache_service,
)
