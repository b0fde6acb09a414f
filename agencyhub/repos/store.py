"""Process-wide repository instances.

Every API module and service reads the same singletons from here so a
client created through ``/api/clients`` is visible to the entitlement
checks in ``/api/billing``.

With DATABASE_URL set they are the ``Pg*Repo`` implementations and the
API and worker processes share state through PostgreSQL.  Without it they
are in-memory and only live as long as this process; tests run that way
and clear them between cases in ``tests/conftest.py``.
"""

from __future__ import annotations

from agencyhub.db.engine import session_factory
from agencyhub.repos.activity_repo import ActivityRepo, InMemoryActivityRepo
from agencyhub.repos.ai_strategy_repo import AiStrategyRepo, InMemoryAiStrategyRepo
from agencyhub.repos.client_repo import ClientRepo, InMemoryClientRepo
from agencyhub.repos.integration_repo import InMemoryIntegrationRepo, IntegrationRepo
from agencyhub.repos.organization_repo import InMemoryOrganizationRepo, OrganizationRepo
from agencyhub.repos.pg_client_repo import PgClientRepo
from agencyhub.repos.pg_content_repos import PgActivityRepo, PgAiStrategyRepo, PgIntegrationRepo
from agencyhub.repos.pg_organization_repo import PgOrganizationRepo
from agencyhub.repos.pg_plan_repo import PgPlanRepo
from agencyhub.repos.pg_subscription_repo import PgSubscriptionRepo
from agencyhub.repos.pg_user_repo import PgUserRepo
from agencyhub.repos.pg_webhook_event_repo import PgWebhookEventRepo
from agencyhub.repos.plan_repo import InMemoryPlanRepo, PlanRepo
from agencyhub.repos.subscription_repo import InMemorySubscriptionRepo, SubscriptionRepo
from agencyhub.repos.user_repo import InMemoryUserRepo, UserRepo
from agencyhub.repos.webhook_event_repo import InMemoryWebhookEventRepo, WebhookEventRepo

plan_repo: PlanRepo
org_repo: OrganizationRepo
user_repo: UserRepo
client_repo: ClientRepo
activity_repo: ActivityRepo
ai_strategy_repo: AiStrategyRepo
integration_repo: IntegrationRepo
subscription_repo: SubscriptionRepo
webhook_event_repo: WebhookEventRepo

if session_factory is not None:
    PERSISTENT = True
    plan_repo = PgPlanRepo(session_factory)
    org_repo = PgOrganizationRepo(session_factory)
    user_repo = PgUserRepo(session_factory)
    client_repo = PgClientRepo(session_factory)
    activity_repo = PgActivityRepo(session_factory)
    ai_strategy_repo = PgAiStrategyRepo(session_factory)
    integration_repo = PgIntegrationRepo(session_factory)
    subscription_repo = PgSubscriptionRepo(session_factory)
    webhook_event_repo = PgWebhookEventRepo(session_factory)
else:
    PERSISTENT = False
    plan_repo = InMemoryPlanRepo()
    org_repo = InMemoryOrganizationRepo()
    user_repo = InMemoryUserRepo()
    client_repo = InMemoryClientRepo()
    activity_repo = InMemoryActivityRepo()
    ai_strategy_repo = InMemoryAiStrategyRepo()
    integration_repo = InMemoryIntegrationRepo()
    subscription_repo = InMemorySubscriptionRepo()
    webhook_event_repo = InMemoryWebhookEventRepo()
