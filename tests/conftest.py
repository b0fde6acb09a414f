from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import agencyhub` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agencyhub.api.ratelimit import _rate_limiter  # noqa: E402
from agencyhub.main import app  # noqa: E402
from agencyhub.models.client import Client  # noqa: E402
from agencyhub.models.organization import Organization  # noqa: E402
from agencyhub.models.plan import Plan  # noqa: E402
from agencyhub.models.roles import Role  # noqa: E402
from agencyhub.models.user import User  # noqa: E402
from agencyhub.repos import store  # noqa: E402
from agencyhub.services import token_service, wiring  # noqa: E402
from agencyhub.services.cache import cache_service  # noqa: E402
from agencyhub.services.task_queue import task_queue  # noqa: E402

# Not a real hash; tests that log in go through /api/auth/register instead
FAKE_HASH = "$argon2id$v=19$m=65536,t=3,p=4$fake$fake"


@pytest.fixture(autouse=True)
def reset_stores() -> None:
    """Empty every repository, then put the default plans back."""
    store.plan_repo._store.clear()
    store.org_repo._store.clear()
    store.org_repo._by_subdomain.clear()
    store.user_repo._by_id.clear()
    store.user_repo._by_email.clear()
    store.client_repo._store.clear()
    store.activity_repo._store.clear()
    store.ai_strategy_repo._store.clear()
    store.integration_repo._store.clear()
    store.subscription_repo._store.clear()
    store.webhook_event_repo._store.clear()
    store.webhook_event_repo._keys.clear()
    wiring.plan_registry.ensure_seeded()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


@pytest.fixture
def admin_token() -> str:
    """Token with the platform admin role."""
    return mint_token(username="platform-admin", roles=["admin"])


def auth_headers(user: User) -> dict[str, str]:
    """Bearer token plus tenant header for a stored user."""
    headers = {"Authorization": f"Bearer {mint_token(str(user.id), list(user.roles))}"}
    if user.organization_id is not None:
        headers["x-organization-id"] = str(user.organization_id)
    return headers


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------


def plan_by_code(code: str) -> Plan:
    plan = store.plan_repo.get_by_code(code)
    assert plan is not None
    return plan


def create_test_plan(code: str = "custom", price: str = "49.90", **fields) -> Plan:
    plan = Plan.new(code=code, name=code.title(), price=Decimal(price), **fields)
    store.plan_repo.add(plan)
    return plan


def create_test_org(
    subdomain: str = "test-agency",
    *,
    plan: Plan | str | None = "starter",
    max_users: int | None = None,
    max_clients: int | None = None,
) -> Organization:
    """Create and persist an organization.  ``plan`` may be a plan code."""
    if isinstance(plan, str):
        plan = plan_by_code(plan)
    org = Organization.new(
        name=subdomain.replace("-", " ").title(),
        subdomain=subdomain,
        plan_id=plan.id if plan else None,
        max_users=max_users,
        max_clients=max_clients,
    )
    store.org_repo.add(org)
    return org


def create_test_user(
    org: Organization | None,
    *,
    role: Role = Role.OWNER,
    email: str | None = None,
    roles: tuple[str, ...] = (),
) -> User:
    org_id: UUID | None = org.id if org else None
    user = User.new(
        email=email or f"{role}-{len(store.user_repo._by_id)}@example.com",
        password_hash=FAKE_HASH,
        organization_id=org_id,
        role=role,
        roles=roles,
    )
    store.user_repo.add(user)
    return user


def create_test_client(org: Organization, name: str = "Acme", **fields) -> Client:
    c = Client.new(organization_id=org.id, name=name, **fields)
    store.client_repo.add_if_below_cap(c, -1)
    return c
