"""Effective plan limits and admission decisions for a tenant.

Each cap resolves independently: the plan's value when the plan sets one,
else the organization's override, else the default.  A plan that sets
``max_users`` but leaves ``max_clients`` unset therefore mixes its own
user cap with the organization's client override.  Only an unset (None)
cap falls through: a cap of 0 set on the plan or the organization is a
hard cap that admits nobody, where a falsy-coalescing resolution would
have skipped it and handed out the next value.  Feature flags and the
``features`` list only ever come from the plan.

The ``can_add_*`` checks are point-in-time reads for display.  Writes go
through ``admit_client``, ``admit_user`` and ``readmit_user``, which count
and write in a single repository operation so two concurrent requests
against the last free slot cannot both get in.
"""

from __future__ import annotations

import logging
from uuid import UUID

from agencyhub.core.errors import ConflictError, EntitlementError, NotFoundError
from agencyhub.core.metrics import ENTITLEMENT_DENIALS
from agencyhub.models.client import Client
from agencyhub.models.organization import Organization
from agencyhub.models.plan import EntitlementSnapshot, Plan
from agencyhub.models.user import User
from agencyhub.repos.client_repo import ClientRepo
from agencyhub.repos.organization_repo import OrganizationRepo
from agencyhub.repos.plan_repo import PlanRepo
from agencyhub.repos.user_repo import UserRepo
from agencyhub.services.usage import UsageCounter

logger = logging.getLogger(__name__)

DEFAULT_MAX_USERS = 5
DEFAULT_MAX_CLIENTS = 50

# Feature keys backed by a dedicated plan flag.  Any other key is looked
# up in ``Plan.features``.
_FLAG_FEATURES = {
    "ai_strategies": "has_ai_strategies",
    "integrations": "has_integrations",
    "advanced_reports": "has_advanced_reports",
}


def _first_set(*values: int | None) -> int:
    return next(v for v in values if v is not None)


def snapshot_for(org: Organization, plan: Plan | None) -> EntitlementSnapshot:
    if plan is None:
        return EntitlementSnapshot(
            max_users=_first_set(org.max_users, DEFAULT_MAX_USERS),
            max_clients=_first_set(org.max_clients, DEFAULT_MAX_CLIENTS),
        )
    return EntitlementSnapshot(
        max_users=_first_set(plan.max_users, org.max_users, DEFAULT_MAX_USERS),
        max_clients=_first_set(plan.max_clients, org.max_clients, DEFAULT_MAX_CLIENTS),
        has_ai_strategies=plan.has_ai_strategies,
        has_integrations=plan.has_integrations,
        has_advanced_reports=plan.has_advanced_reports,
        features=tuple(plan.features),
    )


class EntitlementEvaluator:
    def __init__(
        self,
        orgs: OrganizationRepo,
        plans: PlanRepo,
        users: UserRepo,
        clients: ClientRepo,
        usage: UsageCounter,
    ) -> None:
        self._orgs = orgs
        self._plans = plans
        self._users = users
        self._clients = clients
        self._usage = usage

    def _load(self, org_id: UUID) -> tuple[Organization | None, Plan | None]:
        org = self._orgs.get(org_id)
        if org is None:
            return None, None
        # A dangling plan_id counts as no plan
        plan = self._plans.get(org.plan_id) if org.plan_id else None
        return org, plan

    def resolve_limits(self, org_id: UUID) -> EntitlementSnapshot:
        org, plan = self._load(org_id)
        if org is None:
            raise NotFoundError("Organization not found")
        return snapshot_for(org, plan)

    def can_add_user(self, org_id: UUID) -> bool:
        org, plan = self._load(org_id)
        if org is None:
            return False
        return snapshot_for(org, plan).allows_users(self._usage.count_active_users(org_id))

    def can_add_client(self, org_id: UUID) -> bool:
        org, plan = self._load(org_id)
        if org is None:
            return False
        return snapshot_for(org, plan).allows_clients(self._usage.count_clients(org_id))

    def has_feature_access(self, org_id: UUID, feature_key: str) -> bool:
        org, plan = self._load(org_id)
        if org is None or plan is None:
            return False
        flag = _FLAG_FEATURES.get(feature_key)
        if flag is not None:
            return bool(getattr(plan, flag))
        return feature_key in plan.features

    def admit_client(self, org_id: UUID, client: Client) -> Client:
        limits = self.resolve_limits(org_id)
        if not self._clients.add_if_below_cap(client, limits.max_clients):
            self._deny("clients", org_id, f"Client limit reached ({limits.max_clients})")
        return client

    def admit_user(self, org_id: UUID, user: User) -> User:
        limits = self.resolve_limits(org_id)
        try:
            admitted = self._users.add_if_below_cap(user, limits.max_users)
        except ValueError:
            raise ConflictError("Email already registered") from None
        if not admitted:
            self._deny("users", org_id, f"User limit reached ({limits.max_users})")
        return user

    def readmit_user(self, org_id: UUID, user_id: UUID) -> None:
        """Reactivate a member.  An inactive member does not hold a seat, so
        coming back takes one under the same cap as a new invite."""
        limits = self.resolve_limits(org_id)
        try:
            admitted = self._users.activate_if_below_cap(user_id, limits.max_users)
        except KeyError:
            raise NotFoundError("User not found") from None
        if not admitted:
            self._deny("users", org_id, f"User limit reached ({limits.max_users})")

    def _deny(self, kind: str, org_id: UUID, message: str) -> None:
        ENTITLEMENT_DENIALS.labels(kind=kind).inc()
        logger.warning("Admission denied: organization=%s kind=%s", org_id, kind)
        raise EntitlementError(message, kind=kind)
