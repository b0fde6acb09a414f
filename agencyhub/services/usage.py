from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from agencyhub.models.activity import STRATEGY_GENERATED
from agencyhub.models.client import ClientStatus
from agencyhub.repos.activity_repo import ActivityRepo
from agencyhub.repos.client_repo import ClientRepo
from agencyhub.repos.integration_repo import IntegrationRepo
from agencyhub.repos.user_repo import UserRepo


class UsageCounter:
    """Per-tenant consumption, recomputed from the repositories on every call."""

    def __init__(
        self,
        users: UserRepo,
        clients: ClientRepo,
        activities: ActivityRepo,
        integrations: IntegrationRepo,
    ) -> None:
        self._users = users
        self._clients = clients
        self._activities = activities
        self._integrations = integrations

    def count_active_users(self, org_id: UUID) -> int:
        return self._users.count_active_by_org(org_id)

    def count_clients(self, org_id: UUID) -> int:
        return self._clients.count_by_org(org_id)

    def count_integrations(self, org_id: UUID) -> int:
        return self._integrations.count_active_by_org(org_id)

    def count_ai_generations_in_window(
        self, org_id: UUID, start: datetime, end: datetime
    ) -> int:
        if start > end:
            raise ValueError("window start must not be after its end")
        return self._activities.count_in_window(org_id, STRATEGY_GENERATED, start, end)

    def revenue_in_window(self, org_id: UUID, start: datetime, end: datetime) -> Decimal:
        """Summed ``monthly_value`` of the clients on the books by ``end``.

        Only a client's current status is stored, so an active client
        counts toward every window that ends after it was created.
        """
        if start > end:
            raise ValueError("window start must not be after its end")
        return sum(
            (
                c.monthly_value
                for c in self._clients.list_by_org(org_id)
                if c.status == ClientStatus.ACTIVE
                and c.monthly_value is not None
                and c.created_at <= end
            ),
            Decimal("0"),
        )
