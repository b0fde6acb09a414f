from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    name: str
    subdomain: str  # unique, never changes after creation
    plan_id: UUID | None = None
    # Override caps; consulted per field when the plan leaves a cap unset
    max_users: int | None = None
    max_clients: int | None = None
    is_active: bool = True
    settings: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *,
        name: str,
        subdomain: str,
        plan_id: UUID | None = None,
        max_users: int | None = None,
        max_clients: int | None = None,
    ) -> Organization:
        return Organization(
            id=uuid4(),
            name=name,
            subdomain=subdomain.strip().lower(),
            plan_id=plan_id,
            max_users=max_users,
            max_clients=max_clients,
        )
