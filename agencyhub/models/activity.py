from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

# Activity type counted as one AI generation by the usage counter
STRATEGY_GENERATED = "strategy_generated"


@dataclass(frozen=True, slots=True)
class Activity:
    id: UUID
    organization_id: UUID
    type: str
    description: str = ""
    user_id: UUID | None = None
    client_id: UUID | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        type: str,
        description: str = "",
        user_id: UUID | None = None,
        client_id: UUID | None = None,
        created_at: datetime | None = None,
    ) -> Activity:
        return Activity(
            id=uuid4(),
            organization_id=organization_id,
            type=type,
            description=description,
            user_id=user_id,
            client_id=client_id,
            created_at=created_at or datetime.now(UTC),
        )
