from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

# Processor statuses that grant the plan immediately
ACTIVE_STATUSES = frozenset({"active", "trialing"})


@dataclass(frozen=True, slots=True)
class SubscriptionRecord:
    id: UUID
    organization_id: UUID
    plan_id: UUID
    provider: str  # stripe|pagseguro
    status: str = "pending"
    external_id: str | None = None
    customer_ref: str | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    payment_url: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        plan_id: UUID,
        provider: str,
        **fields: object,
    ) -> SubscriptionRecord:
        return SubscriptionRecord(
            id=uuid4(),
            organization_id=organization_id,
            plan_id=plan_id,
            provider=provider,
            **fields,  # type: ignore[arg-type]
        )
