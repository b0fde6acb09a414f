from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID, uuid4

# Cap value meaning "no limit".  None means the plan leaves the cap unset.
UNLIMITED = -1


@dataclass(frozen=True, slots=True)
class Plan:
    id: UUID
    code: str
    name: str
    price: Decimal
    interval: str = "month"
    description: str = ""
    features: tuple[str, ...] = ()
    max_users: int | None = None
    max_clients: int | None = None
    has_ai_strategies: bool = False
    has_integrations: bool = False
    has_advanced_reports: bool = False
    is_active: bool = True
    stripe_price_id: str | None = None

    @staticmethod
    def new(
        *,
        code: str,
        name: str,
        price: Decimal,
        **fields: object,
    ) -> Plan:
        return Plan(id=uuid4(), code=code, name=name, price=price, **fields)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class EntitlementSnapshot:
    """Effective limits for a tenant at one point in time.  Never persisted."""

    max_users: int
    max_clients: int
    has_ai_strategies: bool = False
    has_integrations: bool = False
    has_advanced_reports: bool = False
    features: tuple[str, ...] = field(default_factory=tuple)

    def allows_users(self, current: int) -> bool:
        return self.max_users < 0 or current < self.max_users

    def allows_clients(self, current: int) -> bool:
        return self.max_clients < 0 or current < self.max_clients
