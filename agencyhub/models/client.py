from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4


class ClientStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PROSPECT = "prospect"


@dataclass(frozen=True, slots=True)
class Client:
    id: UUID
    organization_id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    industry: str | None = None
    contact_person: str | None = None
    monthly_value: Decimal | None = None
    status: ClientStatus = ClientStatus.ACTIVE
    notes: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(*, organization_id: UUID, name: str, **fields: object) -> Client:
        return Client(id=uuid4(), organization_id=organization_id, name=name, **fields)  # type: ignore[arg-type]
