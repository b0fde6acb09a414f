from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class AiStrategy:
    id: UUID
    organization_id: UUID
    client_id: UUID
    title: str
    content: str  # JSON text as returned by the provider
    type: str = "marketing"
    status: str = "draft"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *, organization_id: UUID, client_id: UUID, title: str, content: str
    ) -> AiStrategy:
        return AiStrategy(
            id=uuid4(),
            organization_id=organization_id,
            client_id=client_id,
            title=title,
            content=content,
        )
