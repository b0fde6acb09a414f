from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class Platform(StrEnum):
    FACEBOOK_ADS = "facebook_ads"
    GOOGLE_ADS = "google_ads"
    GOOGLE_ANALYTICS = "google_analytics"
    INSTAGRAM = "instagram"


@dataclass(frozen=True, slots=True)
class MarketingIntegration:
    id: UUID
    organization_id: UUID
    client_id: UUID
    platform: Platform
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *, organization_id: UUID, client_id: UUID, platform: Platform
    ) -> MarketingIntegration:
        return MarketingIntegration(
            id=uuid4(),
            organization_id=organization_id,
            client_id=client_id,
            platform=platform,
        )
