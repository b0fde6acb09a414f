"""PostgreSQL implementations of the append-mostly tenant repos:
activities, AI strategies and marketing integrations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from agencyhub.db.tables import ActivityRow, AiStrategyRow, MarketingIntegrationRow
from agencyhub.models.activity import Activity
from agencyhub.models.ai_strategy import AiStrategy
from agencyhub.models.integration import MarketingIntegration, Platform


class PgActivityRepo:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def add(self, activity: Activity) -> None:
        with self._sessions.begin() as session:
            session.add(
                ActivityRow(
                    id=activity.id,
                    organization_id=activity.organization_id,
                    type=activity.type,
                    description=activity.description,
                    user_id=activity.user_id,
                    client_id=activity.client_id,
                    created_at=activity.created_at,
                )
            )

    def list_by_org(self, org_id: UUID, *, limit: int = 50) -> list[Activity]:
        stmt = (
            select(ActivityRow)
            .where(ActivityRow.organization_id == org_id)
            .order_by(ActivityRow.created_at.desc())
            .limit(limit)
        )
        with self._sessions() as session:
            return [
                Activity(
                    id=r.id,
                    organization_id=r.organization_id,
                    type=r.type,
                    description=r.description,
                    user_id=r.user_id,
                    client_id=r.client_id,
                    created_at=r.created_at,
                )
                for r in session.execute(stmt).scalars()
            ]

    def count_in_window(
        self, org_id: UUID, activity_type: str, start: datetime, end: datetime
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(ActivityRow)
            .where(
                ActivityRow.organization_id == org_id,
                ActivityRow.type == activity_type,
                ActivityRow.created_at.between(start, end),
            )
        )
        with self._sessions() as session:
            return session.execute(stmt).scalar_one()


class PgAiStrategyRepo:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def add(self, strategy: AiStrategy) -> None:
        with self._sessions.begin() as session:
            session.add(
                AiStrategyRow(
                    id=strategy.id,
                    organization_id=strategy.organization_id,
                    client_id=strategy.client_id,
                    title=strategy.title,
                    content=strategy.content,
                    type=strategy.type,
                    status=strategy.status,
                    created_at=strategy.created_at,
                )
            )

    def list_by_org(self, org_id: UUID) -> list[AiStrategy]:
        stmt = (
            select(AiStrategyRow)
            .where(AiStrategyRow.organization_id == org_id)
            .order_by(AiStrategyRow.created_at.desc())
        )
        with self._sessions() as session:
            return [
                AiStrategy(
                    id=r.id,
                    organization_id=r.organization_id,
                    client_id=r.client_id,
                    title=r.title,
                    content=r.content,
                    type=r.type,
                    status=r.status,
                    created_at=r.created_at,
                )
                for r in session.execute(stmt).scalars()
            ]


class PgIntegrationRepo:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def add(self, integration: MarketingIntegration) -> None:
        with self._sessions.begin() as session:
            session.add(
                MarketingIntegrationRow(
                    id=integration.id,
                    organization_id=integration.organization_id,
                    client_id=integration.client_id,
                    platform=str(integration.platform),
                    is_active=integration.is_active,
                    created_at=integration.created_at,
                )
            )

    def list_by_org(self, org_id: UUID) -> list[MarketingIntegration]:
        stmt = (
            select(MarketingIntegrationRow)
            .where(MarketingIntegrationRow.organization_id == org_id)
            .order_by(MarketingIntegrationRow.created_at)
        )
        with self._sessions() as session:
            return [
                MarketingIntegration(
                    id=r.id,
                    organization_id=r.organization_id,
                    client_id=r.client_id,
                    platform=Platform(r.platform),
                    is_active=r.is_active,
                    created_at=r.created_at,
                )
                for r in session.execute(stmt).scalars()
            ]

    def count_active_by_org(self, org_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(MarketingIntegrationRow)
            .where(
                MarketingIntegrationRow.organization_id == org_id,
                MarketingIntegrationRow.is_active.is_(True),
            )
        )
        with self._sessions() as session:
            return session.execute(stmt).scalar_one()
