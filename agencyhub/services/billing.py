"""Subscriptions, plan changes and usage analytics.

Plan assignment follows the processor: a subscription that comes back
``active`` or ``trialing`` assigns its plan immediately, anything else
waits for the webhook worker (``agencyhub.services.webhooks``) to confirm
it.  Creating a subscription is not idempotent; each call opens a new
one at the processor.

Upgrades and downgrades only move the plan pointer.  Existing usage is
not checked against the new caps; the result reports which caps the
organization now exceeds and enforcement happens on the next admission.

Analytics revenue is the summed monthly value of active clients, compared
with the same figure at the end of the previous window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from agencyhub.core.errors import NotFoundError, StoreUnavailableError, ValidationError
from agencyhub.models.organization import Organization
from agencyhub.models.plan import Plan
from agencyhub.models.subscription import SubscriptionRecord
from agencyhub.repos.organization_repo import OrganizationRepo
from agencyhub.repos.plan_repo import PlanRepo
from agencyhub.repos.subscription_repo import SubscriptionRepo
from agencyhub.services.cache import CacheService, analytics_key, invalidate_org, read_through
from agencyhub.services.entitlements import snapshot_for
from agencyhub.services.payments import PaymentGateway
from agencyhub.services.usage import UsageCounter

logger = logging.getLogger(__name__)

PERIODS = ("current_month", "7d", "30d", "90d", "last_month", "current_year")

_TICK = timedelta(microseconds=1)


# ---------------------------------------------------------------------------
# Period windows
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    """Inclusive current window and the comparable window before it."""

    start: datetime
    end: datetime
    previous_start: datetime
    previous_end: datetime


def _month_start(year: int, month: int) -> datetime:
    # month may run past 1..12 in either direction
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=UTC)


def period_window(period: str, now: datetime) -> PeriodWindow:
    if period in ("7d", "30d", "90d"):
        span = timedelta(days=int(period[:-1]))
        start = now - span
        return PeriodWindow(start, now, start - span, start - _TICK)

    if period == "current_month":
        start = _month_start(now.year, now.month)
        prev = _month_start(now.year, now.month - 1)
        return PeriodWindow(start, now, prev, start - _TICK)

    if period == "last_month":
        this_month = _month_start(now.year, now.month)
        start = _month_start(now.year, now.month - 1)
        prev = _month_start(now.year, now.month - 2)
        return PeriodWindow(start, this_month - _TICK, prev, start - _TICK)

    if period == "current_year":
        start = datetime(now.year, 1, 1, tzinfo=UTC)
        prev = datetime(now.year - 1, 1, 1, tzinfo=UTC)
        return PeriodWindow(start, now, prev, start - _TICK)

    raise ValidationError(f"Unknown period {period!r}; expected one of {', '.join(PERIODS)}")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class UsageFigure(BaseModel):
    current: int
    limit: int  # negative is unlimited


class GenerationFigure(BaseModel):
    current: int
    previous: int
    delta: int


class RevenueFigure(BaseModel):
    current: Decimal = Decimal("0")
    previous: Decimal = Decimal("0")
    delta: Decimal = Decimal("0")


class AnalyticsSummary(BaseModel):
    organization_id: UUID
    period: str
    start: datetime
    end: datetime
    plan_code: str | None = None
    plan_name: str | None = None
    monthly_cost: Decimal = Decimal("0")
    users: UsageFigure
    clients: UsageFigure
    integrations: int
    ai_generations: GenerationFigure
    revenue: RevenueFigure
    is_placeholder: bool = False


@dataclass(frozen=True, slots=True)
class PlanChangeResult:
    organization_id: UUID
    previous_plan_id: UUID | None
    plan_id: UUID
    over_user_limit: bool
    over_client_limit: bool


def _over(count: int, cap: int) -> bool:
    return cap >= 0 and count > cap


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BillingService:
    def __init__(
        self,
        *,
        orgs: OrganizationRepo,
        plans: PlanRepo,
        subscriptions: SubscriptionRepo,
        usage: UsageCounter,
        gateways: dict[str, PaymentGateway],
        cache: CacheService,
        cache_ttl: int = 300,
    ) -> None:
        self._orgs = orgs
        self._plans = plans
        self._subscriptions = subscriptions
        self._usage = usage
        self._gateways = gateways
        self._cache = cache
        self._cache_ttl = cache_ttl

    def _org(self, org_id: UUID) -> Organization:
        org = self._orgs.get(org_id)
        if org is None:
            raise NotFoundError("Organization not found")
        return org

    def _purchasable_plan(self, plan_id: UUID) -> Plan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise NotFoundError("Plan not found")
        if not plan.is_active:
            raise ValidationError(f"Plan {plan.code} is no longer offered")
        return plan

    # -- subscriptions ------------------------------------------------------

    async def create_subscription(
        self, org_id: UUID, plan_id: UUID, customer_ref: str | None
    ) -> SubscriptionRecord:
        return await self._subscribe("stripe", org_id, plan_id, customer_ref)

    async def create_pagseguro_subscription(
        self, org_id: UUID, plan_id: UUID
    ) -> SubscriptionRecord:
        return await self._subscribe("pagseguro", org_id, plan_id, None)

    async def _subscribe(
        self, provider: str, org_id: UUID, plan_id: UUID, customer_ref: str | None
    ) -> SubscriptionRecord:
        self._org(org_id)
        plan = self._purchasable_plan(plan_id)

        external = await self._gateways[provider].create_subscription(
            organization_id=org_id, plan=plan, customer_ref=customer_ref
        )
        record = SubscriptionRecord.new(
            organization_id=org_id,
            plan_id=plan.id,
            provider=provider,
            status=external.status,
            external_id=external.external_id,
            customer_ref=external.customer_ref,
            current_period_end=external.current_period_end,
            payment_url=external.payment_url,
        )
        self._subscriptions.add(record)

        if record.is_active:
            self._orgs.set_plan(org_id, plan.id)
            self._orgs.set_active(org_id, True)
            await invalidate_org(self._cache, org_id)

        logger.info(
            "Created %s subscription=%s organization=%s plan=%s status=%s",
            provider,
            record.external_id,
            org_id,
            plan.code,
            record.status,
        )
        return record

    async def cancel_subscription(self, org_id: UUID) -> SubscriptionRecord | None:
        """Cancel the current processor subscription and deactivate the tenant.

        An organization without an active subscription is still deactivated.
        """
        self._org(org_id)
        record = self._subscriptions.current_for_org(org_id)
        if record is not None and record.external_id:
            status = await self._gateways[record.provider].cancel_subscription(
                record.external_id
            )
            record = replace(record, status=status)
            self._subscriptions.save(record)

        self._orgs.set_active(org_id, False)
        await invalidate_org(self._cache, org_id)
        logger.info("Canceled subscription for organization=%s", org_id)
        return record

    # -- plan changes -------------------------------------------------------

    async def upgrade_plan(self, org_id: UUID, new_plan_id: UUID) -> PlanChangeResult:
        return await self._change_plan(org_id, new_plan_id, upgrade=True)

    async def downgrade_plan(self, org_id: UUID, new_plan_id: UUID) -> PlanChangeResult:
        return await self._change_plan(org_id, new_plan_id, upgrade=False)

    async def _change_plan(
        self, org_id: UUID, new_plan_id: UUID, *, upgrade: bool
    ) -> PlanChangeResult:
        org = self._org(org_id)
        new_plan = self._purchasable_plan(new_plan_id)
        current = self._plans.get(org.plan_id) if org.plan_id else None

        if current is not None:
            if current.id == new_plan.id:
                raise ValidationError(f"Organization is already on plan {new_plan.code}")
            if upgrade and new_plan.price < current.price:
                raise ValidationError("Use downgrade to move to a cheaper plan")
            if not upgrade and new_plan.price > current.price:
                raise ValidationError("Use upgrade to move to a more expensive plan")

        updated = self._orgs.set_plan(org_id, new_plan.id)
        if updated is None:
            raise NotFoundError("Organization not found")
        await invalidate_org(self._cache, org_id)

        limits = snapshot_for(updated, new_plan)
        result = PlanChangeResult(
            organization_id=org_id,
            previous_plan_id=org.plan_id,
            plan_id=new_plan.id,
            over_user_limit=_over(self._usage.count_active_users(org_id), limits.max_users),
            over_client_limit=_over(self._usage.count_clients(org_id), limits.max_clients),
        )
        logger.info(
            "%s organization=%s to plan=%s over_users=%s over_clients=%s",
            "Upgraded" if upgrade else "Downgraded",
            org_id,
            new_plan.code,
            result.over_user_limit,
            result.over_client_limit,
        )
        return result

    # -- analytics ----------------------------------------------------------

    async def get_usage_analytics(
        self, org_id: UUID, period: str = "current_month", *, now: datetime | None = None
    ) -> AnalyticsSummary:
        window = period_window(period, now or datetime.now(UTC))
        placeholder: AnalyticsSummary | None = None

        async def load() -> str | None:
            nonlocal placeholder
            try:
                return self._compute(org_id, period, window).model_dump_json()
            except StoreUnavailableError:
                logger.warning(
                    "Store unavailable, serving placeholder analytics for organization=%s",
                    org_id,
                    exc_info=True,
                )
                placeholder = self._placeholder(org_id, period, window)
                return None

        raw = await read_through(self._cache, analytics_key(org_id, period), self._cache_ttl, load)
        if raw is None:
            if placeholder is None:
                placeholder = self._placeholder(org_id, period, window)
            return placeholder
        return AnalyticsSummary.model_validate_json(raw)

    def _compute(self, org_id: UUID, period: str, window: PeriodWindow) -> AnalyticsSummary:
        org = self._org(org_id)
        plan = self._plans.get(org.plan_id) if org.plan_id else None
        limits = snapshot_for(org, plan)

        current = self._usage.count_ai_generations_in_window(org_id, window.start, window.end)
        previous = self._usage.count_ai_generations_in_window(
            org_id, window.previous_start, window.previous_end
        )
        revenue = self._usage.revenue_in_window(org_id, window.start, window.end)
        previous_revenue = self._usage.revenue_in_window(
            org_id, window.previous_start, window.previous_end
        )
        return AnalyticsSummary(
            organization_id=org_id,
            period=period,
            start=window.start,
            end=window.end,
            plan_code=plan.code if plan else None,
            plan_name=plan.name if plan else None,
            monthly_cost=plan.price if plan else Decimal("0"),
            users=UsageFigure(
                current=self._usage.count_active_users(org_id), limit=limits.max_users
            ),
            clients=UsageFigure(
                current=self._usage.count_clients(org_id), limit=limits.max_clients
            ),
            integrations=self._usage.count_integrations(org_id),
            ai_generations=GenerationFigure(
                current=current, previous=previous, delta=current - previous
            ),
            revenue=RevenueFigure(
                current=revenue, previous=previous_revenue, delta=revenue - previous_revenue
            ),
        )

    @staticmethod
    def _placeholder(org_id: UUID, period: str, window: PeriodWindow) -> AnalyticsSummary:
        return AnalyticsSummary(
            organization_id=org_id,
            period=period,
            start=window.start,
            end=window.end,
            users=UsageFigure(current=0, limit=0),
            clients=UsageFigure(current=0, limit=0),
            integrations=0,
            ai_generations=GenerationFigure(current=0, previous=0, delta=0),
            revenue=RevenueFigure(),
            is_placeholder=True,
        )
