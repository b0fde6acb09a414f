"""Payment processor webhook outbox.

Receiving and applying an event are two separate steps:

  ingest()  called by the HTTP handler after the signature check.  Stores
            the raw event (deduplicated on the processor's event id) and
            enqueues its id on ``billing_webhooks``.  Nothing else.
  process() called by the worker.  Applies the event to subscriptions and
            organizations and marks it ``processed`` or ``failed``.

A crash between the two leaves the event in ``received`` state, and
``replay_pending`` (run on worker start) applies it later.  Applying is
idempotent: every branch sets absolute state rather than incrementing.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID

from agencyhub.core.errors import WebhookError
from agencyhub.core.metrics import WEBHOOK_EVENTS
from agencyhub.models.subscription import ACTIVE_STATUSES, SubscriptionRecord
from agencyhub.models.webhook_event import EventStatus, WebhookEvent
from agencyhub.repos.organization_repo import OrganizationRepo
from agencyhub.repos.plan_repo import PlanRepo
from agencyhub.repos.subscription_repo import SubscriptionRepo
from agencyhub.repos.webhook_event_repo import WebhookEventRepo
from agencyhub.services.cache import CacheService, invalidate_org
from agencyhub.services.task_queue import WEBHOOK_QUEUE, TaskQueue

logger = logging.getLogger(__name__)

# Event types that only get logged
_LOG_ONLY = frozenset({"invoice.payment_succeeded", "payment_intent.succeeded"})


class WebhookService:
    def __init__(
        self,
        *,
        events: WebhookEventRepo,
        subscriptions: SubscriptionRepo,
        orgs: OrganizationRepo,
        plans: PlanRepo,
        queue: TaskQueue,
        cache: CacheService,
    ) -> None:
        self._events = events
        self._subscriptions = subscriptions
        self._orgs = orgs
        self._plans = plans
        self._queue = queue
        self._cache = cache

    async def ingest(self, provider: str, event: dict) -> WebhookEvent | None:
        """Persist and enqueue.  Returns None for a duplicate delivery."""
        external_id = event.get("id")
        event_type = event.get("type")
        if not isinstance(external_id, str) or not isinstance(event_type, str):
            WEBHOOK_EVENTS.labels(provider=provider, result="rejected").inc()
            raise WebhookError("Event id and type are required")

        record = WebhookEvent.new(
            provider=provider,
            external_id=external_id,
            event_type=event_type,
            payload=event,
        )
        if not self._events.add(record):
            WEBHOOK_EVENTS.labels(provider=provider, result="duplicate").inc()
            logger.info("Duplicate %s webhook event=%s ignored", provider, external_id)
            return None

        await self._queue.enqueue(WEBHOOK_QUEUE, {"event_id": str(record.id)})
        WEBHOOK_EVENTS.labels(provider=provider, result="received").inc()
        logger.info(
            "Received %s webhook event=%s type=%s", provider, external_id, event_type
        )
        return record

    async def process(self, event_id: UUID) -> EventStatus | None:
        event = self._events.get(event_id)
        if event is None:
            logger.warning("Webhook event id=%s not found", event_id)
            return None
        if event.status == EventStatus.PROCESSED:
            return event.status

        try:
            await self._apply(event)
        except Exception as e:
            # Worker boundary: record the failure so replay can retry it
            logger.exception(
                "Applying %s webhook event=%s failed", event.provider, event.external_id
            )
            self._events.save(replace(event, status=EventStatus.FAILED, error=str(e)))
            WEBHOOK_EVENTS.labels(provider=event.provider, result="failed").inc()
            return EventStatus.FAILED

        self._events.save(
            replace(
                event,
                status=EventStatus.PROCESSED,
                error=None,
                processed_at=datetime.now(UTC),
            )
        )
        WEBHOOK_EVENTS.labels(provider=event.provider, result="processed").inc()
        return EventStatus.PROCESSED

    async def replay_pending(self) -> int:
        """Apply every event still ``received`` or ``failed``.  Returns the count."""
        pending = self._events.list_by_status(EventStatus.RECEIVED, EventStatus.FAILED)
        for event in pending:
            await self.process(event.id)
        if pending:
            logger.info("Replayed %d pending webhook events", len(pending))
        return len(pending)

    # -- event application --------------------------------------------------

    async def _apply(self, event: WebhookEvent) -> None:
        obj = (event.payload.get("data") or {}).get("object") or {}
        kind = event.event_type

        if event.provider == "pagseguro":
            await self._apply_pagseguro(kind, obj)
        elif kind in ("customer.subscription.created", "customer.subscription.updated"):
            await self._sync_subscription(obj)
        elif kind == "customer.subscription.deleted":
            await self._end_subscription("stripe", obj.get("id"))
        elif kind == "invoice.payment_failed":
            await self._set_status("stripe", obj.get("subscription"), "past_due")
        elif kind in _LOG_ONLY:
            logger.info("Stripe %s for object=%s", kind, obj.get("id"))
        else:
            logger.info("Unhandled Stripe event type %s", kind)

    async def _apply_pagseguro(self, kind: str, obj: dict) -> None:
        external_id = obj.get("id")
        if kind == "subscription.activated":
            record = self._find("pagseguro", external_id)
            if record is not None:
                await self._activate(replace(record, status="active"))
        elif kind == "subscription.canceled":
            await self._end_subscription("pagseguro", external_id)
        else:
            logger.info("Unhandled PagSeguro event type %s", kind)

    def _find(self, provider: str, external_id: str | None) -> SubscriptionRecord | None:
        if not external_id:
            return None
        record = self._subscriptions.get_by_external_id(provider, external_id)
        if record is None:
            logger.warning("No local %s subscription for %s", provider, external_id)
        return record

    async def _sync_subscription(self, obj: dict) -> None:
        external_id = obj.get("id")
        status = obj.get("status", "pending")
        price_id = _first_price_id(obj)
        plan = self._plans.get_by_stripe_price(price_id) if price_id else None

        record = self._subscriptions.get_by_external_id("stripe", external_id) if external_id else None
        if record is None:
            org_id = (obj.get("metadata") or {}).get("organization_id")
            if not org_id or plan is None:
                logger.warning("Cannot match Stripe subscription %s to an organization", external_id)
                return
            record = SubscriptionRecord.new(
                organization_id=UUID(org_id),
                plan_id=plan.id,
                provider="stripe",
                external_id=external_id,
                customer_ref=obj.get("customer"),
            )
            self._subscriptions.add(record)

        period_end = obj.get("current_period_end")
        record = replace(
            record,
            status=status,
            plan_id=plan.id if plan else record.plan_id,
            cancel_at_period_end=bool(obj.get("cancel_at_period_end", False)),
            current_period_end=(
                datetime.fromtimestamp(period_end, tz=UTC) if period_end else record.current_period_end
            ),
        )
        if status in ACTIVE_STATUSES:
            await self._activate(record)
        else:
            self._subscriptions.save(record)
            logger.info("Stripe subscription %s is now %s", external_id, status)

    async def _activate(self, record: SubscriptionRecord) -> None:
        self._subscriptions.save(record)
        self._orgs.set_plan(record.organization_id, record.plan_id)
        self._orgs.set_active(record.organization_id, True)
        await invalidate_org(self._cache, record.organization_id)
        logger.info(
            "Organization=%s assigned plan=%s via %s subscription %s",
            record.organization_id,
            record.plan_id,
            record.provider,
            record.external_id,
        )

    async def _end_subscription(self, provider: str, external_id: str | None) -> None:
        record = self._find(provider, external_id)
        if record is None:
            return
        self._subscriptions.save(replace(record, status="canceled"))
        self._orgs.set_active(record.organization_id, False)
        await invalidate_org(self._cache, record.organization_id)
        logger.info("Organization=%s deactivated, subscription %s ended", record.organization_id, external_id)

    async def _set_status(self, provider: str, external_id: str | None, status: str) -> None:
        record = self._find(provider, external_id)
        if record is None:
            return
        self._subscriptions.save(replace(record, status=status))
        logger.warning("Subscription %s for organization=%s is %s", external_id, record.organization_id, status)


def _first_price_id(obj: dict) -> str | None:
    items = (obj.get("items") or {}).get("data") or []
    if not items:
        return None
    return (items[0].get("price") or {}).get("id")
