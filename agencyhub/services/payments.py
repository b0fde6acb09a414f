"""Payment processor gateways.

``BillingService`` talks to processors only through the ``PaymentGateway``
protocol so tests can substitute a fake.  The Stripe SDK is synchronous;
its calls run in a worker thread to keep the event loop free.

Processor errors are logged with their detail and re-raised as
``UpstreamError``, whose HTTP body is a generic message.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

import stripe

from agencyhub.core.config import SETTINGS
from agencyhub.core.errors import UpstreamError, ValidationError, WebhookError
from agencyhub.models.plan import Plan

logger = logging.getLogger(__name__)

PAGSEGURO_CHECKOUT_URL = "https://pagseguro.uol.com.br/checkout/payment.html"


@dataclass(frozen=True, slots=True)
class ExternalSubscription:
    external_id: str
    status: str
    customer_ref: str | None = None
    current_period_end: datetime | None = None
    payment_url: str | None = None


class PaymentGateway(Protocol):
    provider: str

    async def create_subscription(
        self, *, organization_id: UUID, plan: Plan, customer_ref: str | None
    ) -> ExternalSubscription: ...

    async def cancel_subscription(self, external_id: str) -> str: ...


def _period_end(raw: int | None) -> datetime | None:
    return datetime.fromtimestamp(raw, tz=UTC) if raw else None


class StripeGateway:
    provider = "stripe"

    def __init__(self, api_key: str | None) -> None:
        self._api_key = api_key

    async def create_subscription(
        self, *, organization_id: UUID, plan: Plan, customer_ref: str | None
    ) -> ExternalSubscription:
        if not plan.stripe_price_id:
            raise ValidationError(f"Plan {plan.code} has no Stripe price configured")
        if not customer_ref:
            raise ValidationError("customer_ref is required for Stripe subscriptions")
        try:
            sub = await asyncio.to_thread(
                stripe.Subscription.create,
                api_key=self._api_key,
                customer=customer_ref,
                items=[{"price": plan.stripe_price_id}],
                metadata={"organization_id": str(organization_id), "plan_code": plan.code},
            )
        except stripe.StripeError as e:
            logger.error(
                "Stripe subscription create failed for organization=%s: %s",
                organization_id,
                e,
                exc_info=True,
            )
            raise UpstreamError("payment", str(e)) from e

        return ExternalSubscription(
            external_id=sub["id"],
            status=sub["status"],
            customer_ref=customer_ref,
            current_period_end=_period_end(sub.get("current_period_end")),
        )

    async def cancel_subscription(self, external_id: str) -> str:
        try:
            sub = await asyncio.to_thread(
                stripe.Subscription.cancel, external_id, api_key=self._api_key
            )
        except stripe.StripeError as e:
            logger.error("Stripe cancel failed for subscription=%s: %s", external_id, e)
            raise UpstreamError("payment", str(e)) from e
        return sub["status"]


class PagSeguroGateway:
    """Checkout-link flow: the subscription stays pending until the
    customer pays and the processor calls our webhook."""

    provider = "pagseguro"

    async def create_subscription(
        self, *, organization_id: UUID, plan: Plan, customer_ref: str | None
    ) -> ExternalSubscription:
        code = uuid.uuid4().hex
        return ExternalSubscription(
            external_id=f"ps_{code}",
            status="pending",
            customer_ref=customer_ref,
            payment_url=f"{PAGSEGURO_CHECKOUT_URL}?code={code}",
        )

    async def cancel_subscription(self, external_id: str) -> str:
        logger.info("PagSeguro subscription=%s canceled locally", external_id)
        return "canceled"


# ---------------------------------------------------------------------------
# Webhook payload verification
# ---------------------------------------------------------------------------


def parse_stripe_event(payload: bytes, signature: str | None, secret: str | None) -> dict:
    """Verify a Stripe webhook body and return the event as a dict.

    Without a configured secret the body is parsed unchecked (local dev).
    """
    if secret:
        if not signature:
            raise WebhookError("Missing Stripe-Signature header")
        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Stripe webhook signature rejected: %s", e)
            raise WebhookError("Invalid signature") from e
        except ValueError as e:
            raise WebhookError("Invalid payload") from e
        # Verified; keep the plain JSON rather than the SDK object
        return _parse_json(payload)

    logger.warning("STRIPE_WEBHOOK_SECRET not set, skipping signature verification")
    return _parse_json(payload)


def parse_pagseguro_event(payload: bytes, signature: str | None, secret: str | None) -> dict:
    """PagSeguro notifications are signed with HMAC-SHA256 over the raw body."""
    if secret:
        expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        if not signature or not hmac.compare_digest(expected, signature):
            logger.warning("PagSeguro webhook signature rejected")
            raise WebhookError("Invalid signature")
    return _parse_json(payload)


def _parse_json(payload: bytes) -> dict:
    try:
        event = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise WebhookError("Invalid payload") from e
    if not isinstance(event, dict):
        raise WebhookError("Invalid payload")
    return event


def build_gateways() -> dict[str, PaymentGateway]:
    return {
        "stripe": StripeGateway(SETTINGS.stripe_secret_key),
        "pagseguro": PagSeguroGateway(),
    }
