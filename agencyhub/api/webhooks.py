"""Payment processor callbacks.

Unauthenticated; trust comes from the signature check, which is enforced
whenever the provider's secret is configured.  The handler only stores
and enqueues the event.  ``agencyhub.worker`` applies it.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from agencyhub.core.config import SETTINGS
from agencyhub.core.errors import WebhookError
from agencyhub.core.metrics import WEBHOOK_EVENTS
from agencyhub.services import wiring
from agencyhub.services.payments import parse_pagseguro_event, parse_stripe_event

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


async def _receive(provider: str, event: dict) -> dict:
    await wiring.webhook_service.ingest(provider, event)
    return {"received": True}


@router.post("/stripe")
async def stripe_webhook(request: Request) -> dict:
    payload = await request.body()
    try:
        event = parse_stripe_event(
            payload, request.headers.get("stripe-signature"), SETTINGS.stripe_webhook_secret
        )
    except WebhookError:
        WEBHOOK_EVENTS.labels(provider="stripe", result="rejected").inc()
        raise
    return await _receive("stripe", event)


@router.post("/pagseguro")
async def pagseguro_webhook(request: Request) -> dict:
    payload = await request.body()
    try:
        event = parse_pagseguro_event(
            payload,
            request.headers.get("x-pagseguro-signature"),
            SETTINGS.pagseguro_webhook_secret,
        )
    except WebhookError:
        WEBHOOK_EVENTS.labels(provider="pagseguro", result="rejected").inc()
        raise
    return await _receive("pagseguro", event)
