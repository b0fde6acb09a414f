"""Webhook body verification and the PagSeguro checkout gateway."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import time
from uuid import uuid4

import pytest

from agencyhub.core.errors import WebhookError
from agencyhub.services.payments import (
    PagSeguroGateway,
    parse_pagseguro_event,
    parse_stripe_event,
)
from tests.conftest import plan_by_code

SECRET = "whsec_test"
BODY = json.dumps({"id": "evt_1", "type": "invoice.paid"}).encode()


def _stripe_signature(payload: bytes, secret: str = SECRET) -> str:
    ts = int(time.time())
    mac = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={mac}"


def test_stripe_valid_signature() -> None:
    event = parse_stripe_event(BODY, _stripe_signature(BODY), SECRET)
    assert event == {"id": "evt_1", "type": "invoice.paid"}


def test_stripe_missing_signature() -> None:
    with pytest.raises(WebhookError, match="Missing"):
        parse_stripe_event(BODY, None, SECRET)


def test_stripe_wrong_secret() -> None:
    with pytest.raises(WebhookError, match="Invalid signature"):
        parse_stripe_event(BODY, _stripe_signature(BODY, "whsec_other"), SECRET)


def test_stripe_unsigned_when_no_secret() -> None:
    assert parse_stripe_event(BODY, None, None)["id"] == "evt_1"


def test_non_object_json_rejected() -> None:
    with pytest.raises(WebhookError, match="Invalid payload"):
        parse_stripe_event(b"[1, 2]", None, None)
    with pytest.raises(WebhookError, match="Invalid payload"):
        parse_pagseguro_event(b"not json", None, None)


def test_pagseguro_hmac() -> None:
    sig = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
    assert parse_pagseguro_event(BODY, sig, SECRET)["type"] == "invoice.paid"
    with pytest.raises(WebhookError):
        parse_pagseguro_event(BODY, "0" * 64, SECRET)
    with pytest.raises(WebhookError):
        parse_pagseguro_event(BODY, None, SECRET)


def test_pagseguro_checkout_is_pending() -> None:
    ext = asyncio.run(
        PagSeguroGateway().create_subscription(
            organization_id=uuid4(), plan=plan_by_code("professional"), customer_ref=None
        )
    )
    assert ext.status == "pending"
    assert ext.external_id.startswith("ps_")
    assert ext.payment_url is not None
    assert asyncio.run(PagSeguroGateway().cancel_subscription(ext.external_id)) == "canceled"
