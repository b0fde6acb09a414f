"""Request id propagation and the per-request summary log line."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from agencyhub.middleware.request_context import (
    _RequestContextFilter,
    organization_id_var,
    request_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "req-abc-123"})
    assert resp.headers["x-request-id"] == "req-abc-123"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/api/clients")  # no token
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_carries_tenant(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    org_id = str(uuid.uuid4())
    with caplog.at_level(logging.INFO, logger="agencyhub.middleware.request_context"):
        client.get("/health", headers={"x-organization-id": org_id, "X-Request-ID": "r-1"})

    lines = [r for r in caplog.records if r.name == "agencyhub.middleware.request_context"]
    assert lines
    record = lines[-1]
    assert record.organization_id == org_id
    assert record.request_id == "r-1"
    assert record.status_code == 200


def test_filter_copies_context_vars_onto_records() -> None:
    token_r = request_id_var.set("rid-9")
    token_o = organization_id_var.set("org-9")
    try:
        record = logging.LogRecord("x", logging.INFO, "f.py", 1, "msg", (), None)
        assert _RequestContextFilter().filter(record) is True
        assert record.request_id == "rid-9"
        assert record.organization_id == "org-9"
    finally:
        request_id_var.reset(token_r)
        organization_id_var.reset(token_o)


def test_filter_keeps_explicit_organization_id() -> None:
    record = logging.LogRecord("x", logging.INFO, "f.py", 1, "msg", (), None)
    record.organization_id = "explicit"
    _RequestContextFilter().filter(record)
    assert record.organization_id == "explicit"
