"""Prometheus instrumentation.

Counters live in the global registry and never reset, so every test
asserts on the delta around the action.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import auth_headers, create_test_client, create_test_org, create_test_user


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    assert _get_sample("http_requests_total", labels) - before >= 1


def test_endpoint_label_uses_route_template(client: TestClient) -> None:
    org = create_test_org("labels", plan="professional")
    owner = create_test_user(org)
    c = create_test_client(org)
    labels = {"method": "GET", "endpoint": "/api/clients/{client_id}", "status_code": "200"}

    before = _get_sample("http_requests_total", labels)
    client.get(f"/api/clients/{c.id}", headers=auth_headers(owner))
    assert _get_sample("http_requests_total", labels) - before == 1


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/path")
    client.get("/another/missing/path")
    assert _get_sample("http_requests_total", labels) - before == 2


def test_entitlement_denial_counted(client: TestClient) -> None:
    org = create_test_org("denied", plan="starter")
    owner = create_test_user(org)
    before = _get_sample("entitlement_denials_total", {"kind": "feature"})
    client.get("/api/integrations", headers=auth_headers(owner))
    assert _get_sample("entitlement_denials_total", {"kind": "feature"}) - before == 1


def test_metrics_endpoint_not_self_counted(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
