"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behaviour import and update them.  Counters only go up, so tests
assert on deltas.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP (MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Entitlements and billing
# ---------------------------------------------------------------------------

ENTITLEMENT_DENIALS = Counter(
    "entitlement_denials_total",
    "Requests rejected by a plan limit or feature gate",
    ["kind"],  # users|clients|feature
)

WEBHOOK_EVENTS = Counter(
    "webhook_events_total",
    "Payment processor webhook events by outcome",
    ["provider", "result"],  # result: received|duplicate|rejected|processed|failed
)

AI_GENERATIONS = Counter(
    "ai_generations_total",
    "AI strategy generation attempts by outcome",
    ["result"],  # ok|error
)

# ---------------------------------------------------------------------------
# Infrastructure helpers
# ---------------------------------------------------------------------------

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # user|ip
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
