"""Health and readiness endpoints.

/health is the liveness probe: it always answers 200 and reports each
backing service in ``checks``.  /ready is the readiness probe: 503 while
a *configured* store is unreachable, so the load balancer drains this
instance without restarting it.  Unconfigured stores are not failures;
the in-memory fallbacks serve instead.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from agencyhub.db import engine as db_engine
from agencyhub.db import redis as db_redis
from agencyhub.services.task_queue import WEBHOOK_QUEUE, task_queue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    if db_engine.engine is None:
        return "not_configured"
    try:
        await db_engine.ping_database()
    except Exception:
        logger.warning("Database ping failed", exc_info=True)
        return "degraded"
    return "ok"


async def _check_redis() -> str:
    if db_redis.redis_pool is None:
        return "not_configured"
    try:
        await db_redis.redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis ping failed", exc_info=True)
        return "degraded"
    return "ok"


async def _dependency_checks() -> dict[str, str]:
    return {"database": await _check_database(), "redis": await _check_redis()}


@router.get("/health")
async def health() -> dict:
    """Liveness + dependency status.  200 even when degraded."""
    checks = await _dependency_checks()
    overall = "degraded" if "degraded" in checks.values() else "ok"

    try:
        pending = await task_queue.queue_length(WEBHOOK_QUEUE)
    except Exception:
        logger.warning("Could not read webhook queue depth", exc_info=True)
        pending = None

    return {"status": overall, "checks": checks, "pending_webhooks": pending}


@router.get("/ready")
async def ready() -> Response:
    checks = await _dependency_checks()
    if "degraded" in checks.values():
        return Response(status_code=503)
    return Response(status_code=200)
