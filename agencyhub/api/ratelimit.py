"""Per-route rate limiting as a FastAPI dependency.

Only routes that declare it are limited; ``/health`` and ``/metrics``
never are.  Buckets are keyed by the token's ``sub`` when a bearer token
is present and by client IP otherwise.
"""

from __future__ import annotations

import logging

import jwt as pyjwt
from fastapi import HTTPException, Request, status

from agencyhub.core.metrics import RATE_LIMIT_HITS
from agencyhub.db.redis import redis_pool
from agencyhub.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

if redis_pool is not None:
    _rate_limiter: RateLimiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()

LOGIN_LIMIT = RateLimitConfig(capacity=10, refill_rate=10 / 60)
AI_GENERATE_LIMIT = RateLimitConfig(capacity=5, refill_rate=5 / 60)


def require_rate_limit(config: RateLimitConfig = RateLimitConfig()):
    async def _check(request: Request) -> None:
        key = _build_key(request, request.url.path)
        result = await _rate_limiter.check(key, config)
        request.state.rate_limit_headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
        }
        if not result.allowed:
            RATE_LIMIT_HITS.labels(key_type=key.split(":", 1)[0]).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _build_key(request: Request, scope: str) -> str:
    # The signature is not checked here; a forged sub only gets its own
    # bucket.  require_user does the real verification.
    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        try:
            sub = pyjwt.decode(auth[7:], options={"verify_signature": False}).get("sub")
        except pyjwt.InvalidTokenError:
            sub = None
        if sub:
            return f"user:{sub}:{scope}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}:{scope}"
