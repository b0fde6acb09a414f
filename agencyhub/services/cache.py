"""Read-through cache for derived figures (usage analytics).

Entries expire after their TTL and are also dropped explicitly when the
underlying data changes (plan change, client admitted, strategy
generated) via ``invalidate_org``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable
from uuid import UUID

from agencyhub.core.metrics import CACHE_OPERATIONS
from agencyhub.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def delete_pattern(self, pattern: str) -> None: ...


class InMemoryCacheService:
    """Dict-backed cache.  TTLs are accepted but not enforced."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


class RedisCacheService:
    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN in batches; KEYS would block the server
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break


async def read_through(
    cache: CacheService,
    key: str,
    ttl_seconds: int,
    load: Callable[[], Awaitable[str | None]],
) -> str | None:
    """Return the cached value for ``key`` or compute, store and return it.

    ``load`` returning None means "do not cache" (used for degraded
    placeholder results that should not stick around for a whole TTL).
    """
    cached = await cache.get(key)
    if cached is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return cached

    CACHE_OPERATIONS.labels(operation="miss").inc()
    value = await load()
    if value is not None and ttl_seconds > 0:
        await cache.set(key, value, ttl_seconds)
    return value


def analytics_key(org_id: UUID, period: str) -> str:
    return f"analytics:{org_id}:{period}"


async def invalidate_org(cache: CacheService, org_id: UUID) -> None:
    await cache.delete_pattern(f"analytics:{org_id}:*")
    logger.debug("Invalidated analytics cache for organization=%s", org_id)


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
