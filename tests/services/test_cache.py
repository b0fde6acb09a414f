"""Read-through analytics cache and per-organization invalidation."""

from __future__ import annotations

import asyncio
from uuid import uuid4

from agencyhub.services.cache import (
    InMemoryCacheService,
    analytics_key,
    invalidate_org,
    read_through,
)


def _loader(value: str | None, calls: list[int]):
    async def load() -> str | None:
        calls.append(1)
        return value

    return load


def test_miss_then_hit() -> None:
    cache = InMemoryCacheService()
    calls: list[int] = []
    key = analytics_key(uuid4(), "30d")

    assert asyncio.run(read_through(cache, key, 60, _loader("v1", calls))) == "v1"
    assert asyncio.run(read_through(cache, key, 60, _loader("v2", calls))) == "v1"
    assert len(calls) == 1


def test_none_result_is_not_stored() -> None:
    cache = InMemoryCacheService()
    calls: list[int] = []
    key = analytics_key(uuid4(), "7d")

    asyncio.run(read_through(cache, key, 60, _loader(None, calls)))
    asyncio.run(read_through(cache, key, 60, _loader(None, calls)))
    assert len(calls) == 2


def test_zero_ttl_disables_caching() -> None:
    cache = InMemoryCacheService()
    key = analytics_key(uuid4(), "7d")
    asyncio.run(read_through(cache, key, 0, _loader("x", [])))
    assert asyncio.run(cache.get(key)) is None


def test_invalidation_is_scoped_to_one_organization() -> None:
    cache = InMemoryCacheService()
    org_a, org_b = uuid4(), uuid4()
    for org in (org_a, org_b):
        for period in ("current_month", "90d"):
            asyncio.run(cache.set(analytics_key(org, period), "data", 60))

    asyncio.run(invalidate_org(cache, org_a))

    assert asyncio.run(cache.get(analytics_key(org_a, "current_month"))) is None
    assert asyncio.run(cache.get(analytics_key(org_a, "90d"))) is None
    assert asyncio.run(cache.get(analytics_key(org_b, "90d"))) == "data"


def test_delete_single_key() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("k", "v", 60))
    asyncio.run(cache.delete("k"))
    assert asyncio.run(cache.get("k")) is None
