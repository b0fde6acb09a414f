"""Background task queue on Redis lists.

The API pushes with LPUSH and the worker pops with BRPOP, giving FIFO
order per queue.  Delivery is at-most-once: a task popped by a worker
that then dies is gone.  Billing webhooks tolerate this because the
raw event is already in the outbox and ``replay_pending`` picks up
anything left in ``received`` state on the next worker start.
"""

from __future__ import annotations

import json
import uuid
from collections import deque
from dataclasses import asdict, dataclass
from typing import Protocol, runtime_checkable

from agencyhub.db.redis import redis_pool

WEBHOOK_QUEUE = "billing_webhooks"


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    queue: str
    payload: dict


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    """Process-local FIFO.  Only usable when the worker runs in-process."""

    def __init__(self) -> None:
        self._queues: dict[str, deque[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = _new_task(queue, payload)
        self._queues.setdefault(queue, deque()).append(task)
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        pending = self._queues.get(queue)
        if not pending:
            return None
        return pending.popleft()

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, ()))


class RedisTaskQueue:
    def __init__(self, redis_client, *, prefix: str = "agencyhub:tasks:") -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, queue: str) -> str:
        return self._prefix + queue

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = _new_task(queue, payload)
        await self._redis.lpush(self._key(queue), json.dumps(asdict(task)))
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        popped = await self._redis.brpop(self._key(queue), timeout=timeout)
        if popped is None:
            return None
        return Task(**json.loads(popped[1]))

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(self._key(queue))


def _new_task(queue: str, payload: dict) -> Task:
    return Task(id=uuid.uuid4().hex, queue=queue, payload=payload)


if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
