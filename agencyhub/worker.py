"""Background worker process.

RUN:  python -m agencyhub.worker

Applies queued payment webhooks (see ``agencyhub.services.webhooks``).
A separate worker only sees what the API stored when both DATABASE_URL
(shared outbox) and REDIS_URL (shared queue) are set; it refuses to start
otherwise.  In that case ``agencyhub.main`` runs the same loop as a task
inside the API process instead.

The loop polls every registered queue round-robin, dispatches one task at
a time and logs the outcome.  On start it replays events stored but never
applied, which covers tasks lost with a crashed worker or a flushed queue.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any
from uuid import UUID

from agencyhub.core.config import SETTINGS
from agencyhub.core.logging import setup_logging
from agencyhub.core.metrics import QUEUE_DEPTH
from agencyhub.db import redis as db_redis
from agencyhub.middleware.request_context import install_log_filter
from agencyhub.repos import store
from agencyhub.services import wiring
from agencyhub.services.task_queue import WEBHOOK_QUEUE, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("agencyhub.worker")

IDLE_SLEEP_SECONDS = 0.5

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(WEBHOOK_QUEUE)
async def handle_billing_webhook(payload: dict) -> None:
    status = await wiring.webhook_service.process(UUID(payload["event_id"]))
    logger.info("Webhook event id=%s -> %s", payload["event_id"], status)


async def run_once() -> int:
    """Drain at most one task per queue.  Returns how many ran."""
    handled = 0
    for queue_name, handler in HANDLERS.items():
        task = await task_queue.dequeue(queue_name, timeout=1)
        if task is None:
            continue
        handled += 1
        try:
            await handler(task.payload)
        except Exception:
            # The stored event stays received/failed; replay picks it up
            logger.exception("Task %s on [%s] failed", task.id, queue_name)
        QUEUE_DEPTH.labels(queue_name=queue_name).set(
            await task_queue.queue_length(queue_name)
        )
    return handled


async def run_worker() -> None:
    """Poll all registered queues until cancelled."""
    logger.info("Worker started, listening on queues: %s", list(HANDLERS))
    await wiring.webhook_service.replay_pending()

    while True:
        if await run_once() == 0:
            await asyncio.sleep(IDLE_SLEEP_SECONDS)


def missing_shared_state() -> list[str]:
    """Settings a worker in its own process needs to see the API's events."""
    missing = []
    if not store.PERSISTENT:
        missing.append("DATABASE_URL")
    if db_redis.redis_pool is None:
        missing.append("REDIS_URL")
    return missing


def main() -> None:
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    install_log_filter()
    missing = missing_shared_state()
    if missing:
        logger.error(
            "Refusing to start: %s not set, this process would not see events "
            "stored by the API (the API applies them in-process instead)",
            " and ".join(missing),
        )
        raise SystemExit(1)
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
