from __future__ import annotations

import asyncio

import pytest

from agencyhub import worker
from agencyhub.models.webhook_event import EventStatus
from agencyhub.repos import store
from agencyhub.services import wiring
from agencyhub.services.task_queue import WEBHOOK_QUEUE, task_queue


def test_run_once_on_empty_queues() -> None:
    assert asyncio.run(worker.run_once()) == 0


def test_run_once_applies_ingested_event() -> None:
    record = asyncio.run(wiring.webhook_service.ingest("stripe", {"id": "evt_w1", "type": "ping"}))

    assert asyncio.run(worker.run_once()) == 1
    assert store.webhook_event_repo.get(record.id).status == EventStatus.PROCESSED
    assert asyncio.run(task_queue.queue_length(WEBHOOK_QUEUE)) == 0


def test_handler_failure_does_not_stop_the_loop(monkeypatch: pytest.MonkeyPatch) -> None:
    async def boom(payload: dict) -> None:
        raise RuntimeError("handler crashed")

    monkeypatch.setitem(worker.HANDLERS, WEBHOOK_QUEUE, boom)
    asyncio.run(task_queue.enqueue(WEBHOOK_QUEUE, {"event_id": "x"}))

    assert asyncio.run(worker.run_once()) == 1
    assert asyncio.run(worker.run_once()) == 0


def test_unknown_event_id_is_skipped() -> None:
    asyncio.run(task_queue.enqueue(WEBHOOK_QUEUE, {"event_id": "00000000-0000-4000-8000-000000000000"}))
    assert asyncio.run(worker.run_once()) == 1
