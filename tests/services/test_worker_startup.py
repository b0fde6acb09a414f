from __future__ import annotations

import pytest

from agencyhub import worker
from agencyhub.db import redis as db_redis
from agencyhub.repos import store


def test_in_memory_setup_reports_both_missing() -> None:
    # The test environment has neither DATABASE_URL nor REDIS_URL
    assert worker.missing_shared_state() == ["DATABASE_URL", "REDIS_URL"]


def test_shared_database_and_queue_satisfy_the_worker(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(store, "PERSISTENT", True)
    monkeypatch.setattr(db_redis, "redis_pool", object())
    assert worker.missing_shared_state() == []


def test_standalone_worker_refuses_in_memory_repos(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(worker, "setup_logging", lambda *a, **kw: None)
    monkeypatch.setattr(db_redis, "redis_pool", object())
    started = []
    monkeypatch.setattr(worker.asyncio, "run", lambda coro: started.append(coro))

    with pytest.raises(SystemExit) as exc:
        worker.main()

    assert exc.value.code == 1
    assert started == []
