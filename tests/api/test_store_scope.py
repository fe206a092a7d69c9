"""Post-commit work on the per-request store."""

from __future__ import annotations

import asyncio

import pytest

from app.api import dependencies
from app.db import engine as db_engine
from app.repos.store import Store, in_memory_store


def _recorder(log: list[str], name: str):
    async def callback() -> None:
        log.append(name)

    return callback


@pytest.fixture
def request_store(store: Store, monkeypatch: pytest.MonkeyPatch) -> Store:
    monkeypatch.setattr(db_engine, "async_session_factory", None)
    monkeypatch.setattr(dependencies, "memory_store", store)
    return store


def test_callbacks_run_once_the_request_succeeds(request_store: Store) -> None:
    ran: list[str] = []

    async def request() -> None:
        scope = dependencies.get_store()
        unit = await scope.__anext__()
        unit.on_commit(_recorder(ran, "enqueue"))
        assert ran == []
        with pytest.raises(StopAsyncIteration):
            await scope.__anext__()

    asyncio.run(request())

    assert ran == ["enqueue"]
    # The shared in-memory store never holds another request's callbacks.
    assert request_store.post_commit == []


def test_callbacks_are_dropped_when_the_request_fails(request_store: Store) -> None:
    ran: list[str] = []

    async def request() -> None:
        scope = dependencies.get_store()
        unit = await scope.__anext__()
        unit.on_commit(_recorder(ran, "enqueue"))
        with pytest.raises(RuntimeError, match="handler failed"):
            await scope.athrow(RuntimeError("handler failed"))

    asyncio.run(request())

    assert ran == []


def test_failing_callback_does_not_stop_the_rest() -> None:
    unit = in_memory_store()
    ran: list[str] = []

    async def broken() -> None:
        raise ConnectionError("queue unavailable")

    unit.on_commit(broken)
    unit.on_commit(_recorder(ran, "second"))

    asyncio.run(unit.run_post_commit())

    assert ran == ["second"]
    assert unit.post_commit == []
