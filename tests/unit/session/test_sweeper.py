"""Tests for the background session sweeper."""

import asyncio
from datetime import timedelta
from uuid import uuid4

from auraflow.core.modules.session.sweeper import SessionSweeper
from auraflow.errors import PersistenceError


class CountingStore:
    def __init__(self, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail

    async def purge_expired(self) -> int:
        self.calls += 1
        if self.fail:
            raise PersistenceError("Failed to purge expired sessions")
        return 0


async def test_run_once_purges_expired_sessions(store, clock, audit):
    """Test that one sweep purges expired sessions and audits the count."""
    user_id = uuid4()
    await store.create_session(user_id, "old", timedelta(hours=1))
    await store.create_session(user_id, "new", timedelta(days=1))
    clock.advance(hours=2)
    sweeper = SessionSweeper(store, audit=audit)

    assert await sweeper.run_once() == 1
    assert len(store.all_sessions()) == 1
    assert audit.events == [("sessions_purged", {"count": 1})]


async def test_run_once_swallows_storage_errors():
    """Test that a failing purge is logged and reports zero."""
    store = CountingStore(fail=True)
    sweeper = SessionSweeper(store)  # type: ignore[arg-type]

    assert await sweeper.run_once() == 0
    assert store.calls == 1


async def test_keeps_running_after_failures():
    """Test that the loop survives repeated purge failures."""
    store = CountingStore(fail=True)
    sweeper = SessionSweeper(store, interval_seconds=0.01)  # type: ignore[arg-type]

    sweeper.start()
    await asyncio.sleep(0.1)
    assert sweeper.running
    await sweeper.stop()

    assert store.calls >= 2
    assert not sweeper.running


async def test_start_is_idempotent_and_stop_is_safe():
    """Test that start twice runs one task and stop cancels it."""
    store = CountingStore()
    sweeper = SessionSweeper(store, interval_seconds=60)  # type: ignore[arg-type]

    await sweeper.stop()
    sweeper.start()
    sweeper.start()
    assert sweeper.running
    await sweeper.stop()

    assert store.calls == 0
