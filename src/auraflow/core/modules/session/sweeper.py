"""Background purge of expired sessions."""

import asyncio
import contextlib

import structlog

from auraflow.audit import AuditSink, log_event
from auraflow.core.modules.session.store import CredentialStore

logger = structlog.get_logger(__name__)


class SessionSweeper:
    """Periodically deletes sessions past their expiry.

    Failures are logged and retried on the next tick; they never reach request handlers.
    """

    def __init__(self, store: CredentialStore, interval_seconds: float = 3600, audit: AuditSink = log_event) -> None:
        self._store = store
        self.interval_seconds = interval_seconds
        self._audit = audit
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-sweeper")
        logger.debug("session_sweeper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("session_sweeper_stopped")

    async def run_once(self) -> int:
        """Purge expired sessions once. Returns the number deleted, 0 on failure."""
        try:
            deleted = await self._store.purge_expired()
        except Exception:
            logger.exception("session_purge_failed")
            return 0
        logger.info("sessions_purged", count=deleted)
        if deleted:
            self._audit("sessions_purged", {"count": deleted})
        return deleted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
