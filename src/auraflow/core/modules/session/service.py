from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from auraflow.core.core import Service
from auraflow.core.modules.session.manager import SessionManager
from auraflow.core.modules.session.store import MongoCredentialStore
from auraflow.core.modules.session.sweeper import SessionSweeper
from auraflow.core.modules.token.codec import TokenCodec

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Wires the session manager and expiry sweeper to MongoDB and the app config."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("sessions")
        self._manager: SessionManager | None = None
        self._sweeper: SessionSweeper | None = None

    @property
    def manager(self) -> SessionManager:
        if self._manager is None:
            raise RuntimeError("Session service not started")
        return self._manager

    async def on_start(self) -> None:
        """Create indexes, build the session manager and start the sweeper."""
        config = self.core.config
        codec = TokenCodec(
            access_secret=config.access_token_secret,
            refresh_secret=config.refresh_token_secret,
            access_ttl=config.access_token_ttl,
            refresh_ttl=config.refresh_token_ttl,
            issuer=config.token_issuer,
            audience=config.token_audience,
            leeway=config.token_leeway,
        )
        store = MongoCredentialStore(self._collection, rounds=config.bcrypt_rounds)
        await store.ensure_indexes()
        self._manager = SessionManager(codec, store, identities=self.core.services.user)
        self._sweeper = SessionSweeper(store, interval_seconds=config.session_purge_interval_seconds)
        self._sweeper.start()
        logger.debug("session_service_started")

    async def on_stop(self) -> None:
        if self._sweeper is not None:
            await self._sweeper.stop()
