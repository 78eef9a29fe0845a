from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from auraflow.core.core import Service
from auraflow.core.modules.ratelimit.limiter import AttemptLimiter, MongoAttemptLimiter, auth_rate_limits

logger = structlog.get_logger(__name__)


class RateLimitService(Service):
    """Limits login and registration attempts per client address."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("auth_attempts")
        self._limiter: AttemptLimiter | None = None

    @property
    def limiter(self) -> AttemptLimiter:
        if self._limiter is None:
            raise RuntimeError("Rate limit service not started")
        return self._limiter

    async def on_start(self) -> None:
        """Create indexes and build the attempt limiter."""
        limiter = MongoAttemptLimiter(self._collection, auth_rate_limits(self.core.config))
        await limiter.ensure_indexes()
        self._limiter = limiter
        logger.debug("rate_limit_service_started", limits=list(limiter.limits))
