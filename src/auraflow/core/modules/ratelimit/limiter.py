"""Sliding-window limits on authentication attempts."""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from auraflow.config import Config
from auraflow.errors import PersistenceError, RateLimitedError
from auraflow.utils import now

LOGIN_SCOPE = "login"
REGISTER_SCOPE = "register"


@dataclass(frozen=True)
class RateLimit:
    attempts: int
    window: timedelta


def auth_rate_limits(config: Config) -> dict[str, RateLimit]:
    return {
        LOGIN_SCOPE: RateLimit(config.login_attempts_limit, timedelta(minutes=config.login_attempts_window_minutes)),
        REGISTER_SCOPE: RateLimit(
            config.register_attempts_limit, timedelta(minutes=config.register_attempts_window_minutes)
        ),
    }


class AttemptLimiter(ABC):
    """Counts attempts per scope and client address in a sliding window.

    Every attempt counts, successful or not. Once a client has used up a
    scope's attempts, further ones are rejected without being recorded
    until the oldest attempt leaves the window.
    """

    def __init__(self, limits: Mapping[str, RateLimit], clock: Callable[[], datetime] = now) -> None:
        self.limits = dict(limits)
        self._clock = clock

    async def hit(self, scope: str, client: str) -> None:
        """Record an attempt.

        Raises:
            RateLimitedError: the client is over the limit; carries seconds until the next attempt is allowed
        """
        limit = self.limits[scope]
        at = self._clock()
        attempts = await self._recent(scope, client, at - limit.window)
        if len(attempts) >= limit.attempts:
            retry_after = min(attempts) + limit.window - at
            raise RateLimitedError(max(1, math.ceil(retry_after.total_seconds())))
        await self._record(scope, client, at, at + limit.window)

    @abstractmethod
    async def _recent(self, scope: str, client: str, since: datetime) -> list[datetime]: ...

    @abstractmethod
    async def _record(self, scope: str, client: str, at: datetime, expires_at: datetime) -> None: ...


class MongoAttemptLimiter(AttemptLimiter):
    """Attempt limiter backed by the `auth_attempts` collection, shared by all app instances."""

    def __init__(
        self,
        collection: AsyncCollection[dict[str, Any]],
        limits: Mapping[str, RateLimit],
        clock: Callable[[], datetime] = now,
    ) -> None:
        super().__init__(limits, clock)
        self._collection = collection

    async def ensure_indexes(self) -> None:
        try:
            await self._collection.create_index([("scope", 1), ("client", 1), ("at", 1)])
            # MongoDB drops attempts on its own once they leave every window
            await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)
        except PyMongoError as exc:
            raise PersistenceError("Failed to create attempt indexes") from exc

    async def _recent(self, scope: str, client: str, since: datetime) -> list[datetime]:
        try:
            cursor = self._collection.find({"scope": scope, "client": client, "at": {"$gt": since}}, {"at": 1})
            return [document["at"] async for document in cursor]
        except PyMongoError as exc:
            raise PersistenceError("Failed to load attempts") from exc

    async def _record(self, scope: str, client: str, at: datetime, expires_at: datetime) -> None:
        try:
            await self._collection.insert_one({"scope": scope, "client": client, "at": at, "expires_at": expires_at})
        except PyMongoError as exc:
            raise PersistenceError("Failed to record attempt") from exc


class MemoryAttemptLimiter(AttemptLimiter):
    """In-process attempt limiter, scoped to one app instance."""

    def __init__(self, limits: Mapping[str, RateLimit], clock: Callable[[], datetime] = now) -> None:
        super().__init__(limits, clock)
        self._attempts: dict[tuple[str, str], list[datetime]] = {}

    async def _recent(self, scope: str, client: str, since: datetime) -> list[datetime]:
        attempts = [at for at in self._attempts.get((scope, client), []) if at > since]
        self._attempts[(scope, client)] = attempts
        return list(attempts)

    async def _record(self, scope: str, client: str, at: datetime, expires_at: datetime) -> None:
        self._attempts.setdefault((scope, client), []).append(at)
