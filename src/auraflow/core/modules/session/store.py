"""Persistence of hashed refresh tokens."""

import asyncio
import hashlib
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import bcrypt
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from auraflow.core.modules.session.models import Session
from auraflow.errors import PersistenceError
from auraflow.utils import now


def _prehash(raw_token: str) -> bytes:
    # bcrypt only reads 72 bytes; JWTs for one user share a longer prefix than that
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest().encode("ascii")


def hash_token(raw_token: str, rounds: int) -> str:
    return bcrypt.hashpw(_prehash(raw_token), bcrypt.gensalt(rounds)).decode("utf-8")


def token_matches(raw_token: str, token_hash: str) -> bool:
    return bcrypt.checkpw(_prehash(raw_token), token_hash.encode("utf-8"))


class CredentialStore(ABC):
    """Stores sessions keyed by user, each holding a salted hash of one refresh token.

    Hashes are salted, so lookups by raw token scan the user's active
    sessions and compare against each hash. Backends only implement the
    storage primitives below; deletes must be atomic delete-if-exists.
    """

    def __init__(self, rounds: int = 12, clock: Callable[[], datetime] = now) -> None:
        self.rounds = rounds
        self._clock = clock

    async def create_session(self, user_id: UUID, raw_refresh_token: str, ttl: timedelta) -> UUID:
        token_hash = await asyncio.to_thread(hash_token, raw_refresh_token, self.rounds)
        created_at = self._clock()
        session = Session(user_id=user_id, token_hash=token_hash, expires_at=created_at + ttl, created_at=created_at)
        await self._insert(session)
        return session.id

    async def find_active_sessions(self, user_id: UUID) -> list[Session]:
        """Sessions of the user whose expiry is still in the future."""
        return await self._find_active(user_id, self._clock())

    async def match_session(self, user_id: UUID, raw_refresh_token: str) -> Session | None:
        """Return the active session of this user whose hash matches the raw token, if any."""
        for session in await self.find_active_sessions(user_id):
            if await asyncio.to_thread(token_matches, raw_refresh_token, session.token_hash):
                return session
        return None

    async def delete_session(self, session_id: UUID) -> bool:
        """Delete a session. Returns False if it was already gone."""
        return await self._delete(session_id)

    async def purge_expired(self) -> int:
        """Delete all sessions with expires_at <= now and return how many were removed."""
        return await self._delete_expired(self._clock())

    @abstractmethod
    async def _insert(self, session: Session) -> None: ...

    @abstractmethod
    async def _find_active(self, user_id: UUID, at: datetime) -> list[Session]: ...

    @abstractmethod
    async def _delete(self, session_id: UUID) -> bool: ...

    @abstractmethod
    async def _delete_expired(self, at: datetime) -> int: ...


class MongoCredentialStore(CredentialStore):
    """Credential store backed by the `sessions` collection."""

    def __init__(
        self,
        collection: AsyncCollection[dict[str, Any]],
        rounds: int = 12,
        clock: Callable[[], datetime] = now,
    ) -> None:
        super().__init__(rounds, clock)
        self._collection = collection

    async def ensure_indexes(self) -> None:
        try:
            await self._collection.create_index([("user_id", 1), ("expires_at", 1)])
            await self._collection.create_index([("expires_at", 1)])
        except PyMongoError as exc:
            raise PersistenceError("Failed to create session indexes") from exc

    async def _insert(self, session: Session) -> None:
        try:
            await self._collection.insert_one(session.to_mongo())
        except PyMongoError as exc:
            raise PersistenceError("Failed to create session") from exc

    async def _find_active(self, user_id: UUID, at: datetime) -> list[Session]:
        try:
            return await Session.list_cursor(self._collection.find({"user_id": user_id, "expires_at": {"$gt": at}}))
        except PyMongoError as exc:
            raise PersistenceError("Failed to load sessions") from exc

    async def _delete(self, session_id: UUID) -> bool:
        try:
            result = await self._collection.delete_one({"_id": session_id})
        except PyMongoError as exc:
            raise PersistenceError("Failed to delete session") from exc
        return result.deleted_count == 1

    async def _delete_expired(self, at: datetime) -> int:
        try:
            result = await self._collection.delete_many({"expires_at": {"$lte": at}})
        except PyMongoError as exc:
            raise PersistenceError("Failed to purge expired sessions") from exc
        return result.deleted_count


class MemoryCredentialStore(CredentialStore):
    """In-process credential store. Each primitive runs without awaiting, so it is atomic on the event loop."""

    def __init__(self, rounds: int = 12, clock: Callable[[], datetime] = now) -> None:
        super().__init__(rounds, clock)
        self._sessions: dict[UUID, Session] = {}

    async def _insert(self, session: Session) -> None:
        self._sessions[session.id] = session

    async def _find_active(self, user_id: UUID, at: datetime) -> list[Session]:
        return [s for s in self._sessions.values() if s.user_id == user_id and s.is_active(at)]

    async def _delete(self, session_id: UUID) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def _delete_expired(self, at: datetime) -> int:
        expired = [s.id for s in self._sessions.values() if not s.is_active(at)]
        for session_id in expired:
            del self._sessions[session_id]
        return len(expired)

    def all_sessions(self) -> list[Session]:
        return list(self._sessions.values())
