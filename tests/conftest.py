"""Shared pytest fixtures."""

from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import AutoReconnect, DuplicateKeyError

from auraflow.config import Config
from auraflow.core.modules.ratelimit.limiter import AttemptLimiter, MemoryAttemptLimiter, auth_rate_limits
from auraflow.core.modules.session.manager import SessionManager
from auraflow.core.modules.session.models import Session
from auraflow.core.modules.session.store import MemoryCredentialStore
from auraflow.core.modules.token.codec import TokenCodec
from auraflow.core.modules.token.models import TokenClaims, TokenPair
from auraflow.core.modules.user.models import Identity, User, UserView
from auraflow.core.modules.user.service import UserService
from auraflow.errors import AuthenticationError, ConflictError, InvalidCredentialsError, PersistenceError
from auraflow.web.server import create_fastapi_app

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


class FrozenClock:
    """Clock returning a fixed instant until advanced."""

    def __init__(self, at: datetime) -> None:
        self.at = at

    def __call__(self) -> datetime:
        return self.at

    def advance(self, **kwargs: float) -> None:
        self.at += timedelta(**kwargs)


class AuditRecorder:
    """Audit sink keeping events in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, kind: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((kind, dict(attributes)))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]


class InMemoryIdentities:
    """Users with plain-text passwords, enough to drive the session manager."""

    def __init__(self) -> None:
        self.users: dict[UUID, User] = {}
        self.passwords: dict[UUID, str] = {}

    def add(self, email: str, password: str, role: str = "user") -> User:
        if any(u.email == email for u in self.users.values()):
            raise ConflictError("This email is already registered")
        user = User(email=email, name=email.split("@")[0], role=role, password_hash="unused")
        self.users[user.id] = user
        self.passwords[user.id] = password
        return user

    def verify(self, email: str, password: str) -> Identity:
        user = next((u for u in self.users.values() if u.email == email), None)
        if user is None or self.passwords[user.id] != password:
            raise InvalidCredentialsError
        return Identity.from_domain(user)

    async def get_identity(self, user_id: UUID) -> Identity | None:
        user = self.users.get(user_id)
        return Identity.from_domain(user) if user else None


class FlakyCredentialStore(MemoryCredentialStore):
    """Memory store whose inserts, reads and selected deletes can be made to fail."""

    fail_inserts = False
    fail_reads = False
    fail_deletes: frozenset[UUID] = frozenset()

    async def _insert(self, session: Session) -> None:
        if self.fail_inserts:
            raise PersistenceError("Failed to create session")
        await super()._insert(session)

    async def _find_active(self, user_id: UUID, at: datetime) -> list[Session]:
        if self.fail_reads:
            raise PersistenceError("Failed to load sessions")
        return await super()._find_active(user_id, at)

    async def _delete(self, session_id: UUID) -> bool:
        if session_id in self.fail_deletes:
            raise PersistenceError("Failed to delete session")
        return await super()._delete(session_id)


class FakeApp:
    """App stand-in backed by in-memory users and sessions, used by the HTTP tests."""

    def __init__(self, manager: SessionManager, identities: InMemoryIdentities, limiter: AttemptLimiter) -> None:
        self.manager = manager
        self.identities = identities
        self.limiter = limiter

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        yield

    async def check_rate_limit(self, scope: str, client: str) -> None:
        await self.limiter.hit(scope, client)

    async def register(self, email: str, password: str, name: str | None = None) -> tuple[UserView, TokenPair]:
        user = self.identities.add(email, password)
        tokens = await self.manager.login(Identity.from_domain(user))
        return UserView.from_domain(user), tokens

    async def login(self, email: str, password: str) -> tuple[UserView, TokenPair]:
        identity = self.identities.verify(email, password)
        tokens = await self.manager.login(identity)
        return UserView.from_domain(self.identities.users[identity.user_id]), tokens

    def authenticate(self, access_token: str) -> TokenClaims:
        return self.manager.authenticate(access_token)

    async def refresh_access(self, refresh_token: str) -> TokenPair:
        return await self.manager.refresh_access(refresh_token)

    async def rotate_refresh(self, refresh_token: str) -> TokenPair:
        return await self.manager.rotate_refresh(refresh_token)

    async def logout(self, refresh_token: str | None) -> None:
        await self.manager.logout(refresh_token)

    async def get_current_user(self, claims: TokenClaims) -> UserView:
        user = self.identities.users.get(claims.user_id)
        if user is None:
            raise AuthenticationError("User no longer exists")
        return UserView.from_domain(user)


class FakeCollection:
    """In-memory stand-in for an async pymongo collection, enough for the user service."""

    def __init__(self) -> None:
        self.documents: dict[Any, dict[str, Any]] = {}
        self.unique_fields: list[str] = []
        self.fail_writes = False

    async def create_index(self, keys: list[tuple[str, int]], unique: bool = False, **kwargs: Any) -> str:
        if unique:
            self.unique_fields.append(keys[0][0])
        return "_".join(f"{field}_{direction}" for field, direction in keys)

    async def insert_one(self, document: dict[str, Any]) -> None:
        if self.fail_writes:
            raise AutoReconnect("connection closed")
        for field in self.unique_fields:
            if any(existing.get(field) == document.get(field) for existing in self.documents.values()):
                raise DuplicateKeyError(f"E11000 duplicate key error on {field}")
        self.documents[document["_id"]] = dict(document)

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        return next((dict(d) for d in self.documents.values() if self._matches(d, query)), None)

    async def _iterate(self, query: dict[str, Any]) -> AsyncGenerator[dict[str, Any]]:
        for document in list(self.documents.values()):
            if self._matches(document, query):
                yield dict(document)

    def find(self, query: dict[str, Any] | None = None) -> AsyncGenerator[dict[str, Any]]:
        return self._iterate(query or {})

    @staticmethod
    def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
        return all(document.get(key) == value for key, value in query.items())


class FakeDatabase:
    """Database stand-in handing out one FakeCollection per name."""

    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def codec(clock):
    return TokenCodec(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
        clock=clock,
    )


@pytest.fixture
def store(clock):
    # Minimum bcrypt cost keeps the suite fast
    return FlakyCredentialStore(rounds=4, clock=clock)


@pytest.fixture
def identities():
    return InMemoryIdentities()


@pytest.fixture
def audit():
    return AuditRecorder()


@pytest.fixture
def manager(codec, store, identities, audit):
    return SessionManager(codec, store, identities, audit=audit)


@pytest.fixture
def user(identities):
    return identities.add("user@example.com", "correct-pw")


@pytest.fixture
def identity(user):
    return Identity.from_domain(user)


@pytest.fixture
def config():
    return Config(
        database_url="mongodb://localhost:27017/auraflow_test",
        access_token_secret=ACCESS_SECRET,
        refresh_token_secret=REFRESH_SECRET,
        debug=True,
    )


@pytest.fixture
def other_user_id():
    return uuid4()


@pytest.fixture
def token_secrets():
    return ACCESS_SECRET, REFRESH_SECRET


@pytest.fixture
def limiter(config, clock):
    return MemoryAttemptLimiter(auth_rate_limits(config), clock=clock)


@pytest.fixture
def fake_app(manager, identities, limiter):
    return FakeApp(manager, identities, limiter)


@pytest.fixture
def client(fake_app, config):
    with TestClient(create_fastapi_app(fake_app, config)) as test_client:  # type: ignore[arg-type]
        yield test_client


@pytest.fixture
def database():
    return FakeDatabase()


@pytest.fixture
def user_service(database):
    return UserService(database)  # type: ignore[arg-type]
