import asyncio
import functools
import secrets
from typing import Any
from uuid import UUID

import bcrypt
import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from auraflow.core.core import Service
from auraflow.core.modules.user.models import Identity, User
from auraflow.core.modules.user.validators import normalize_email, validate_name, validate_password
from auraflow.errors import ConflictError, InvalidCredentialsError, NotFoundError, PersistenceError

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


@functools.cache
def dummy_password_hash() -> str:
    """Hash checked for unknown emails so they cost the same bcrypt work as a wrong password."""
    return hash_password(secrets.token_urlsafe(16))


class UserService(Service):
    """Manages users with in-memory cache and verifies their credentials."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")
        self._users: dict[UUID, User] = {}

    def get_user(self, user_id: UUID) -> User:
        """Get user by ID from cache."""
        if user_id not in self._users:
            raise NotFoundError(f"User '{user_id}' not found")
        return self._users[user_id]

    def find_user_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        return next((u for u in self._users.values() if u.email == email), None)

    def has_email(self, email: str) -> bool:
        """Check if an account with this email exists."""
        return self.find_user_by_email(email) is not None

    async def get_identity(self, user_id: UUID) -> Identity | None:
        """Current identity of a user, None if the account no longer exists."""
        user = self._users.get(user_id)
        return Identity.from_domain(user) if user else None

    async def create_user(self, email: str, password: str, name: str | None = None) -> User:
        """Create user with hashed password."""
        email = normalize_email(email)
        if self.has_email(email):
            raise ConflictError("This email is already registered")

        validate_password(password)
        name = validate_name(name) if name else email.split("@")[0]
        password_hash = await asyncio.to_thread(hash_password, password)
        user = User(email=email, name=name, password_hash=password_hash)
        try:
            await self._collection.insert_one(user.to_mongo())
        except DuplicateKeyError as exc:
            raise ConflictError("This email is already registered") from exc
        except PyMongoError as exc:
            raise PersistenceError("Failed to create user") from exc
        logger.info("user_created", user_id=user.id)
        return await self.update_user_cache(user.id)

    async def verify_credentials(self, email: str, password: str) -> Identity:
        """Check email and password.

        Raises:
            InvalidCredentialsError: unknown email or wrong password, indistinguishably
        """
        user = self.find_user_by_email(email)
        if user is None:
            await asyncio.to_thread(check_password, password, dummy_password_hash())
            raise InvalidCredentialsError
        if not await asyncio.to_thread(check_password, password, user.password_hash):
            raise InvalidCredentialsError
        return Identity.from_domain(user)

    async def update_all_users_cache(self) -> None:
        """Reload all users cache from database."""
        users = await User.list_cursor(self._collection.find())
        self._users = {user.id: user for user in users}

    async def update_user_cache(self, user_id: UUID) -> User:
        """Reload a specific user cache from database."""
        user = User.from_mongo(await self._collection.find_one({"_id": user_id}))
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found")
        self._users[user_id] = user
        return user

    async def on_start(self) -> None:
        """Initialize indexes and cache."""
        await self._collection.create_index([("email", 1)], unique=True)
        await self.update_all_users_cache()
        await asyncio.to_thread(dummy_password_hash)
        logger.debug("user_service_started", user_count=len(self._users))
