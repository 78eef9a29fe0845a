from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from auraflow.audit import log_event
from auraflow.config import Config
from auraflow.core.core import Core
from auraflow.core.modules.token.models import TokenClaims, TokenPair
from auraflow.core.modules.user.models import UserView
from auraflow.errors import AuthenticationError, InvalidCredentialsError, NotFoundError, RateLimitedError


class App:
    """Facade for all application operations, delegating to Core services."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def check_rate_limit(self, scope: str, client: str) -> None:
        """Count an attempt of a client address against a rate limit scope."""
        if not self._core.config.rate_limit_enabled:
            return
        try:
            await self._core.services.rate_limit.limiter.hit(scope, client)
        except RateLimitedError as exc:
            log_event("rate_limited", {"scope": scope, "client": client, "retry_after": exc.retry_after})
            raise

    async def register(self, email: str, password: str, name: str | None = None) -> tuple[UserView, TokenPair]:
        """Create an account and open its first session."""
        user = await self._core.services.user.create_user(email, password, name)
        log_event("user_registered", {"user_id": str(user.id)})
        identity = await self._core.services.user.get_identity(user.id)
        tokens = await self._core.services.session.manager.login(identity)
        return UserView.from_domain(user), tokens

    async def login(self, email: str, password: str) -> tuple[UserView, TokenPair]:
        """Verify credentials and open a session."""
        try:
            identity = await self._core.services.user.verify_credentials(email, password)
        except InvalidCredentialsError:
            log_event("login_failure", {"email": email})
            raise
        tokens = await self._core.services.session.manager.login(identity)
        return UserView.from_domain(self._core.services.user.get_user(identity.user_id)), tokens

    def authenticate(self, access_token: str) -> TokenClaims:
        """Verify an access token from the Authorization header or cookie."""
        return self._core.services.session.manager.authenticate(access_token)

    async def refresh_access(self, refresh_token: str) -> TokenPair:
        """Issue a new access token for a live refresh token."""
        return await self._core.services.session.manager.refresh_access(refresh_token)

    async def rotate_refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new access/refresh pair."""
        return await self._core.services.session.manager.rotate_refresh(refresh_token)

    async def logout(self, refresh_token: str | None) -> None:
        """Revoke the session behind the refresh token, if any."""
        await self._core.services.session.manager.logout(refresh_token)

    async def get_current_user(self, claims: TokenClaims) -> UserView:
        """Get current authenticated user profile."""
        try:
            user = self._core.services.user.get_user(claims.user_id)
        except NotFoundError as exc:
            raise AuthenticationError("User no longer exists") from exc
        return UserView.from_domain(user)
