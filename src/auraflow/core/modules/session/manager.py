"""Login, refresh, rotation and logout of token-based sessions.

A session moves ACTIVE -> ROTATED -> DELETED when its refresh token is
rotated or revoked, or ACTIVE -> EXPIRED -> PURGED when it outlives its
expiry and the sweeper removes it. Session rows are never updated.
"""

from typing import Protocol
from uuid import UUID

import structlog

from auraflow.audit import AuditSink, log_event
from auraflow.core.modules.session.store import CredentialStore
from auraflow.core.modules.token.codec import TokenCodec
from auraflow.core.modules.token.models import TokenClaims, TokenPair, TokenType
from auraflow.core.modules.user.models import Identity
from auraflow.errors import (
    AuthenticationError,
    InvalidRefreshTokenError,
    PersistenceError,
    SessionNotFoundError,
    TokenError,
)

logger = structlog.get_logger(__name__)


class IdentityProvider(Protocol):
    async def get_identity(self, user_id: UUID) -> Identity | None: ...


class SessionManager:
    """Issues token pairs and tracks refresh tokens through the credential store."""

    def __init__(
        self,
        codec: TokenCodec,
        store: CredentialStore,
        identities: IdentityProvider,
        audit: AuditSink = log_event,
    ) -> None:
        self.codec = codec
        self.store = store
        self._identities = identities
        self._audit = audit

    async def login(self, identity: Identity | None) -> TokenPair:
        """Open a new session for an identity whose credentials the caller has already verified."""
        if identity is None:
            raise AuthenticationError
        access_token = self.codec.mint_access(identity.user_id, identity.role)
        refresh_token = self.codec.mint_refresh(identity.user_id)
        session_id = await self.store.create_session(identity.user_id, refresh_token, self.codec.refresh_ttl)
        self._audit("login_success", {"user_id": str(identity.user_id), "session_id": str(session_id)})
        return self._pair(access_token, refresh_token)

    async def refresh_access(self, raw_refresh_token: str) -> TokenPair:
        """Mint a new access token. The refresh token and its session stay unchanged."""
        claims = self._verify_refresh(raw_refresh_token)
        session_id = await self._require_session(claims, raw_refresh_token)
        identity = await self._require_identity(claims.user_id)
        access_token = self.codec.mint_access(identity.user_id, identity.role)
        self._audit("access_refreshed", {"user_id": str(claims.user_id), "session_id": str(session_id)})
        return self._pair(access_token)

    async def rotate_refresh(self, raw_refresh_token: str) -> TokenPair:
        """Replace the refresh token and its session with new ones.

        The new session is persisted before the old one is deleted, so a
        storage failure never leaves the user without a session, and a failed
        delete of the old session discards the new one. When two
        rotations race on the same token, only the one whose delete removes
        the old row succeeds; the other rolls back its new session.
        """
        claims = self._verify_refresh(raw_refresh_token)
        old_session_id = await self._require_session(claims, raw_refresh_token)
        identity = await self._require_identity(claims.user_id)

        new_refresh_token = self.codec.mint_refresh(identity.user_id)
        new_session_id = await self.store.create_session(identity.user_id, new_refresh_token, self.codec.refresh_ttl)

        try:
            removed = await self.store.delete_session(old_session_id)
        except PersistenceError:
            await self._discard_session(new_session_id)
            raise
        if not removed:
            await self._discard_session(new_session_id)
            self._audit(
                "token_invalid",
                {"user_id": str(claims.user_id), "reason": "rotation_lost", "session_id": str(old_session_id)},
            )
            raise SessionNotFoundError

        access_token = self.codec.mint_access(identity.user_id, identity.role)
        self._audit(
            "session_rotated",
            {
                "user_id": str(claims.user_id),
                "old_session_id": str(old_session_id),
                "new_session_id": str(new_session_id),
            },
        )
        return self._pair(access_token, new_refresh_token)

    async def logout(self, raw_refresh_token: str | None) -> None:
        """Revoke the session behind a refresh token. Best effort and idempotent."""
        user_id: UUID | None = None
        revoked = False
        if raw_refresh_token:
            try:
                claims = self.codec.verify(raw_refresh_token, TokenType.REFRESH)
                user_id = claims.user_id
                session = await self.store.match_session(claims.user_id, raw_refresh_token)
                if session is not None:
                    revoked = await self.store.delete_session(session.id)
            except TokenError as exc:
                logger.debug("logout_token_ignored", reason=type(exc).__name__)
            except PersistenceError:
                logger.warning("logout_session_delete_failed", user_id=user_id, exc_info=True)
        self._audit("logout", {"user_id": str(user_id) if user_id else None, "revoked": revoked})

    def authenticate(self, access_token: str) -> TokenClaims:
        """Verify an access token presented by the client."""
        try:
            return self.codec.verify(access_token, TokenType.ACCESS)
        except TokenError as exc:
            self._audit("token_invalid", {"token_type": TokenType.ACCESS.value, "reason": type(exc).__name__})
            raise AuthenticationError("Invalid or expired access token") from exc

    def _verify_refresh(self, raw_refresh_token: str) -> TokenClaims:
        try:
            return self.codec.verify(raw_refresh_token, TokenType.REFRESH)
        except TokenError as exc:
            self._audit("token_invalid", {"token_type": TokenType.REFRESH.value, "reason": type(exc).__name__})
            raise InvalidRefreshTokenError from exc

    async def _require_session(self, claims: TokenClaims, raw_refresh_token: str) -> UUID:
        session = await self.store.match_session(claims.user_id, raw_refresh_token)
        if session is None:
            self._audit("token_invalid", {"user_id": str(claims.user_id), "reason": "session_not_found"})
            raise SessionNotFoundError
        return session.id

    async def _require_identity(self, user_id: UUID) -> Identity:
        identity = await self._identities.get_identity(user_id)
        if identity is None:
            self._audit("token_invalid", {"user_id": str(user_id), "reason": "user_not_found"})
            raise AuthenticationError("User no longer exists")
        return identity

    async def _discard_session(self, session_id: UUID) -> None:
        # The raw token of this session was never handed out; the sweeper catches what is left
        try:
            await self.store.delete_session(session_id)
        except PersistenceError:
            logger.warning("session_discard_failed", session_id=session_id, exc_info=True)

    def _pair(self, access_token: str, refresh_token: str | None = None) -> TokenPair:
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.codec.access_ttl.total_seconds()),
        )
