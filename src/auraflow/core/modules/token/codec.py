"""Signed token encoding and verification (HS256 JWT)."""

import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
from pydantic import ValidationError as PydanticValidationError

from auraflow.core.modules.token.models import TokenClaims, TokenType
from auraflow.errors import InvalidSignatureError, TokenExpiredError, WrongTokenTypeError
from auraflow.utils import now

ALGORITHM = "HS256"

# exp/iat are checked against the codec clock, not by PyJWT, which truncates NumericDate to whole seconds
_DECODE_OPTIONS: dict[str, Any] = {
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "require": ["sub", "type", "iat", "exp", "iss", "aud"],
}


def _timestamp(moment: datetime) -> float:
    """NumericDate with millisecond precision."""
    return round(moment.timestamp(), 3)


class TokenCodec:
    """Mints and verifies access and refresh tokens.

    Each token type is signed with its own secret, so a leaked refresh secret
    cannot be used to forge access tokens and vice versa.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        issuer: str = "aura-flow",
        audience: str = "aura-flow-client",
        leeway: timedelta = timedelta(0),
        clock: Callable[[], datetime] = now,
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")
        self._secrets = {TokenType.ACCESS: access_secret, TokenType.REFRESH: refresh_secret}
        self._ttls = {TokenType.ACCESS: access_ttl, TokenType.REFRESH: refresh_ttl}
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway
        self._clock = clock

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[TokenType.ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[TokenType.REFRESH]

    def mint_access(self, user_id: UUID, role: str | None = None) -> str:
        return self._encode(TokenType.ACCESS, user_id, {"role": role})

    def mint_refresh(self, user_id: UUID) -> str:
        # Random version keeps two refresh tokens for one user distinct, even within the same millisecond
        return self._encode(TokenType.REFRESH, user_id, {"version": secrets.token_urlsafe(16)})

    def verify(self, token: str, expected_type: TokenType) -> TokenClaims:
        """Verify signature, issuer, audience, type and expiry.

        Raises:
            InvalidSignatureError: token is malformed, tampered with, or foreign
            TokenExpiredError: signature is fine but exp has passed
            WrongTokenTypeError: token is of another type than expected
        """
        try:
            payload = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                options=_DECODE_OPTIONS,
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidSignatureError(str(exc)) from exc

        try:
            claims = TokenClaims.model_validate(payload)
        except PydanticValidationError as exc:
            raise InvalidSignatureError("Malformed token claims") from exc

        if claims.type != expected_type:
            raise WrongTokenTypeError(f"Expected {expected_type} token, got {claims.type}")

        current = self._clock().timestamp()
        if claims.expires_at <= current - self.leeway.total_seconds():
            raise TokenExpiredError("Token has expired")

        return claims

    def _encode(self, token_type: TokenType, user_id: UUID, extra: dict[str, Any]) -> str:
        issued_at = self._clock()
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "type": token_type.value,
            "iat": _timestamp(issued_at),
            "exp": _timestamp(issued_at + self._ttls[token_type]),
            "iss": self.issuer,
            "aud": self.audience,
        }
        payload.update({key: value for key, value in extra.items() if value is not None})
        return jwt.encode(payload, self._secrets[token_type], algorithm=ALGORITHM)
