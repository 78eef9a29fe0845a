"""Token claim models."""

from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field


class TokenType(StrEnum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenClaims(BaseModel):
    """Verified claims of an access or refresh token."""

    user_id: UUID = Field(alias="sub")
    type: TokenType
    role: str | None = None  # Access tokens only
    version: str | None = None  # Refresh tokens only, uniqueness nonce
    issued_at: float = Field(alias="iat")
    expires_at: float = Field(alias="exp")
    issuer: str = Field(alias="iss")
    audience: str = Field(alias="aud")

    model_config = {"populate_by_name": True}

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, UTC)


class TokenPair(BaseModel):
    """Tokens handed to the client. `refresh_token` is None when only the access token was re-minted."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")
