from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from auraflow.core.db import MongoModel
from auraflow.utils import now


class UserPreferences(BaseModel):
    """Per-user feature flags."""

    has_seen_welcome_guide: bool = False
    language: str = "en"
    auto_rollover_enabled: bool = True
    auto_rollover_days: int = 3
    ai_daily_insights: bool = True
    ai_weekly_insights: bool = True
    ai_url_extraction: bool = True


class User(MongoModel):
    """User domain model with credentials."""

    email: str
    name: str
    role: str = "user"
    password_hash: str  # bcrypt hash
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: datetime = Field(default_factory=now)


class Identity(BaseModel):
    """A user whose credentials have been verified, as seen by the session manager."""

    user_id: UUID
    role: str | None = None

    @classmethod
    def from_domain(cls, user: User) -> "Identity":
        return cls(user_id=user.id, role=user.role)


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str = Field(..., description="Display name")
    role: str = Field(..., description="Role")
    preferences: UserPreferences = Field(..., description="Feature flags")
    created_at: datetime = Field(..., description="Registration time")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            preferences=user.preferences,
            created_at=user.created_at,
        )
