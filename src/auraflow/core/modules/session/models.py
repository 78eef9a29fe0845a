"""Session management models."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from auraflow.core.db import MongoModel
from auraflow.utils import now


class Session(MongoModel):
    """Server-side record binding a user to one refresh token.

    Only a one-way hash of the refresh token is stored. Records are never
    updated: rotation deletes the old record and creates a new one.
    Indexed on user_id and expires_at.
    """

    user_id: UUID
    token_hash: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=now)

    def is_active(self, at: datetime) -> bool:
        return at < self.expires_at
