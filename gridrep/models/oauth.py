"""Database model for provider OAuth tokens."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class OAuthToken(SQLModel, table=True):
    """Persists the current provider credentials, one row per user."""

    __tablename__ = "oauth_tokens"

    user_id: uuid.UUID = ORMField(primary_key=True, foreign_key="users.id")
    access_token: str
    refresh_token: Optional[str] = None
    access_expires_at: datetime
    scope: Optional[str] = None
    updated_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["OAuthToken"]
