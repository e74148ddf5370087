"""Database model for browser sessions."""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class AuthSession(SQLModel, table=True):
    """Opaque cookie-backed login session."""

    __tablename__ = "auth_sessions"

    id: str = ORMField(default_factory=new_session_id, primary_key=True)
    user_id: uuid.UUID = ORMField(foreign_key="users.id", index=True)
    created_at: datetime = ORMField(default_factory=utcnow)
    expires_at: datetime
    last_seen_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["AuthSession", "new_session_id"]
