"""Database model for verified users."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class User(SQLModel, table=True):
    """Account proven through the simulator's OAuth identity."""

    __tablename__ = "users"

    id: uuid.UUID = ORMField(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    iracing_member_id: str = ORMField(index=True, unique=True)
    display_name: str
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["User"]
