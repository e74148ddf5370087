"""Database model for the driver identity cache."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class Driver(SQLModel, table=True):
    """Any member seen in an imported session, verified or not."""

    __tablename__ = "drivers"

    iracing_member_id: str = ORMField(primary_key=True)
    display_name: str
    last_seen_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["Driver"]
