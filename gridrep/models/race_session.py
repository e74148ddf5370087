"""Database models for cached race sessions and their grids."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field as ORMField, SQLModel


class RaceSession(SQLModel, table=True):
    """Header of an imported subsession."""

    __tablename__ = "sessions"

    iracing_session_id: str = ORMField(primary_key=True)
    start_time: Optional[str] = None
    series_name: Optional[str] = None
    track_name: Optional[str] = None
    split: Optional[int] = None
    sof: Optional[int] = None


class SessionParticipant(SQLModel, table=True):
    """One driver's finishing row in a cached session."""

    __tablename__ = "session_participants"

    iracing_session_id: str = ORMField(
        primary_key=True, foreign_key="sessions.iracing_session_id"
    )
    iracing_member_id: str = ORMField(primary_key=True, index=True)
    finish_pos: Optional[int] = None
    car_name: Optional[str] = None


__all__ = ["RaceSession", "SessionParticipant"]
