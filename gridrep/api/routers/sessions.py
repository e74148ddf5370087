"""Read access to cached race sessions."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from ...core import get_session
from ...models import Driver, RaceSession, SessionParticipant

router = APIRouter(prefix="/api", tags=["sessions"])


@router.get("/sessions/{session_id}")
def get_cached_session(session_id: str, session: Session = Depends(get_session)):
    """Return a cached session header and its grid ordered by finish position."""

    race = session.get(RaceSession, session_id)
    if not race:
        raise HTTPException(404, "Session not found")

    rows = session.exec(
        select(SessionParticipant, Driver)
        .join(
            Driver,
            Driver.iracing_member_id == SessionParticipant.iracing_member_id,
            isouter=True,
        )
        .where(SessionParticipant.iracing_session_id == session_id)
        .order_by(
            SessionParticipant.finish_pos.is_(None),
            SessionParticipant.finish_pos,
            SessionParticipant.iracing_member_id,
        )
    ).all()

    participants: List[Dict[str, Any]] = []
    for participant, driver in rows:
        participants.append(
            {
                "id": participant.iracing_member_id,
                "name": driver.display_name if driver else None,
                "finishPos": participant.finish_pos,
                "carName": participant.car_name,
            }
        )

    return {
        "sessionId": race.iracing_session_id,
        "startTime": race.start_time,
        "seriesName": race.series_name,
        "trackName": race.track_name,
        "split": race.split,
        "sof": race.sof,
        "participants": participants,
    }


__all__ = ["router"]
