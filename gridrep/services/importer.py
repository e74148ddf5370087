"""Import a single subsession's race results into the local cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from sqlalchemy import delete
from sqlmodel import Session, select

from ..core import utcnow
from ..errors import ErrorKind, FetchFailed, GridRepError, ImportFailed, ScopeRequired
from ..models import Driver, RaceSession, SessionParticipant
from .iracing import IRacingClient
from .results import ExtractedResult, extract_result
from .tokens import get_valid_access_token
from .viewer import Viewer, require_viewer, resolve_viewer

logger = logging.getLogger(__name__)

RESULTS_PATH = "/data/results/get?subsession_id={session_id}&include_licenses=false"
HEADER_FIELDS = ("start_time", "series_name", "track_name", "split", "sof")


@dataclass(frozen=True)
class ImportResult:
    session_id: str
    participants_imported: int
    skipped: bool = False

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "subsessionId": self.session_id,
            "participantsImported": self.participants_imported,
            "skipped": self.skipped,
        }


def validate_session_id(session_id: str) -> str:
    session_id = (session_id or "").strip()
    if not session_id.isdigit():
        raise GridRepError("Invalid subsession id", kind=ErrorKind.BAD_REQUEST)
    return session_id


def is_session_cached(session: Session, session_id: str) -> bool:
    """A session counts as cached once it has at least one participant row."""

    row = session.exec(
        select(SessionParticipant.iracing_member_id)
        .where(SessionParticipant.iracing_session_id == session_id)
        .limit(1)
    ).first()
    return row is not None


def apply_import(
    session: Session, session_id: str, extracted: ExtractedResult, now: datetime
) -> None:
    """Stage the header merge, grid replacement and driver upserts. No commit."""

    race = session.get(RaceSession, session_id)
    if race is None:
        race = RaceSession(iracing_session_id=session_id)
    for name in HEADER_FIELDS:
        value = getattr(extracted.header, name)
        if value is not None:
            setattr(race, name, value)
    session.add(race)

    session.execute(
        delete(SessionParticipant).where(
            SessionParticipant.iracing_session_id == session_id
        )
    )

    for participant in extracted.participants:
        driver = session.get(Driver, participant.member_id)
        if driver is None:
            driver = Driver(
                iracing_member_id=participant.member_id,
                display_name=participant.display_name,
                last_seen_at=now,
            )
        else:
            driver.display_name = participant.display_name
            driver.last_seen_at = now
        session.add(driver)
        session.add(
            SessionParticipant(
                iracing_session_id=session_id,
                iracing_member_id=participant.member_id,
                finish_pos=participant.finish_pos,
                car_name=participant.car_name,
            )
        )


async def import_session(
    session: Session,
    session_id: str,
    *,
    client: IRacingClient,
    viewer: Optional[Viewer] = None,
    cookie: Optional[str] = None,
    access_token: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ImportResult:
    """Fetch, normalize and cache one subsession.

    Returns immediately when the session is already cached. ``viewer`` and
    ``access_token`` may be supplied by a caller importing many sessions;
    otherwise the viewer is resolved from ``cookie``.
    """

    session_id = validate_session_id(session_id)
    if is_session_cached(session, session_id):
        logger.debug("Session already cached", extra={"session_id": session_id})
        return ImportResult(session_id=session_id, participants_imported=0, skipped=True)

    if viewer is None:
        viewer = resolve_viewer(session, cookie)
    user = require_viewer(viewer)
    if access_token is None:
        access_token = await get_valid_access_token(session, user.id, client)

    path = RESULTS_PATH.format(session_id=quote(session_id, safe=""))
    try:
        payload = await client.fetch_data(path, access_token)
    except ScopeRequired:
        raise
    except GridRepError as exc:
        logger.warning(
            "Result fetch failed",
            extra={"session_id": session_id, "kind": exc.kind.value},
        )
        raise FetchFailed(f"Could not fetch results for {session_id}") from exc

    extracted = extract_result(payload)
    logger.info(
        "Import parsed",
        extra={
            "session_id": session_id,
            "participant_count": len(extracted.participants),
        },
    )

    try:
        apply_import(session, session_id, extracted, now or utcnow())
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.exception("Import write failed", extra={"session_id": session_id})
        raise ImportFailed(f"Could not store session {session_id}") from exc

    return ImportResult(
        session_id=session_id, participants_imported=len(extracted.participants)
    )


__all__ = [
    "ImportResult",
    "apply_import",
    "import_session",
    "is_session_cached",
    "validate_session_id",
]
