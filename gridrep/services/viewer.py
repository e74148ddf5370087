"""Resolve the session cookie to a verified viewer."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..core import SESSION_COOKIE, as_utc, get_session, utcnow
from ..errors import NotVerified
from ..models import AuthSession, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerUser:
    id: uuid.UUID
    iracing_member_id: str
    name: str


@dataclass(frozen=True)
class Viewer:
    verified: bool
    user: Optional[ViewerUser] = None

    def to_dict(self) -> dict:
        if not self.verified or self.user is None:
            return {"verified": False}
        return {
            "verified": True,
            "user": {
                "id": str(self.user.id),
                "iracingId": self.user.iracing_member_id,
                "name": self.user.name,
            },
        }


ANONYMOUS = Viewer(verified=False)


def resolve_viewer(
    session: Session, cookie_value: Optional[str], *, now: Optional[datetime] = None
) -> Viewer:
    """Look up the auth session behind ``cookie_value``.

    Expired rows are deleted on sight. A hit touches ``last_seen_at``; a failed
    touch is logged and does not fail the lookup.
    """

    if not cookie_value:
        return ANONYMOUS

    auth_session = session.get(AuthSession, cookie_value)
    if auth_session is None:
        return ANONYMOUS

    now = now or utcnow()
    if as_utc(auth_session.expires_at) <= now:
        user_id = auth_session.user_id
        session.delete(auth_session)
        session.commit()
        logger.info("Expired auth session removed", extra={"user_id": str(user_id)})
        return ANONYMOUS

    user = session.get(User, auth_session.user_id)
    if user is None:
        return ANONYMOUS

    viewer = Viewer(
        verified=True,
        user=ViewerUser(
            id=user.id,
            iracing_member_id=user.iracing_member_id,
            name=user.display_name,
        ),
    )

    try:
        auth_session.last_seen_at = now
        session.add(auth_session)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.warning("Could not update last_seen_at", exc_info=True)

    return viewer


def require_viewer(viewer: Viewer) -> ViewerUser:
    """Return the verified user or raise :class:`NotVerified`."""

    if not viewer.verified or viewer.user is None:
        raise NotVerified()
    return viewer.user


def end_session(session: Session, cookie_value: Optional[str]) -> None:
    """Delete the auth session behind ``cookie_value`` if it exists."""

    if not cookie_value:
        return
    auth_session = session.get(AuthSession, cookie_value)
    if auth_session is not None:
        session.delete(auth_session)
        session.commit()


def current_viewer(request: Request, session: Session = Depends(get_session)) -> Viewer:
    """FastAPI dependency resolving the viewer from the request cookies."""

    return resolve_viewer(session, request.cookies.get(SESSION_COOKIE))


__all__ = [
    "ANONYMOUS",
    "Viewer",
    "ViewerUser",
    "current_viewer",
    "end_session",
    "require_viewer",
    "resolve_viewer",
]
