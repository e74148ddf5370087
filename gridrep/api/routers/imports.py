"""Session import routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from ...core import SESSION_COOKIE, get_session
from ...services.bulk import import_recent
from ...services.importer import import_session
from ...services.iracing import IRacingClient, get_iracing_client
from ...services.viewer import Viewer, current_viewer

router = APIRouter(prefix="/api/iracing", tags=["import"])

NO_STORE = {"Cache-Control": "no-store"}


@router.api_route("/session/{session_id}/import", methods=["GET", "POST"])
async def import_single(
    session_id: str,
    request: Request,
    session: Session = Depends(get_session),
    client: IRacingClient = Depends(get_iracing_client),
):
    """Import one subsession into the cache unless it is already there."""

    result = await import_session(
        session,
        session_id,
        client=client,
        cookie=request.cookies.get(SESSION_COOKIE),
    )
    return JSONResponse(result.to_dict(), headers=NO_STORE)


@router.post("/recent/import")
async def import_recent_sessions(
    session: Session = Depends(get_session),
    viewer: Viewer = Depends(current_viewer),
    client: IRacingClient = Depends(get_iracing_client),
):
    """Import the viewer's most recent subsessions."""

    result = await import_recent(session, viewer, client)
    return JSONResponse(result.to_dict(), headers=NO_STORE)


__all__ = ["router"]
