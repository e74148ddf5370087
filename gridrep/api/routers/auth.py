"""OAuth authentication routes."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel import Session

from ...core import (
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    FLOW_COOKIE,
    FLOW_MAX_AGE,
    SESSION_COOKIE,
    SESSION_MAX_AGE,
    get_session,
)
from ...errors import TokenError
from ...services.iracing import IRacingClient, get_iracing_client
from ...services.oauth_flow import complete_callback, parse_flow_cookie, start_flow
from ...services.viewer import Viewer, current_viewer, end_session

router = APIRouter(prefix="/api", tags=["auth"])

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


def _set_cookie(response: Response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        domain=COOKIE_DOMAIN,
        secure=COOKIE_SECURE,
        httponly=True,
        samesite=COOKIE_SAMESITE,
    )


def _clear_cookie(response: Response, name: str) -> None:
    response.delete_cookie(
        name,
        path="/",
        domain=COOKIE_DOMAIN,
        secure=COOKIE_SECURE,
        httponly=True,
        samesite=COOKIE_SAMESITE,
    )


@router.get("/auth/start")
def auth_start(
    returnTo: Optional[str] = None,
    client: IRacingClient = Depends(get_iracing_client),
):
    """Begin the iRacing PKCE flow."""

    flow = start_flow(returnTo, client)
    response = RedirectResponse(flow.redirect_url, status_code=302)
    _set_cookie(response, FLOW_COOKIE, flow.cookie_value, FLOW_MAX_AGE)
    return response


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    session: Session = Depends(get_session),
    client: IRacingClient = Depends(get_iracing_client),
):
    """Handle the OAuth callback from iRacing."""

    flow = parse_flow_cookie(request.cookies.get(FLOW_COOKIE))
    try:
        result = await complete_callback(
            session, client, code=code, state=state, flow=flow
        )
    except TokenError as exc:
        if not exc.is_stale_grant:
            raise
        logger.info("Stale authorization grant, restarting flow")
        return_to = flow.return_to if flow else "/"
        response = RedirectResponse(
            f"/api/auth/start?{urlencode({'returnTo': return_to})}", status_code=302
        )
        _clear_cookie(response, FLOW_COOKIE)
        return response

    response = RedirectResponse(result.return_to, status_code=302)
    _set_cookie(response, SESSION_COOKIE, result.session_id, SESSION_MAX_AGE)
    _clear_cookie(response, FLOW_COOKIE)
    return response


@router.post("/auth/logout")
def auth_logout(request: Request, session: Session = Depends(get_session)):
    end_session(session, request.cookies.get(SESSION_COOKIE))
    response = Response(status_code=204)
    _clear_cookie(response, SESSION_COOKIE)
    return response


@router.get("/viewer")
def viewer(current: Viewer = Depends(current_viewer)):
    return JSONResponse(current.to_dict(), headers=NO_STORE)


__all__ = ["router"]
