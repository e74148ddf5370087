"""Liveness and readiness probes."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...core import get_session

router = APIRouter(tags=["system"])

logger = logging.getLogger(__name__)


@router.get("/health")
def health() -> Dict[str, bool]:
    return {"ok": True}


@router.get("/healthz")
def healthz(session: Session = Depends(get_session)) -> JSONResponse:
    """Readiness: the process is up and the cache database answers."""

    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database readiness check failed")
        return JSONResponse({"ok": False, "database": False}, status_code=503)
    return JSONResponse({"ok": True, "database": True})


__all__ = ["router"]
