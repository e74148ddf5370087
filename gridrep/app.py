"""FastAPI application factory and configuration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

from . import models  # noqa: F401 - ensure models are registered with SQLModel
from .api import register_routes
from .core import (
    ALLOWED_CORS_ORIGINS,
    DB_RESET,
    LOG_JSON,
    LOG_LEVEL,
    configure_logging,
    engine,
    get_correlation_id,
    set_correlation_id,
)
from .core.logging import CORRELATION_HEADER, RequestLoggingMiddleware
from .errors import ErrorKind, GridRepError

logger = logging.getLogger(__name__)

DEBUG_ID_HEADER = "X-Debug-Id"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(LOG_LEVEL, json_format=LOG_JSON)
    if DB_RESET:
        SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


async def handle_gridrep_error(request: Request, exc: GridRepError) -> JSONResponse:
    """Render a service error with its kind and a support correlation id."""

    debug_id = get_correlation_id() or set_correlation_id()
    logger.warning(
        "%s %s failed: %s",
        request.method,
        request.url.path,
        exc.kind.value,
        extra={"kind": exc.kind.value, "status": exc.status},
    )
    return JSONResponse(
        exc.to_dict(),
        status_code=exc.status,
        headers={"Cache-Control": "no-store", DEBUG_ID_HEADER: debug_id},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort 500 that still carries an error kind and the debug id."""

    debug_id = get_correlation_id() or set_correlation_id()
    logger.error(
        "%s %s crashed: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc_info=exc,
        extra={"kind": ErrorKind.INTERNAL.value, "status": 500},
    )
    return JSONResponse(
        {"ok": False, "error": ErrorKind.INTERNAL.value, "message": "Internal error"},
        status_code=500,
        headers={
            "Cache-Control": "no-store",
            DEBUG_ID_HEADER: debug_id,
            CORRELATION_HEADER: debug_id,
        },
    )


def create_app() -> FastAPI:
    app = FastAPI(title="GridRep API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[DEBUG_ID_HEADER],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(GridRepError, handle_gridrep_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("gridrep.app:app", host="127.0.0.1", port=8788, reload=True)
