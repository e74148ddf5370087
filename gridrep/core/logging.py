"""Logging configuration with correlation ids."""

from __future__ import annotations

import contextvars
import logging
import sys
import time
import uuid
from typing import Awaitable, Callable, Optional

from fastapi import Request, Response
from pythonjsonlogger import jsonlogger
from starlette.middleware.base import BaseHTTPMiddleware

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

logger = logging.getLogger(__name__)


def get_correlation_id() -> str:
    """Return the current correlation id or an empty string."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set the correlation id for the current context, generating one if needed."""

    if not correlation_id:
        correlation_id = uuid.uuid4().hex
    correlation_id_var.set(correlation_id)
    return correlation_id


class CorrelationIdFilter(logging.Filter):
    """Add the correlation id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def configure_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """Install a single stdout handler on the root logger."""

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())

    if json_format:
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)s | %(correlation_id)s | %(message)s",
            datefmt="%H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger.info(
        "Logging configured",
        extra={"log_level": log_level, "json_format": json_format},
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assign a correlation id per request and log one completion line."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        set_correlation_id(request.headers.get(CORRELATION_HEADER))
        method = request.method
        path = request.url.path

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed: %s %s", method, path)
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "%s %s -> %s (%dms)",
            method,
            path,
            response.status_code,
            duration_ms,
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        response.headers[CORRELATION_HEADER] = get_correlation_id()
        return response


__all__ = [
    "CORRELATION_HEADER",
    "CorrelationIdFilter",
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
