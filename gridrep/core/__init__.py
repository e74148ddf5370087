"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    DB_RESET,
    FLOW_COOKIE,
    FLOW_MAX_AGE,
    IMPORT_CONCURRENCY,
    IRACING_CLIENT_ID,
    IRACING_CLIENT_SECRET,
    IRACING_REDIRECT_URI,
    IRACING_SCOPE,
    LOG_JSON,
    LOG_LEVEL,
    RECENT_IMPORT_LIMIT,
    SESSION_COOKIE,
    SESSION_MAX_AGE,
)
from .database import engine, get_session
from .logging import configure_logging, get_correlation_id, set_correlation_id
from .time import as_utc, utcnow

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "COOKIE_DOMAIN",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "DB_RESET",
    "FLOW_COOKIE",
    "FLOW_MAX_AGE",
    "IMPORT_CONCURRENCY",
    "IRACING_CLIENT_ID",
    "IRACING_CLIENT_SECRET",
    "IRACING_REDIRECT_URI",
    "IRACING_SCOPE",
    "LOG_JSON",
    "LOG_LEVEL",
    "RECENT_IMPORT_LIMIT",
    "SESSION_COOKIE",
    "SESSION_MAX_AGE",
    "as_utc",
    "configure_logging",
    "engine",
    "get_correlation_id",
    "get_session",
    "set_correlation_id",
    "utcnow",
]
