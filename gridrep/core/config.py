"""Application settings and environment helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)


def _require_env(name: str) -> str:
    """Return a required environment variable or raise an error."""

    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# iRacing OAuth configuration ------------------------------------------------
IRACING_CLIENT_ID = _require_env("IRACING_CLIENT_ID")
IRACING_CLIENT_SECRET = _require_env("IRACING_CLIENT_SECRET")
IRACING_REDIRECT_URI = _require_env("IRACING_REDIRECT_URI")
IRACING_SCOPE = os.getenv("IRACING_SCOPE", "iracing.auth")

IRACING_AUTHORIZE_URL = "https://oauth.iracing.com/oauth2/authorize"
IRACING_TOKEN_URL = "https://oauth.iracing.com/oauth2/token"
IRACING_DATA_BASE = "https://members-ng.iracing.com"


# Cookies --------------------------------------------------------------------
SESSION_COOKIE = "gr_session"
SESSION_MAX_AGE = 30 * 24 * 60 * 60
FLOW_COOKIE = "gr_oauth"
FLOW_MAX_AGE = 10 * 60

COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None
COOKIE_SECURE = _env_bool("COOKIE_SECURE", True)
COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")


# CORS -----------------------------------------------------------------------
# FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
_frontend_origins = _split_csv(os.getenv("FRONTEND_ORIGIN"))
_additional_origins = _split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS"))

_local_dev_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8788",
    "http://127.0.0.1:8788",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_frontend_origins,
        *_additional_origins,
        *_local_dev_origins,
    ]
)


# Runtime behaviour ----------------------------------------------------------
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("DATA_DIR", str(_PROJECT_ROOT / "data")))
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{DATA_DIR / 'app.db'}"
DB_RESET = _env_bool("DB_RESET", False)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _env_bool("LOG_JSON", False)

RECENT_IMPORT_LIMIT = _env_int("RECENT_IMPORT_LIMIT", 10)
IMPORT_CONCURRENCY = _env_int("IMPORT_CONCURRENCY", 3)


__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "COOKIE_DOMAIN",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "DATABASE_URL",
    "DATA_DIR",
    "DB_RESET",
    "FLOW_COOKIE",
    "FLOW_MAX_AGE",
    "IMPORT_CONCURRENCY",
    "IRACING_AUTHORIZE_URL",
    "IRACING_CLIENT_ID",
    "IRACING_CLIENT_SECRET",
    "IRACING_DATA_BASE",
    "IRACING_REDIRECT_URI",
    "IRACING_SCOPE",
    "IRACING_TOKEN_URL",
    "LOG_JSON",
    "LOG_LEVEL",
    "RECENT_IMPORT_LIMIT",
    "SESSION_COOKIE",
    "SESSION_MAX_AGE",
]
