"""Database configuration and session helpers."""

from __future__ import annotations

from typing import Any, Dict, Iterator

from sqlmodel import Session, create_engine

from .config import DATA_DIR, DATABASE_URL

def engine_options(url: str) -> Dict[str, Any]:
    """Driver options for ``url``; the thread check only exists for SQLite."""

    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {}


if DATABASE_URL.startswith("sqlite:///"):
    DATA_DIR.mkdir(parents=True, exist_ok=True)

engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))


def get_session() -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""

    with Session(engine) as session:
        yield session


__all__ = ["engine", "engine_options", "get_session"]
