"""Aggregate API routers."""

from fastapi import APIRouter

from .auth import router as auth_router
from .imports import router as imports_router
from .sessions import router as sessions_router
from .system import router as system_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    auth_router,
    imports_router,
    sessions_router,
)

__all__ = ["ALL_ROUTERS"]
