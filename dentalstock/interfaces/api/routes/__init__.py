from fastapi import FastAPI

from .auth import router as auth_router
from .cron import router as cron_router
from .line import router as line_router
from .notifications import router as notifications_router
from .profile import router as profile_router
from .push import router as push_router


def register_routes(app: FastAPI) -> None:
    """Register every API router on the FastAPI application."""

    app.include_router(auth_router)
    app.include_router(cron_router)
    app.include_router(line_router)
    app.include_router(notifications_router)
    app.include_router(profile_router)
    app.include_router(push_router)
