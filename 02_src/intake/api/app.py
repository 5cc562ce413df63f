"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..app import Application
from .routes import control, messaging, sessions


# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    application = get_app()
    await application.start()
    yield
    await application.stop()


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    global _app
    if application is not None:
        _app = application

    fastapi_app = FastAPI(
        title="Intake Assistant API",
        description="Conversational intake of marketing requests",
        version="0.1.0",
        lifespan=lifespan,
    )

    application = get_app()
    fastapi_app.include_router(messaging.create_messaging_router(application))
    fastapi_app.include_router(sessions.create_sessions_router(application))
    fastapi_app.include_router(control.create_control_router(application))

    return fastapi_app
