"""FastAPI application for the Profile Designer Cloud Library moderation API.

Run with:
    uvicorn profiledesigner.api.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from profiledesigner import __version__
from profiledesigner.api.routers import cloudlibrary, health
from profiledesigner.core.config import Settings, get_settings
from profiledesigner.core.logger import configure_logging
from profiledesigner.db import build_session_factory
from profiledesigner.services import CloudLibraryClient, NotificationDispatcher


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional[sessionmaker] = None,
    cloudlib_client=None,
    notifier=None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings (read from the environment if omitted)
        session_factory: Session factory for the local profile store
        cloudlib_client: Cloud Library client
        notifier: Notification dispatcher

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    logger = configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{settings.app_name} {__version__} starting")
        yield
        close = getattr(app.state.cloudlib_client, "aclose", None)
        if close is not None:
            await close()
        logger.info(f"{settings.app_name} stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Cloud Library publishing and moderation for CESMII Profile Designer",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory or build_session_factory(settings)
    app.state.cloudlib_client = cloudlib_client or CloudLibraryClient(settings)
    app.state.notifier = notifier or NotificationDispatcher(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(cloudlibrary.router, prefix="/api")
    app.include_router(health.router)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": __version__,
            "docs": "/docs" if settings.debug else None,
        }

    return app
