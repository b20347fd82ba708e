"""
Main entrypoint for the Service Center API.

This module assembles the FastAPI application, sets up logging and
includes versioned routers.  ``create_app`` builds and configures the
app, which is then instantiated at module import time as ``app`` so it
can be served directly::

    uvicorn service_center_api.app.main:app --reload

The application title and version come from ``Settings`` in
``core.config``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.logging_config import log_requests, setup_logging
from .services.auth_service import AuthService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Creates the database file on first start and applies pending migrations.
    init_db()
    purged = await AuthService.purge_expired()
    if purged:
        logger.info("Removed %s expired sessions", purged)
    logger.info("%s %s started", settings.project_name, settings.api_version)
    yield


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured application with all v1 routes mounted under
        ``/api/v1``.
    """
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(
        title=settings.project_name,
        version=settings.api_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok", "version": settings.api_version}

    return app


app = create_app()
