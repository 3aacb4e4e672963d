"""FastAPI application entry-point for the package feed server."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from feed_core.composition import (
    AmbiguousProviderError,
    Capability,
    ConfigurationValidationError,
    LifetimeError,
    NoProviderError,
    ProviderConstructionError,
)
from feed_core.database import create_tables, dispose_engines
from feed_core.search import SearchBackendError
from feed_core.storage import StorageError
from sqlalchemy.exc import SQLAlchemyError

from feed_api import __version__
from feed_api.config import APISettings, load_api_settings
from feed_api.dependencies import dispose_composition, init_composition
from feed_api.middleware.logging import RequestLoggingMiddleware
from feed_api.middleware.robots import RobotsMiddleware
from feed_api.routers import health, packages

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup / shutdown lifecycle.

    On startup:
    - Validate the backend configuration as a whole and build the
      composition root.  Any issue aborts startup with every problem listed.
    - Create catalog tables when a SQL catalog is selected.

    On shutdown:
    - Dispose singleton backends and the cached engine pools.
    """
    settings: APISettings = load_api_settings()

    # Structured JSON logging for log aggregators.
    if settings.structured_logging:
        from feed_api.middleware.json_formatter import configure_structured_logging

        configure_structured_logging()
        logger.info("Structured JSON logging enabled")

    try:
        root = init_composition()
    except ConfigurationValidationError as exc:
        logger.critical("Refusing to start: %s", exc)
        raise

    backends = root.describe()
    logger.info("Backends selected", extra={"backends": backends})

    if settings.create_tables and Capability.DATABASE_CONTEXT in root.registry:
        async with root.create_scope() as scope:
            context = scope.get(Capability.DATABASE_CONTEXT)
            await create_tables(context.engine)

    yield

    # Shutdown.
    await dispose_composition()
    await dispose_engines()
    logger.info("Application shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Construct and configure the FastAPI application."""
    settings = load_api_settings()

    app = FastAPI(
        title="Package Feed",
        description="Package feed with configuration-selected storage, catalog and search backends.",
        version=__version__,
        root_path=settings.path_base,
        lifespan=lifespan,
    )

    # -- Middleware (outermost first) ----------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID", "X-NuGet-ApiKey", "Accept"],
    )
    if settings.robots_disallow_all:
        app.add_middleware(RobotsMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # -- Routers -------------------------------------------------------------

    app.include_router(health.router)
    app.include_router(packages.router)

    # -- Exception handlers --------------------------------------------------

    @app.exception_handler(NoProviderError)
    @app.exception_handler(AmbiguousProviderError)
    @app.exception_handler(LifetimeError)
    @app.exception_handler(ProviderConstructionError)
    async def backend_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Backend unavailable on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(SearchBackendError)
    async def search_backend_handler(request: Request, exc: SearchBackendError) -> JSONResponse:
        logger.error("Search backend error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": "Search backend unavailable"})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.warning("Storage error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error: %s", exc, exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal database error"})

    return app


# Module-level application instance used by ``uvicorn feed_api.main:app``.
app = create_app()
