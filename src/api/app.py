# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the School
Records API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import __version__
from src.api.dependencies import close_db, init_db
from src.api.middleware import RequestContextMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.core.errors import ErrorKind, ServiceError, http_status_for
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging and opens the database connection on startup,
    and closes the connection on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting School Records API (environment=%s, debug=%s)",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================
    await init_db()
    logger.info("Database connection initialized")

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================
    try:
        await close_db()
        logger.info("Database connection closed")
    except Exception as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down School Records API")


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Report a service error with the status of its kind."""
    status_code = http_status_for(exc.kind)
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info(
            "%s %s rejected (%s): %s",
            request.method,
            request.url.path,
            exc.kind.value,
            exc.message,
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed request input as a validation error (400)."""
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "kind": ErrorKind.VALIDATION.value,
                "message": "Request validation failed",
                "problems": problems,
            }
        },
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="School Records API",
        description="Enrollment lifecycle and academic history backend",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # =========================================================================
    # Middleware
    # =========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )
    app.add_middleware(RequestContextMiddleware)

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
