"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
import psycopg
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from daybook.api.routes import router
from daybook.api.metrics_routes import router as metrics_router
from daybook.api.middleware import setup_cors, setup_metrics_middleware, setup_rate_limiting
from daybook.config import LOG_LEVEL, STORAGE_BACKEND, validate_config
from daybook.db.connection import db
from daybook.exceptions import (
    AuthenticationError,
    ConflictError,
    DaybookError,
    NotFoundError,
    ValidationError,
    wrap_external_exception,
)
from daybook.monitoring import capture_exception, init_sentry
from daybook.services.container import ServiceContainer, init_container, reset_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def status_for(exc: DaybookError) -> int:
    """HTTP status for a daybook error (500 for anything unmapped)"""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_api_application(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        container: Pre-built services (tests); when omitted the lifespan opens
            the configured store and builds the container
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for FastAPI application"""
        # Startup
        logger.info("Starting API server...")
        owns_pool = False

        if container is None:
            validate_config()
            init_sentry()
            if STORAGE_BACKEND == "postgres":
                await db.init_pool()
                await db.init_schema()
                owns_pool = True
                logger.info("Database pool initialized")
            app.state.container = init_container()

        yield

        # Shutdown
        logger.info("Shutting down API server...")
        if owns_pool:
            await db.close_pool()
            logger.info("Database pool closed")
        if container is None:
            reset_container()

    app = FastAPI(
        title="Daybook API",
        description="REST API for the daily journal and habit tracker",
        version="1.0.0",
        lifespan=lifespan
    )
    if container is not None:
        app.state.container = container

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_metrics_middleware(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    @app.exception_handler(DaybookError)
    async def daybook_exception_handler(request: Request, exc: DaybookError):
        status_code = status_for(exc)
        if status_code >= 500:
            capture_exception(exc, request_id=exc.request_id, path=request.url.path)
            return JSONResponse(
                status_code=status_code,
                content={"error": "Internal server error", "request_id": exc.request_id}
            )

        body = exc.to_dict()
        if isinstance(exc, ValidationError):
            body["field"] = exc.field
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(psycopg.Error)
    async def database_exception_handler(request: Request, exc: psycopg.Error):
        wrapped = wrap_external_exception(
            exc,
            operation=f"{request.method} {request.url.path}",
            user_id=request.headers.get("x-user-id")
        )
        return await daybook_exception_handler(request, wrapped)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
        capture_exception(exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    logger.info("FastAPI application created")

    return app
