"""FastAPI application factory and configuration.

This module provides the application factory function for creating
and configuring the FastAPI application with all middleware, routes,
and lifecycle handlers.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tablebase.core.config import get_settings
from tablebase.core.logging import bind_correlation_id, clear_context, configure_logging, get_logger
from tablebase.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ProtectedColumnError,
    TableEngineError,
    ValidationError,
)
from tablebase.infrastructure.persistence.database import (
    close_database,
    get_db_manager,
    init_database,
)

logger = get_logger(__name__)

# Status code per engine error; the first matching class wins
ERROR_STATUS_CODES: list[tuple[type[TableEngineError], int]] = [
    (ValidationError, 400),
    (ProtectedColumnError, 403),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control is yielded to the application during its lifetime.
    """
    settings = get_settings()

    # Configure logging
    configure_logging(settings)

    logger.info(
        "Starting TableBase",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize database
    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("Shutting down TableBase")
    await close_database()
    logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Dynamic table engine: user-defined schemas, rows and access tiers",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    register_health_check(app)
    register_routes(app)
    register_exception_handlers(app)
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    """Register health check endpoints.

    Args:
        app: FastAPI application instance.
    """

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check including database connectivity."""
        db_healthy = await get_db_manager().check_connection()
        content = {
            "status": "healthy" if db_healthy else "unhealthy",
            "service": "TableBase",
            "version": get_settings().app_version,
            "database": "connected" if db_healthy else "disconnected",
        }
        if db_healthy:
            return content
        return JSONResponse(status_code=503, content=content)


def register_routes(app: FastAPI) -> None:
    """Register API routes.

    Args:
        app: FastAPI application instance.
    """
    from tablebase.infrastructure.api.routes import (
        columns_router,
        rows_router,
        tables_router,
    )

    settings = get_settings()

    # Column and row routes are nested under a table id
    app.include_router(
        columns_router, prefix=f"{settings.api_prefix}/tables/{{table_id}}/columns", tags=["columns"]
    )
    app.include_router(
        rows_router, prefix=f"{settings.api_prefix}/tables/{{table_id}}/rows", tags=["rows"]
    )
    app.include_router(tables_router, prefix=f"{settings.api_prefix}/tables", tags=["tables"])

    @app.get(settings.api_prefix, tags=["root"])
    async def api_root():
        """API root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "api_version": "v1",
        }


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(TableEngineError)
    async def table_engine_exception_handler(request: Request, exc: TableEngineError):
        """Map engine errors to their HTTP status codes."""
        status_code = next(
            (code for error_cls, code in ERROR_STATUS_CODES if isinstance(exc, error_cls)),
            500,
        )
        content: dict = {"error": type(exc).__name__, "detail": exc.message}
        if isinstance(exc, ValidationError) and exc.errors:
            content["field_errors"] = [
                {"field": e.field, "message": e.message, "code": e.code} for e in exc.errors
            ]
        if isinstance(exc, ProtectedColumnError):
            content["column"] = exc.column_name

        logger.info(
            "Request rejected",
            path=str(request.url.path),
            method=request.method,
            status_code=status_code,
            error=type(exc).__name__,
        )
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if get_settings().debug else "An unexpected error occurred",
            },
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware.

    Args:
        app: FastAPI application instance.
    """

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Middleware to log all requests and add correlation ID."""
        correlation_id = request.headers.get("X-Correlation-ID", f"cid_{uuid.uuid4().hex[:12]}")
        bind_correlation_id(correlation_id)

        logger.info(
            "Request started",
            method=request.method,
            path=str(request.url.path),
        )

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
            )
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            # Clear context to prevent leakage
            clear_context()


# Create the application instance
app = create_app()
