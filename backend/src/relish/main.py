"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from relish import __version__
from relish.api.router import api_router
from relish.config import get_settings
from relish.infrastructure.database.connection import dispose_engine, get_session_factory
from relish.infrastructure.queue.client import close_queue_pool
from relish.observability.metrics import setup_metrics
from relish.services import build_services
from relish.shared.exceptions import (
    DuplicateIndexError,
    NotFoundError,
    RelishError,
    ValidationError,
)
from relish.shared.keys import get_key_ring
from relish.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown events."""
    # Startup
    setup_logging()
    logger.info("relish_starting", version=__version__)

    settings = get_settings()
    # A missing or malformed master key aborts startup here
    key_ring = get_key_ring()
    app.state.services = getattr(app.state, "services", None) or build_services(
        get_session_factory(settings), key_ring, settings
    )

    yield

    # Shutdown
    logger.info("relish_stopping")
    await app.state.services.aclose()

    redis_client = getattr(app.state, "redis_client", None)
    if redis_client is not None:
        close = getattr(redis_client, "aclose", None)
        if close is not None:
            await close()

    await close_queue_pool()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Relish API",
        description="Relationship core with encrypted, blind-indexed PII",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(api_router)

    setup_metrics(app)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=422,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=422,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": {"errors": exc.errors()},
            },
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(DuplicateIndexError)
    async def duplicate_index_handler(request: Request, exc: DuplicateIndexError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=409,
            content={
                "error": "already_exists",
                "message": exc.message,
                "details": {"entity": exc.entity, "field": exc.field},
            },
        )

    @app.exception_handler(RelishError)
    async def relish_error_handler(request: Request, exc: RelishError) -> JSONResponse:
        _ = request
        logger.error("unhandled_error", error_type=type(exc).__name__, error=exc.message)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "An internal error occurred",
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        _ = request
        logger.exception("unexpected_error", error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred",
            },
        )


# Create app instance
app = create_app()
