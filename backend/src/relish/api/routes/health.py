"""Health check endpoints."""

from typing import Any, cast

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import literal, select

from relish.config import get_settings
from relish.infrastructure.database.connection import session_scope
from relish.services import CoreServices
from relish.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class ReadyResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check - always returns OK if service is running."""
    from relish import __version__

    return HealthResponse(status="healthy", version=__version__)


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check(request: Request) -> ReadyResponse:
    """Readiness check - verifies the store (and the queue when used) answers."""
    checks: dict[str, bool] = {}
    services = cast(CoreServices, request.app.state.services)

    try:
        async with session_scope(services.session_factory) as session:
            await session.execute(select(literal(1)))
        checks["database"] = True
    except Exception as e:
        logger.warning("database_health_check_failed", error_type=type(e).__name__)
        checks["database"] = False

    settings = get_settings()
    if settings.followup_backend == "queue":
        try:
            import redis.asyncio as redis

            redis_client = getattr(request.app.state, "redis_client", None)
            if redis_client is None:
                redis_client = cast(Any, redis.from_url)(str(settings.redis_url))
                request.app.state.redis_client = redis_client
            await redis_client.ping()
            checks["redis"] = True
        except Exception as e:
            logger.warning("redis_health_check_failed", error_type=type(e).__name__)
            checks["redis"] = False

    return ReadyResponse(ready=all(checks.values()), checks=checks)
