"""Background worker using ARQ (async Redis queue).

Jobs:
- create_reciprocal_contacts_job: reciprocal contacts after a lead claim
"""

from typing import cast
from uuid import UUID

from arq import Retry
from arq.connections import RedisSettings

from relish.config import get_settings
from relish.infrastructure.database.connection import dispose_engine, get_session_factory
from relish.services import CoreServices, build_services
from relish.shared.keys import get_key_ring
from relish.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)

MAX_TRIES = 3
RETRY_DELAY_SECONDS = 30


# ----- Job Functions -----


async def create_reciprocal_contacts_job(
    ctx: dict[str, object],
    recipient_id: str,
    owner_ids: list[str],
) -> dict[str, object]:
    """Create the owners of claimed leads as contacts of the recipient.

    Bad arguments fail the job for good. Owners that fail are retried by
    re-running the whole job, which skips contacts that already exist.
    """
    logger.info(
        "job_started",
        job="create_reciprocal_contacts",
        recipient_id=recipient_id,
        owners=len(owner_ids),
    )

    try:
        recipient = UUID(recipient_id)
        owners = [UUID(owner_id) for owner_id in owner_ids]
    except ValueError as e:
        logger.error(
            "job_failed",
            job="create_reciprocal_contacts",
            recipient_id=recipient_id,
            error_type=type(e).__name__,
        )
        return {"status": "failed", "recipient_id": recipient_id, "error": type(e).__name__}

    services = cast(CoreServices, ctx["services"])
    batch = await services.reciprocal.create_for_owners(recipient, owners)

    if batch.failed_owner_ids:
        job_try = cast(int, ctx.get("job_try", 1))
        logger.warning(
            "job_partially_failed",
            job="create_reciprocal_contacts",
            recipient_id=recipient_id,
            failed=len(batch.failed_owner_ids),
            job_try=job_try,
        )
        if job_try < MAX_TRIES:
            raise Retry(defer=RETRY_DELAY_SECONDS * job_try)
        return {
            "status": "partial",
            "recipient_id": recipient_id,
            "created": batch.created,
            "failed": len(batch.failed_owner_ids),
        }

    logger.info(
        "job_completed",
        job="create_reciprocal_contacts",
        recipient_id=recipient_id,
        created=batch.created,
    )
    return {"status": "completed", "recipient_id": recipient_id, "created": batch.created}


# ----- Worker Settings -----


async def startup(ctx: dict[str, object]) -> None:
    """Initialize worker resources on startup."""
    setup_logging()
    logger.info("worker_starting")

    settings = get_settings()
    # Fails fast on a missing or malformed master key
    key_ring = get_key_ring()
    ctx["services"] = build_services(get_session_factory(settings), key_ring, settings)

    logger.info("worker_started")


async def shutdown(ctx: dict[str, object]) -> None:
    """Clean up worker resources on shutdown."""
    logger.info("worker_stopping")
    services = ctx.get("services")
    if isinstance(services, CoreServices):
        await services.aclose()
    await dispose_engine()
    logger.info("worker_stopped")


def get_redis_settings() -> RedisSettings:
    """Get Redis settings from app config."""
    settings = get_settings()
    return RedisSettings.from_dsn(str(settings.redis_url))


class WorkerSettings:
    """ARQ worker settings."""

    functions = [create_reciprocal_contacts_job]

    redis_settings = get_redis_settings()

    on_startup = startup
    on_shutdown = shutdown

    max_jobs = 10
    job_timeout = 60
    keep_result = 3600
    # Re-running is safe, existing contacts are detected first
    retry_jobs = True
    max_tries = MAX_TRIES
