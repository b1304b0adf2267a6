"""Queue client for enqueuing background jobs."""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from arq.connections import ArqRedis, RedisSettings, create_pool

from relish.config import get_settings
from relish.shared.logging import get_logger

logger = get_logger(__name__)

RECIPROCAL_CONTACTS_JOB = "create_reciprocal_contacts_job"

_pool: ArqRedis | None = None


async def get_queue_pool() -> ArqRedis:
    """Get or create the ARQ Redis connection pool."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await create_pool(RedisSettings.from_dsn(str(settings.redis_url)))
    return _pool


async def close_queue_pool() -> None:
    """Close the queue pool connection."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def enqueue_job(
    job_name: str,
    *args: Any,
    **kwargs: Any,
) -> str | None:
    """Enqueue a background job.

    Returns:
        Job ID if successfully enqueued, None otherwise
    """
    try:
        pool = await get_queue_pool()
        job = await pool.enqueue_job(job_name, *args, **kwargs)
        if job:
            logger.info("job_enqueued", job_name=job_name, job_id=job.job_id)
            return job.job_id
        return None
    except Exception as e:
        logger.exception(
            "job_enqueue_failed",
            job_name=job_name,
            error_type=type(e).__name__,
        )
        return None


async def enqueue_reciprocal_contacts(
    recipient_id: UUID,
    owner_ids: Sequence[UUID],
) -> str | None:
    """Enqueue reciprocal-contact creation for a user who just claimed leads."""
    return await enqueue_job(
        RECIPROCAL_CONTACTS_JOB,
        recipient_id=str(recipient_id),
        owner_ids=[str(owner_id) for owner_id in owner_ids],
    )
