"""Unit tests for the queue client."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest


class TestEnqueue:
    """Test job enqueueing."""

    @pytest.mark.asyncio
    async def test_enqueue_reciprocal_contacts_passes_string_ids(self):
        from relish.infrastructure.queue.client import (
            RECIPROCAL_CONTACTS_JOB,
            enqueue_reciprocal_contacts,
        )

        recipient, owner_a, owner_b = uuid4(), uuid4(), uuid4()
        pool = MagicMock()
        pool.enqueue_job = AsyncMock(return_value=MagicMock(job_id="job-1"))

        with patch(
            "relish.infrastructure.queue.client.get_queue_pool",
            AsyncMock(return_value=pool),
        ):
            job_id = await enqueue_reciprocal_contacts(recipient, [owner_a, owner_b])

        assert job_id == "job-1"
        pool.enqueue_job.assert_awaited_once_with(
            RECIPROCAL_CONTACTS_JOB,
            recipient_id=str(recipient),
            owner_ids=[str(owner_a), str(owner_b)],
        )

    @pytest.mark.asyncio
    async def test_enqueue_failure_returns_none(self):
        from relish.infrastructure.queue.client import enqueue_job

        with patch(
            "relish.infrastructure.queue.client.get_queue_pool",
            AsyncMock(side_effect=ConnectionError("redis down")),
        ):
            assert await enqueue_job("any_job") is None

    @pytest.mark.asyncio
    async def test_duplicate_job_returns_none(self):
        from relish.infrastructure.queue.client import enqueue_job

        pool = MagicMock()
        pool.enqueue_job = AsyncMock(return_value=None)

        with patch(
            "relish.infrastructure.queue.client.get_queue_pool",
            AsyncMock(return_value=pool),
        ):
            assert await enqueue_job("any_job") is None
