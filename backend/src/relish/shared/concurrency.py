"""Best-effort background work that must never affect the primary flow.

Reciprocal-contact creation after lead claiming runs here: the primary
operation has already committed and returned, and a failure in the follow-up
is logged and counted, never re-raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from relish.observability.metrics import BACKGROUND_TASK_FAILURES
from relish.shared.logging import get_logger

logger = get_logger(__name__)


class BackgroundTasks:
    """Tracks fire-and-forget tasks so they are not garbage collected mid-flight."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop and return immediately."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.info("background_task_cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            BACKGROUND_TASK_FAILURES.labels(task=task.get_name()).inc()
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error_type=type(exc).__name__,
            )

    async def drain(self) -> None:
        """Wait for every task spawned so far (used on shutdown and in tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
