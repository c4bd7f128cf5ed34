"""In-process queue for background matching tasks.

Route handlers submit matching coroutines here instead of spawning bare
tasks, so every task has a handle, failures get logged, and shutdown (or a
test) can wait for everything in flight with ``join()``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class MatchingQueue:
    """Tracks background matching tasks on the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, name: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Schedule ``coro`` and return its task handle."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.info(f"Submitted background task {name} ({self.pending} pending)")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task {task.get_name()} failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def join(self) -> None:
        """Wait until every task submitted so far (and any they submit) finishes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
