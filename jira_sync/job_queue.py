"""Strict FIFO queue drained by a single paced worker."""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("jira_sync.queue")

Job = Callable[[], Awaitable[object]]


class PacedJobQueue:
    """Run jobs one at a time with a fixed delay after each one.

    Enqueueing while a drain is active only appends; it never starts a
    second drain.
    """

    def __init__(self, pace_seconds: float = 0.25):
        self.pace_seconds = pace_seconds
        self._jobs: deque[Job] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def pending(self) -> int:
        return len(self._jobs)

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def enqueue(self, job: Job) -> None:
        self._jobs.append(job)
        self._idle.clear()
        if not self.is_draining:
            self._drain_task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._jobs:
                job = self._jobs.popleft()
                try:
                    await job()
                except Exception:
                    logger.exception("Job error")
                await asyncio.sleep(self.pace_seconds)
        finally:
            self._drain_task = None
            self._idle.set()

    async def join(self) -> None:
        """Wait until every queued job has run."""
        await self._idle.wait()

    async def close(self) -> None:
        self._jobs.clear()
        task = self._drain_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._drain_task = None
        self._idle.set()
