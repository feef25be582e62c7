"""File watcher service using watchfiles.

Emits one event per pre-existing document on startup, then watches the
root for added/modified files. Events are debounced per path before a
job is queued.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from watchfiles import Change, DefaultFilter, awatch

from jira_sync.job_queue import PacedJobQueue
from jira_sync.parsers.documents import scan_documents

logger = logging.getLogger("jira_sync.watcher")

PathHandler = Callable[[Path], Awaitable[object]]


class DocumentFilter(DefaultFilter):
    """Only added/modified files with the document extension."""

    def __init__(self, extension: str = ".md") -> None:
        super().__init__()
        self.extension = extension

    def __call__(self, change: Change, path: str) -> bool:
        if change == Change.deleted:
            return False
        return path.endswith(self.extension) and super().__call__(change, path)


class FileWatcher:
    """Background watcher feeding a PacedJobQueue."""

    def __init__(
        self,
        root: Path,
        queue: PacedJobQueue,
        handler: PathHandler,
        *,
        extension: str = ".md",
        debounce_seconds: float = 0.4,
        root_poll_seconds: float = 5.0,
        watch_debounce_ms: int = 50,
    ):
        self.root = root.resolve()
        self.queue = queue
        self.handler = handler
        self.extension = extension
        self.debounce_seconds = debounce_seconds
        self.root_poll_seconds = root_poll_seconds
        self.watch_debounce_ms = watch_debounce_ms
        self._timers: dict[Path, asyncio.TimerHandle] = {}
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending_paths(self) -> list[Path]:
        return list(self._timers)

    def schedule(self, path: Path) -> None:
        """(Re)start the quiet-period timer for `path`."""
        existing = self._timers.pop(path, None)
        if existing is not None:
            existing.cancel()
        loop = asyncio.get_running_loop()
        self._timers[path] = loop.call_later(self.debounce_seconds, self._fire, path)

    def _fire(self, path: Path) -> None:
        self._timers.pop(path, None)
        logger.debug(f"Queueing {path.name}")
        self.queue.enqueue(functools.partial(self.handler, path))

    async def settle(self) -> None:
        """Wait until every pending debounce timer has fired."""
        while self._timers:
            await asyncio.sleep(max(self.debounce_seconds / 4, 0.01))

    def initial_scan(self) -> int:
        paths = scan_documents(self.root, self.extension)
        for path in paths:
            self.schedule(path)
        logger.info(f"Initial sync: {len(paths)} documents under {self.root}")
        return len(paths)

    async def start(self) -> None:
        """Start watching in a background task."""
        if self._running:
            logger.warning("File watcher already running")
            return
        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run())
        logger.info(f"File watcher started for {self.root}")

    async def stop(self) -> None:
        """Stop watching; pending debounce timers are dropped."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    async def _wait_for_root(self) -> bool:
        warned = False
        while not self.root.is_dir():
            if not warned:
                logger.warning(f"Sync directory not found: {self.root}; waiting for it to appear")
                warned = True
            if self._stop_event is not None and self._stop_event.is_set():
                return False
            await asyncio.sleep(self.root_poll_seconds)
        return True

    async def run(self) -> None:
        """Main watching loop."""
        self._running = True
        if self._stop_event is None:
            self._stop_event = asyncio.Event()

        try:
            while True:
                if not await self._wait_for_root():
                    return
                # Rescan on every (re)start; edits made while the watch was down raised no events.
                self.initial_scan()
                logger.info(f"Watching {self.root} for *{self.extension} changes")

                try:
                    await self._watch()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"File watcher error: {e}; restarting in {self.root_poll_seconds}s")
                else:
                    if not self._running or self._stop_event.is_set():
                        return
                    logger.warning(f"File watch on {self.root} ended; restarting in {self.root_poll_seconds}s")
                await asyncio.sleep(self.root_poll_seconds)
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
            raise
        finally:
            self._running = False

    async def _watch(self) -> None:
        async for changes in awatch(
            self.root,
            watch_filter=DocumentFilter(self.extension),
            debounce=self.watch_debounce_ms,
            stop_event=self._stop_event,
        ):
            if not self._running:
                return
            for path in self._classify_changes(changes):
                self.schedule(path)

    def _classify_changes(self, changes: set[tuple[Change, str]]) -> list[Path]:
        """Keep added/modified document paths, in a stable order."""
        result: list[Path] = []
        for change_type, path_str in sorted(changes, key=lambda item: item[1]):
            path = Path(path_str)
            if path.suffix != self.extension:
                continue
            if change_type in (Change.modified, Change.added):
                result.append(path)
        return result
