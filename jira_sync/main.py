"""jira-sync entry point.

Usage:
  jira-sync
  jira-sync --root path/to/.jira --log-level DEBUG
  jira-sync --once
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from jira_sync.config import ConfigError, SyncSettings, load_env_file, load_settings
from jira_sync.field_resolution import FieldResolver
from jira_sync.file_watcher import FileWatcher
from jira_sync.job_queue import PacedJobQueue
from jira_sync.observability import initialize as initialize_observability, shutdown as shutdown_observability
from jira_sync.renderers import get_renderer
from jira_sync.sync_engine import SyncEngine
from jira_sync.tracker.client import JiraClient

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("jira_sync")


def build_engine(settings: SyncSettings) -> SyncEngine:
    client = JiraClient(
        settings.base_url,
        settings.email,
        settings.api_token,
        api_version=settings.api_version,
        timeout=settings.http_timeout,
        project_key=settings.project_key,
    )
    resolver = FieldResolver(client, settings)
    return SyncEngine(client, resolver, settings, get_renderer(settings.description_format))


async def run_daemon(settings: SyncSettings, *, once: bool = False) -> int:
    engine = build_engine(settings)
    queue = PacedJobQueue(settings.pace_seconds)

    async def handle(path: Path) -> None:
        # Tracker calls block; keep the loop free for filesystem events.
        await asyncio.to_thread(engine.process, path)

    watcher = FileWatcher(
        settings.root_dir,
        queue,
        handle,
        extension=settings.extension,
        debounce_seconds=settings.debounce_seconds,
        root_poll_seconds=settings.root_poll_seconds,
    )

    if once:
        if not watcher.root.is_dir():
            logger.warning(f"Sync directory not found: {watcher.root}")
            return 0
        watcher.initial_scan()
        await watcher.settle()
        await queue.join()
        logger.info("Initial sync complete")
        return 0

    try:
        await watcher.run()
    finally:
        await queue.close()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="jira-sync", description="Mirror .jira markdown files into Jira issues.")
    parser.add_argument("--root", type=Path, default=None, help="directory to watch (default: nearest .jira)")
    parser.add_argument("--env-file", type=Path, default=None, help="env file to load before reading settings")
    parser.add_argument("--once", action="store_true", help="sync existing files once and exit")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    try:
        load_env_file(args.env_file)
        settings = load_settings(root_override=args.root)
    except ConfigError as exc:
        logger.error(str(exc))
        return 1

    logger.info(f"Sync root resolved to {settings.root_dir}")
    initialize_observability(settings)
    try:
        return asyncio.run(run_daemon(settings, once=args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0
    finally:
        shutdown_observability()


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
