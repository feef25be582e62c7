"""jira-sync configuration.

Settings come from the process environment, optionally seeded from the
first env file found near the working directory.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger("jira_sync.config")

REQUIRED_VARS = ("JIRA_BASE_URL", "JIRA_EMAIL", "JIRA_API_TOKEN", "JIRA_PROJECT_KEY")
UPDATE_MODES = ("update", "skip")
DESCRIPTION_FORMATS = ("adf", "text")
SYNC_DIR_NAME = ".jira"


class ConfigError(RuntimeError):
    """Raised when required settings are missing or invalid."""


def _env_str(environ: Mapping[str, str], name: str, default: str = "") -> str:
    value = environ.get(name)
    if value is None:
        return default
    return value.strip()


def _env_bool(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    value = environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def env_file_candidates(cwd: Path) -> list[Path]:
    return [
        cwd / ".env",
        cwd / ".env.local",
        cwd / ".env.jira",
        cwd.parent / ".env.jira",
        cwd.parent.parent / ".env.jira",
    ]


def load_env_file(explicit: Path | None = None, cwd: Path | None = None) -> Path | None:
    """Load the first env file found; variables already set are kept.

    Returns the loaded path, or None when nothing was found.
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"Env file not found: {explicit}")
        load_dotenv(explicit, override=False)
        logger.info(f"Loaded env file: {explicit}")
        return explicit

    base = cwd or Path.cwd()
    candidates = env_file_candidates(base)
    for candidate in candidates:
        if candidate.is_file():
            load_dotenv(candidate, override=False)
            logger.info(f"Loaded env file: {candidate}")
            return candidate

    logger.warning(
        "No .env / .env.jira found. Tried: %s",
        ", ".join(str(c) for c in candidates),
    )
    return None


def find_sync_root(start: Path) -> Path:
    """Walk up from `start` to the first directory holding a `.jira` folder."""
    current = start.resolve()
    for directory in (current, *current.parents):
        if (directory / SYNC_DIR_NAME).is_dir():
            return directory / SYNC_DIR_NAME
    return current / SYNC_DIR_NAME


class SyncSettings(BaseModel):
    base_url: str
    email: str
    api_token: str
    project_key: str
    root_dir: Path
    epic_name_field: Optional[str] = None
    update_mode: Literal["update", "skip"] = "update"
    issue_type_story: Optional[str] = None
    issue_type_task: Optional[str] = None
    api_version: str = "3"
    description_format: Literal["adf", "text"] = "adf"
    extension: str = ".md"
    debounce_seconds: float = 0.4
    pace_seconds: float = 0.25
    http_timeout: float = 30.0
    root_poll_seconds: float = 5.0

    # Observability
    otel_enabled: bool = False
    otel_endpoint: str = "http://localhost:4318"
    otel_service_name: str = "jira-sync"
    prom_port: int = 0


def load_settings(
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    root_override: Path | None = None,
) -> SyncSettings:
    """Build settings from environment variables.

    Raises ConfigError naming every missing required variable.
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_VARS if not _env_str(env, name)]
    if missing:
        raise ConfigError(f"Missing required env vars: {', '.join(missing)}")

    update_mode = _env_str(env, "JIRA_UPDATE_MODE", "update").lower() or "update"
    if update_mode not in UPDATE_MODES:
        raise ConfigError(
            f"JIRA_UPDATE_MODE must be one of {', '.join(UPDATE_MODES)} (got '{update_mode}')"
        )

    description_format = _env_str(env, "JIRA_DESCRIPTION_FORMAT", "adf").lower() or "adf"
    if description_format not in DESCRIPTION_FORMATS:
        raise ConfigError(
            "JIRA_DESCRIPTION_FORMAT must be one of "
            f"{', '.join(DESCRIPTION_FORMATS)} (got '{description_format}')"
        )

    if root_override is not None:
        root_dir = root_override
    elif _env_str(env, "JIRA_SYNC_ROOT"):
        root_dir = Path(_env_str(env, "JIRA_SYNC_ROOT"))
    else:
        root_dir = find_sync_root(cwd or Path.cwd())

    extension = _env_str(env, "JIRA_SYNC_EXTENSION", ".md") or ".md"
    if not extension.startswith("."):
        extension = f".{extension}"

    return SyncSettings(
        base_url=_env_str(env, "JIRA_BASE_URL").rstrip("/"),
        email=_env_str(env, "JIRA_EMAIL"),
        api_token=_env_str(env, "JIRA_API_TOKEN"),
        project_key=_env_str(env, "JIRA_PROJECT_KEY"),
        root_dir=root_dir,
        epic_name_field=_env_str(env, "JIRA_EPIC_NAME_FIELD") or None,
        update_mode=update_mode,  # type: ignore[arg-type]
        issue_type_story=_env_str(env, "JIRA_ISSUETYPE_STORY") or None,
        issue_type_task=_env_str(env, "JIRA_ISSUETYPE_TASK") or None,
        api_version=_env_str(env, "JIRA_API_VERSION", "3") or "3",
        description_format=description_format,  # type: ignore[arg-type]
        extension=extension,
        debounce_seconds=max(0, _env_int(env, "JIRA_SYNC_DEBOUNCE_MS", 400)) / 1000.0,
        pace_seconds=max(0, _env_int(env, "JIRA_SYNC_PACE_MS", 250)) / 1000.0,
        http_timeout=_env_float(env, "JIRA_SYNC_HTTP_TIMEOUT", 30.0),
        root_poll_seconds=_env_float(env, "JIRA_SYNC_ROOT_POLL_SECONDS", 5.0),
        otel_enabled=_env_bool(env, "JIRA_SYNC_OTEL_ENABLED", False),
        otel_endpoint=_env_str(env, "JIRA_SYNC_OTEL_ENDPOINT", "http://localhost:4318"),
        otel_service_name=_env_str(env, "JIRA_SYNC_OTEL_SERVICE_NAME", "jira-sync") or "jira-sync",
        prom_port=_env_int(env, "JIRA_SYNC_PROM_PORT", 0),
    )
