"""Map internal issue kinds and the epic-name concept onto the target project."""
from __future__ import annotations

import logging
import re
from typing import Any, Protocol

from jira_sync.config import SyncSettings
from jira_sync.models import IssueKind, ProjectTypeCatalog

logger = logging.getLogger("jira_sync.fields")

ISSUE_TYPE_CANDIDATES: dict[str, list[str]] = {
    "Epic": ["Epic", "Эпик"],
    "Story": ["Story", "User Story", "История"],
    "Task": ["Task", "Задача"],
}
_CROSS_KIND_FALLBACKS: dict[str, list[str]] = {
    "Story": ["Task"],
    "Task": ["Story", "User Story"],
}
_EPIC_NAME_LABEL_RE = re.compile(r"epic name|эпик", re.IGNORECASE)


class ProjectMetadataSource(Protocol):
    def get_project_issue_types(self, project_key: str) -> list[str]:
        ...

    def get_create_field_catalog(self, project_key: str) -> dict[str, dict[str, str]]:
        ...


class FieldResolver:
    """Owns the per-process ProjectTypeCatalog and answers naming questions."""

    def __init__(self, client: ProjectMetadataSource, settings: SyncSettings) -> None:
        self.client = client
        self.settings = settings
        self.catalog = ProjectTypeCatalog(epic_name_field=settings.epic_name_field)

    def ensure_project(self) -> bool:
        """Validate the project once; later calls reuse the result."""
        if self.catalog.validated:
            return True
        if self.catalog.validation_failed:
            return False

        project_key = self.settings.project_key
        try:
            types = self.client.get_project_issue_types(project_key)
        except Exception as exc:
            self.catalog.validation_failed = True
            logger.error(
                f"Project validation failed for key '{project_key}'. "
                f"Verify it exists and you have permissions. {exc}"
            )
            return False

        self.catalog.available_issue_types = types
        self.catalog.validated = True
        logger.info(f"Project '{project_key}' OK. Issue types: {', '.join(types)}")
        return True

    def resolve_issue_type_name(self, kind: IssueKind) -> str:
        if kind == "Story" and self.settings.issue_type_story:
            return self.settings.issue_type_story
        if kind == "Task" and self.settings.issue_type_task:
            return self.settings.issue_type_task

        candidates = ISSUE_TYPE_CANDIDATES[kind]
        available = self.catalog.available_issue_types
        if available:
            for name in candidates:
                if name in available:
                    return name
            for name in _CROSS_KIND_FALLBACKS.get(kind, []):
                if name in available:
                    return name
        return candidates[0]

    def _load_create_fields(self) -> dict[str, dict[str, str]]:
        if self.catalog.create_fields is not None:
            return self.catalog.create_fields
        try:
            self.catalog.create_fields = self.client.get_create_field_catalog(self.settings.project_key)
        except Exception as exc:
            logger.warning(f"Failed to load create meta: {exc}")
            self.catalog.create_fields = {}
        return self.catalog.create_fields

    def _epic_create_fields(self) -> dict[str, str] | None:
        create_fields = self._load_create_fields()
        for name in ISSUE_TYPE_CANDIDATES["Epic"]:
            if name in create_fields:
                return create_fields[name]
        return None

    def resolve_epic_name_field(self) -> str | None:
        if self.catalog.epic_name_field:
            return self.catalog.epic_name_field

        epic_fields = self._epic_create_fields()
        if not epic_fields:
            return None
        for field_id, label in epic_fields.items():
            if _EPIC_NAME_LABEL_RE.search(label or ""):
                self.catalog.epic_name_field = field_id
                logger.info(f"Auto-detected Epic Name field via create meta: {field_id}")
                return field_id
        return None

    def epic_name_fields(self, summary: str) -> dict[str, Any]:
        """Epic-name field payload, only if the create screen still has it."""
        field_id = self.resolve_epic_name_field()
        if not field_id:
            return {}
        epic_fields = self._epic_create_fields() or {}
        if field_id not in epic_fields:
            logger.warning(f"Skipping Epic Name field '{field_id}' not present on create screen")
            return {}
        return {field_id: summary}
