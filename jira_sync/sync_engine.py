"""Per-file reconciliation between work-item files and Jira issues.

A file is in one of three states:

- unlinked: no `JIRA:` line, so the issue is created and the link written;
- linked and present remotely: fields are pushed (unless update mode is skip);
- linked but dangling (404): a new issue is created and the link rewritten.
  The stale key is dropped, not archived.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Protocol

from jira_sync.config import SyncSettings
from jira_sync.field_resolution import FieldResolver
from jira_sync.models import CreatedIssue, ParsedDocument, SyncOutcome
from jira_sync.observability import record_parser_failure, record_sync_outcome, start_span
from jira_sync.parsers.documents import ParseFailure, parse_document_file
from jira_sync.parsers.link_writer import ensure_tracker_link
from jira_sync.renderers import AdfRenderer, DescriptionRenderer

logger = logging.getLogger("jira_sync.sync")


class IssueTracker(Protocol):
    def browse_url(self, key: str) -> str:
        ...

    def get_issue(self, key: str) -> dict[str, Any] | None:
        ...

    def create_issue(self, fields: dict[str, Any]) -> CreatedIssue:
        ...

    def update_issue(self, key: str, fields: dict[str, Any]) -> None:
        ...


class SyncEngine:
    def __init__(
        self,
        client: IssueTracker,
        resolver: FieldResolver,
        settings: SyncSettings,
        renderer: DescriptionRenderer | None = None,
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.settings = settings
        self.renderer = renderer or AdfRenderer()

    def _epic_fields(self, doc: ParsedDocument) -> dict[str, Any]:
        if doc.issue_kind != "Epic":
            return {}
        return self.resolver.epic_name_fields(doc.summary)

    def build_create_fields(self, doc: ParsedDocument) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "summary": doc.summary,
            "project": {"key": self.settings.project_key},
            "issuetype": {"name": self.resolver.resolve_issue_type_name(doc.issue_kind)},
            "description": self.renderer.render(doc),
        }
        fields.update(self._epic_fields(doc))
        return fields

    def build_update_fields(self, doc: ParsedDocument) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "summary": doc.summary,
            "description": self.renderer.render(doc),
        }
        fields.update(self._epic_fields(doc))
        return fields

    def _create_and_link(self, doc: ParsedDocument) -> CreatedIssue:
        created = self.client.create_issue(self.build_create_fields(doc))
        ensure_tracker_link(doc.file_path, self.client.browse_url(created.key))
        return created

    def reconcile(self, doc: ParsedDocument) -> SyncOutcome:
        """Apply one create/update/recreate step. Tracker errors propagate."""
        name = doc.file_path.name

        if not doc.remote_key:
            created = self._create_and_link(doc)
            logger.info(f"Created {created.key} for {name}")
            return "created"

        if self.settings.update_mode == "skip":
            logger.info(f"Skip update {doc.remote_key} ({name})")
            return "skipped"

        if self.client.get_issue(doc.remote_key) is None:
            logger.info(f"Remote issue {doc.remote_key} missing, recreating for {name}")
            created = self._create_and_link(doc)
            logger.info(f"Recreated {name} as {created.key} (was {doc.remote_key})")
            return "recreated"

        self.client.update_issue(doc.remote_key, self.build_update_fields(doc))
        logger.info(f"Updated {doc.remote_key} from {name}")
        return "updated"

    def process(self, file_path: Path) -> SyncOutcome:
        """Sync one file. Never raises; failures are logged."""
        started = time.perf_counter()
        outcome: SyncOutcome = "failed"
        with start_span("jira_sync.process", {"file": str(file_path)}):
            try:
                outcome = self._process(file_path)
            except Exception as exc:
                logger.error(f"Failed processing {file_path.name}: {exc}")
                outcome = "failed"
        duration_ms = (time.perf_counter() - started) * 1000.0
        record_sync_outcome(outcome, duration_ms, project_key=self.settings.project_key)
        return outcome

    def _process(self, file_path: Path) -> SyncOutcome:
        if file_path.suffix != self.settings.extension:
            return "ignored"

        try:
            doc = parse_document_file(file_path)
        except ParseFailure as exc:
            logger.error(f"Parse error {file_path.name}: {exc}")
            record_parser_failure(project_key=self.settings.project_key)
            return "failed"

        if not self.resolver.ensure_project():
            logger.warning(f"Skipping {file_path.name} because project not validated")
            return "ignored"

        return self.reconcile(doc)
