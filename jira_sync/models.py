"""Pydantic models shared by the parser, resolver and sync engine."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

IssueKind = Literal["Epic", "Story", "Task"]

# "created" | "updated" | "recreated" | "skipped" | "failed" | "ignored"
SyncOutcome = str

JIRA_LINE_RE = re.compile(r"^JIRA:\s*", re.IGNORECASE)


def strip_jira_lines(lines: list[str]) -> list[str]:
    return [line for line in lines if not JIRA_LINE_RE.match(line)]


class ParsedDocument(BaseModel):
    file_path: Path
    issue_kind: IssueKind = "Task"
    summary: str = ""
    internal_key: Optional[str] = None  # Key: ... (local only)
    remote_key: Optional[str] = None  # from the JIRA: browse url
    content: str = ""

    @property
    def body_lines(self) -> list[str]:
        return strip_jira_lines(re.split(r"\r?\n", self.content))

    @property
    def body(self) -> str:
        return "\n".join(self.body_lines)


class CreatedIssue(BaseModel):
    key: str
    id: str = ""


class ProjectTypeCatalog(BaseModel):
    """Per-process view of what the target project accepts.

    Populated on first need and never invalidated during a run.
    """

    validated: bool = False
    validation_failed: bool = False
    available_issue_types: list[str] = Field(default_factory=list)
    # issue type name -> {field id -> field display name}; None until loaded
    create_fields: Optional[dict[str, dict[str, str]]] = None
    epic_name_field: Optional[str] = None
