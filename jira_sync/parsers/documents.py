"""Parse work-item markdown files into ParsedDocument models."""
from __future__ import annotations

import logging
import re
from pathlib import Path

from jira_sync.models import IssueKind, ParsedDocument

logger = logging.getLogger("jira_sync.parser")

_PATH_KINDS: tuple[tuple[str, IssueKind], ...] = (
    ("/epics/", "Epic"),
    ("/user-stories/", "Story"),
    ("/tasks/", "Task"),
)
_EPIC_HEADING_RE = re.compile(r"^#\s*EPIC:", re.IGNORECASE)
_STORY_HEADING_RE = re.compile(r"^#\s*USER STORY:", re.IGNORECASE)
_KEY_LINE_RE = re.compile(r"^Key:\s*", re.IGNORECASE)
_JIRA_URL_LINE_RE = re.compile(r"^JIRA:\s*https?://", re.IGNORECASE)
_BROWSE_KEY_RE = re.compile(r"browse/([A-Z0-9]+-\d+)")


class ParseFailure(ValueError):
    """Raised when a document cannot be read."""


def detect_issue_kind(path: Path | str, first_line: str) -> IssueKind:
    """Directory segment wins; the heading keyword is only a fallback."""
    posix = str(path).replace("\\", "/")
    for segment, kind in _PATH_KINDS:
        if segment in posix:
            return kind
    if _EPIC_HEADING_RE.match(first_line):
        return "Epic"
    if _STORY_HEADING_RE.match(first_line):
        return "Story"
    return "Task"


def extract_summary(first_line: str) -> str:
    summary = re.sub(r"^#+\s*", "", first_line).strip()
    _, colon, rest = summary.partition(":")
    if colon:
        summary = rest.strip()
    return summary


def extract_remote_key(lines: list[str]) -> str | None:
    for line in lines:
        if not _JIRA_URL_LINE_RE.match(line):
            continue
        match = _BROWSE_KEY_RE.search(line)
        if match:
            return match.group(1)
        return None
    return None


def extract_internal_key(lines: list[str]) -> str | None:
    for line in lines:
        if _KEY_LINE_RE.match(line):
            _, _, value = line.partition(":")
            return value.strip() or None
    return None


def parse_document_text(path: Path, text: str) -> ParsedDocument:
    lines = re.split(r"\r?\n", text)
    first_line = lines[0] if lines else ""
    return ParsedDocument(
        file_path=path,
        issue_kind=detect_issue_kind(path, first_line),
        summary=extract_summary(first_line),
        internal_key=extract_internal_key(lines),
        remote_key=extract_remote_key(lines),
        content=text,
    )


def parse_document_file(path: Path) -> ParsedDocument:
    """Parse a single markdown work-item file.

    Raises ParseFailure if the file cannot be read.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseFailure(f"Cannot read {path}: {exc}") from exc
    return parse_document_text(path, text)


def scan_documents(root: Path, extension: str = ".md") -> list[Path]:
    """List candidate files under `root`, sorted, skipping dot-files."""
    if not root.exists():
        return []
    return [
        path
        for path in sorted(root.rglob(f"*{extension}"))
        if path.is_file() and not path.name.startswith(".")
    ]
