"""Write the Jira browse link back into a work-item file."""
from __future__ import annotations

import logging
import re
from pathlib import Path

from jira_sync.models import JIRA_LINE_RE

logger = logging.getLogger("jira_sync.parser")

_KEY_LINE_RE = re.compile(r"^Key:\s*", re.IGNORECASE)


def contains_url(text: str, url: str) -> bool:
    """True when `url` appears as a whole link, not as a prefix of a longer key."""
    return re.search(re.escape(url) + r"(?![A-Za-z0-9-])", text) is not None


def apply_tracker_link(text: str, url: str) -> str:
    """Return `text` with a `JIRA: <url>` line in place.

    An existing JIRA line is replaced; otherwise the line goes right after
    the `Key:` line, or after the title when there is none.
    """
    if contains_url(text, url):
        return text

    link_line = f"JIRA: {url}"
    lines = re.split(r"\r?\n", text)

    jira_idx = next((i for i, line in enumerate(lines) if JIRA_LINE_RE.match(line)), -1)
    if jira_idx >= 0:
        lines[jira_idx] = link_line
        return "\n".join(lines)

    key_idx = next((i for i, line in enumerate(lines) if _KEY_LINE_RE.match(line)), -1)
    insert_at = key_idx + 1 if key_idx >= 0 else 1
    lines.insert(insert_at, link_line)
    return "\n".join(lines)


def ensure_tracker_link(file_path: Path, url: str) -> bool:
    """Patch the file on disk. Returns True if the content changed."""
    text = file_path.read_text(encoding="utf-8")
    updated = apply_tracker_link(text, url)
    if updated == text:
        return False
    file_path.write_text(updated, encoding="utf-8")
    logger.info(f"Updated {file_path.name} with JIRA link {url}")
    return True
