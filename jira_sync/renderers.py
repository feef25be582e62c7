"""Turn a ParsedDocument into the description value Jira expects.

REST v3 only accepts Atlassian Document Format (ADF) for rich-text
fields; v2 takes plain wiki text. Both renderers share one interface so
the sync engine never needs to know which one it holds.
"""
from __future__ import annotations

import re
from typing import Any, Protocol

from jira_sync.models import ParsedDocument

_BULLET_RE = re.compile(r"^[-*+]\s+(.*)")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)")


class DescriptionRenderer(Protocol):
    def render(self, doc: ParsedDocument) -> Any:
        ...


def _text(value: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": value}] if value else []


def adf_paragraph(text: str) -> dict[str, Any]:
    return {"type": "paragraph", "content": _text(text)}


def adf_heading(level: int, text: str) -> dict[str, Any]:
    return {"type": "heading", "attrs": {"level": level}, "content": _text(text)}


def adf_bullet_list(items: list[str]) -> dict[str, Any]:
    return {
        "type": "bulletList",
        "content": [{"type": "listItem", "content": [adf_paragraph(item)]} for item in items],
    }


def build_adf_blocks(lines: list[str]) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = []
    paragraph: list[str] = []
    bullets: list[str] = []

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append(adf_paragraph(" ".join(paragraph)))
            paragraph.clear()

    def flush_list() -> None:
        if bullets:
            blocks.append(adf_bullet_list(list(bullets)))
            bullets.clear()

    for raw in lines:
        line = raw.rstrip()
        if not line.strip():
            flush_paragraph()
            flush_list()
            continue

        bullet = _BULLET_RE.match(line)
        if bullet:
            flush_paragraph()
            bullets.append(bullet.group(1))
            continue

        heading = _HEADING_RE.match(line)
        if heading:
            flush_paragraph()
            flush_list()
            blocks.append(adf_heading(len(heading.group(1)), heading.group(2).strip()))
            continue

        paragraph.append(line.strip())

    flush_paragraph()
    flush_list()
    return blocks


class AdfRenderer:
    def render(self, doc: ParsedDocument) -> dict[str, Any]:
        blocks = build_adf_blocks(doc.body_lines)
        if not blocks:
            blocks = [adf_paragraph(doc.summary)]
        return {"type": "doc", "version": 1, "content": blocks}


class PlainTextRenderer:
    def render(self, doc: ParsedDocument) -> str:
        text = doc.body.strip()
        return text or doc.summary


def get_renderer(description_format: str) -> DescriptionRenderer:
    if description_format == "text":
        return PlainTextRenderer()
    return AdfRenderer()
