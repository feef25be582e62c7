"""Observability helpers."""

from jira_sync.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_parser_failure,
    record_sync_outcome,
    record_tracker_request,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_parser_failure",
    "record_sync_outcome",
    "record_tracker_request",
]
