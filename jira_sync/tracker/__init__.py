"""Jira REST client."""

from jira_sync.tracker.client import JiraClient, TrackerError

__all__ = ["JiraClient", "TrackerError"]
