"""Thin authenticated wrapper over the Jira REST API."""
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from jira_sync.models import CreatedIssue
from jira_sync.observability import record_tracker_request

logger = logging.getLogger("jira_sync.tracker")


class TrackerError(RuntimeError):
    """Jira answered with an unexpected status, or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: str = "",
        method: str = "",
        path: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.method = method
        self.path = path


def basic_auth_header(email: str, api_token: str) -> str:
    raw = f"{email}:{api_token}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


class JiraClient:
    """One method per Jira capability the sync engine needs."""

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        *,
        api_version: str = "3",
        timeout: float = 30.0,
        session: requests.Session | None = None,
        project_key: str = "",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_base = f"{self.base_url}/rest/api/{api_version}"
        self.timeout = timeout
        self.project_key = project_key
        self._session = session or requests.Session()
        self._headers = {
            "Authorization": basic_auth_header(email, api_token),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def browse_url(self, key: str) -> str:
        return f"{self.base_url}/browse/{key}"

    def _send(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> requests.Response:
        url = f"{self.api_base}{path}"
        try:
            resp = self._session.request(
                method,
                url,
                headers=self._headers,
                params=params,
                data=json.dumps(json_body) if json_body is not None else None,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            record_tracker_request(operation, None, project_key=self.project_key)
            raise TrackerError(
                f"Jira request failed {method} {path}: {exc}",
                method=method,
                path=path,
            ) from exc
        record_tracker_request(operation, resp.status_code, project_key=self.project_key)
        return resp

    @staticmethod
    def _raise_for_status(resp: requests.Response, method: str, path: str) -> None:
        if 200 <= resp.status_code < 300:
            return
        body = resp.text or ""
        raise TrackerError(
            f"Jira API {resp.status_code} {method} {path}: {body[:400]}",
            status_code=resp.status_code,
            body=body,
            method=method,
            path=path,
        )

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    def get_issue(self, key: str) -> dict[str, Any] | None:
        """Fetch an issue. Returns None when Jira answers 404."""
        path = f"/issue/{quote(key, safe='')}"
        resp = self._send("GET", path, operation="get_issue")
        if resp.status_code == 404:
            logger.info(f"Issue {key} not found")
            return None
        self._raise_for_status(resp, "GET", path)
        return self._json(resp) or {}

    def create_issue(self, fields: dict[str, Any]) -> CreatedIssue:
        resp = self._send("POST", "/issue", operation="create_issue", json_body={"fields": fields})
        self._raise_for_status(resp, "POST", "/issue")
        payload = self._json(resp) or {}
        try:
            return CreatedIssue.model_validate(payload)
        except ValidationError as exc:
            raise TrackerError(
                f"Jira create response missing issue key: {payload}",
                status_code=resp.status_code,
                body=resp.text or "",
                method="POST",
                path="/issue",
            ) from exc

    def update_issue(self, key: str, fields: dict[str, Any]) -> None:
        path = f"/issue/{quote(key, safe='')}"
        resp = self._send("PUT", path, operation="update_issue", json_body={"fields": fields})
        self._raise_for_status(resp, "PUT", path)

    def get_project_issue_types(self, project_key: str) -> list[str]:
        path = f"/project/{quote(project_key, safe='')}"
        resp = self._send("GET", path, operation="get_project")
        self._raise_for_status(resp, "GET", path)
        project = self._json(resp) or {}
        return [
            str(item.get("name"))
            for item in project.get("issueTypes") or []
            if isinstance(item, dict) and item.get("name")
        ]

    def get_create_field_catalog(self, project_key: str) -> dict[str, dict[str, str]]:
        """Map issue type name -> {field id: field display name} from createmeta."""
        path = "/issue/createmeta"
        resp = self._send(
            "GET",
            path,
            operation="get_createmeta",
            params={"projectKeys": project_key, "expand": "projects.issuetypes.fields"},
        )
        self._raise_for_status(resp, "GET", path)
        meta = self._json(resp) or {}
        projects = [p for p in meta.get("projects") or [] if isinstance(p, dict)]
        project = next((p for p in projects if p.get("key") == project_key), None)
        if project is None and projects:
            project = projects[0]
        if project is None:
            return {}

        catalog: dict[str, dict[str, str]] = {}
        for issue_type in project.get("issuetypes") or []:
            if not isinstance(issue_type, dict) or not issue_type.get("name"):
                continue
            fields = issue_type.get("fields") or {}
            catalog[str(issue_type["name"])] = {
                str(field_id): str((field or {}).get("name") or "")
                for field_id, field in fields.items()
                if isinstance(field, dict) or field is None
            }
        return catalog
