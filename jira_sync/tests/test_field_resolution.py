import unittest
from pathlib import Path

from jira_sync.config import SyncSettings
from jira_sync.field_resolution import FieldResolver
from jira_sync.tracker.client import TrackerError


def _settings(**overrides) -> SyncSettings:
    values = {
        "base_url": "https://acme.atlassian.net",
        "email": "me@acme.io",
        "api_token": "secret",
        "project_key": "PRJ",
        "root_dir": Path("/tmp/.jira"),
    }
    values.update(overrides)
    return SyncSettings(**values)


class _FakeMetadata:
    def __init__(self, issue_types=None, catalog=None, fail_project=False, fail_catalog=False) -> None:
        self.issue_types = issue_types or []
        self.catalog = catalog or {}
        self.fail_project = fail_project
        self.fail_catalog = fail_catalog
        self.project_calls = 0
        self.catalog_calls = 0

    def get_project_issue_types(self, project_key):
        self.project_calls += 1
        if self.fail_project:
            raise TrackerError("Jira API 404", status_code=404)
        return list(self.issue_types)

    def get_create_field_catalog(self, project_key):
        self.catalog_calls += 1
        if self.fail_catalog:
            raise TrackerError("Jira API 500", status_code=500)
        return self.catalog


class EnsureProjectTests(unittest.TestCase):
    def test_validates_once(self) -> None:
        meta = _FakeMetadata(issue_types=["Epic", "Story", "Task"])
        resolver = FieldResolver(meta, _settings())

        self.assertTrue(resolver.ensure_project())
        self.assertTrue(resolver.ensure_project())
        self.assertEqual(meta.project_calls, 1)
        self.assertEqual(resolver.catalog.available_issue_types, ["Epic", "Story", "Task"])

    def test_failure_is_sticky_and_logged_once(self) -> None:
        meta = _FakeMetadata(fail_project=True)
        resolver = FieldResolver(meta, _settings())

        with self.assertLogs("jira_sync.fields", level="ERROR") as logs:
            self.assertFalse(resolver.ensure_project())
            self.assertFalse(resolver.ensure_project())

        self.assertEqual(meta.project_calls, 1)
        self.assertEqual(len(logs.records), 1)


class IssueTypeNameTests(unittest.TestCase):
    def _resolver(self, types, **settings) -> FieldResolver:
        resolver = FieldResolver(_FakeMetadata(issue_types=types), _settings(**settings))
        resolver.ensure_project()
        return resolver

    def test_overrides_win(self) -> None:
        resolver = self._resolver(["Story", "Task"], issue_type_story="Feature", issue_type_task="Chore")
        self.assertEqual(resolver.resolve_issue_type_name("Story"), "Feature")
        self.assertEqual(resolver.resolve_issue_type_name("Task"), "Chore")

    def test_localized_candidates(self) -> None:
        resolver = self._resolver(["Эпик", "История", "Задача"])
        self.assertEqual(resolver.resolve_issue_type_name("Epic"), "Эпик")
        self.assertEqual(resolver.resolve_issue_type_name("Story"), "История")
        self.assertEqual(resolver.resolve_issue_type_name("Task"), "Задача")

    def test_user_story_alternate(self) -> None:
        resolver = self._resolver(["Epic", "User Story", "Task"])
        self.assertEqual(resolver.resolve_issue_type_name("Story"), "User Story")

    def test_cross_kind_fallback(self) -> None:
        self.assertEqual(self._resolver(["Epic", "Task"]).resolve_issue_type_name("Story"), "Task")
        self.assertEqual(self._resolver(["Epic", "User Story"]).resolve_issue_type_name("Task"), "User Story")

    def test_canonical_default_when_nothing_matches(self) -> None:
        resolver = self._resolver(["Bug"])
        self.assertEqual(resolver.resolve_issue_type_name("Story"), "Story")
        self.assertEqual(resolver.resolve_issue_type_name("Epic"), "Epic")

    def test_canonical_default_before_validation(self) -> None:
        resolver = FieldResolver(_FakeMetadata(), _settings())
        self.assertEqual(resolver.resolve_issue_type_name("Task"), "Task")


class EpicNameFieldTests(unittest.TestCase):
    CATALOG = {
        "Epic": {"summary": "Summary", "customfield_10011": "Epic Name"},
        "Task": {"summary": "Summary"},
    }

    def test_configured_field_skips_detection(self) -> None:
        meta = _FakeMetadata(catalog=self.CATALOG)
        resolver = FieldResolver(meta, _settings(epic_name_field="customfield_10011"))

        self.assertEqual(resolver.resolve_epic_name_field(), "customfield_10011")
        self.assertEqual(meta.catalog_calls, 0)

    def test_detects_and_caches(self) -> None:
        meta = _FakeMetadata(catalog=self.CATALOG)
        resolver = FieldResolver(meta, _settings())

        self.assertEqual(resolver.resolve_epic_name_field(), "customfield_10011")
        self.assertEqual(resolver.epic_name_fields("Launch"), {"customfield_10011": "Launch"})
        self.assertEqual(meta.catalog_calls, 1)

    def test_detects_localized_label(self) -> None:
        catalog = {"Эпик": {"customfield_2": "Имя эпика"}}
        resolver = FieldResolver(_FakeMetadata(catalog=catalog), _settings())
        self.assertEqual(resolver.resolve_epic_name_field(), "customfield_2")

    def test_configured_field_missing_from_screen_is_omitted(self) -> None:
        resolver = FieldResolver(_FakeMetadata(catalog=self.CATALOG), _settings(epic_name_field="customfield_99"))

        with self.assertLogs("jira_sync.fields", level="WARNING"):
            self.assertEqual(resolver.epic_name_fields("Launch"), {})

    def test_no_epic_concept(self) -> None:
        resolver = FieldResolver(_FakeMetadata(catalog={"Task": {"summary": "Summary"}}), _settings())
        self.assertIsNone(resolver.resolve_epic_name_field())
        self.assertEqual(resolver.epic_name_fields("Launch"), {})

    def test_catalog_failure_is_cached_as_empty(self) -> None:
        meta = _FakeMetadata(fail_catalog=True)
        resolver = FieldResolver(meta, _settings())

        with self.assertLogs("jira_sync.fields", level="WARNING"):
            self.assertIsNone(resolver.resolve_epic_name_field())
        self.assertIsNone(resolver.resolve_epic_name_field())
        self.assertEqual(meta.catalog_calls, 1)


if __name__ == "__main__":
    unittest.main()
