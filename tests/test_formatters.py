"""Tests for rendering operation results as text."""

import json

from redmine_mcp.errors import MissingContextError, RemoteError
from redmine_mcp.formatters import CHARACTER_LIMIT, _truncate_response, render_result
from redmine_mcp.models import OperationResult, ResponseFormat


class TestRenderSuccess:
    """Tests for markdown rendering of successful results."""

    def test_today_time_entries(self):
        result = OperationResult.success("get_today_time_entries", {
            "date": "2024-03-15",
            "total_hours": 6.5,
            "groups": [
                {"issue_id": 1, "hours": 3.5, "entries": [
                    {"hours": 2, "activity": {"name": "Development"}, "comments": "API work"},
                    {"hours": 1.5, "activity": {"name": "Development"}},
                ]},
                {"issue_id": 2, "hours": 3.0, "entries": [
                    {"hours": 3, "activity": {"name": "Support"}},
                ]},
            ],
        })

        text = render_result(result)

        assert "Time entries for 2024-03-15:" in text
        assert "Issue #1: 3.5h" in text
        assert "  - 2h (Development): API work" in text
        assert "Issue #2: 3h" in text
        assert text.endswith("Total hours today: 6.5h")

    def test_today_time_entries_empty(self):
        result = OperationResult.success(
            "get_today_time_entries", {"date": "2024-03-15", "total_hours": 0, "groups": []}
        )

        assert render_result(result) == "No time entries logged today."

    def test_statuses_show_markers(self):
        result = OperationResult.success("list_issue_statuses", {"statuses": [
            {"id": 1, "name": "New", "is_default": True, "is_closed": False},
            {"id": 5, "name": "Closed", "is_default": False, "is_closed": True},
        ]})

        text = render_result(result)

        assert "1: New (default) [Open]" in text
        assert "5: Closed [Closed]" in text
        assert '"open" for all open statuses' in text

    def test_activities_show_default(self):
        result = OperationResult.success("list_activities", {"activities": [
            {"id": 8, "name": "Design", "is_default": False},
            {"id": 9, "name": "Development", "is_default": True},
        ]})

        text = render_result(result)

        assert "8: Design\n" in text
        assert "9: Development (default)" in text

    def test_list_projects_counts(self):
        result = OperationResult.success("list_projects", {
            "projects": [{"id": 1, "name": "Website", "identifier": "website"}],
            "total_count": 1,
        })

        text = render_result(result)

        assert text.startswith("Available projects (1 of 1):")
        assert "1: Website (website)" in text

    def test_list_tasks(self):
        result = OperationResult.success("list_tasks", {
            "project_id": 12,
            "total_count": 40,
            "count": 1,
            "issues": [{"id": 42, "subject": "Fix login", "status": {"name": "New"}}],
        })

        text = render_result(result)

        assert text.startswith("Found 40 tasks (Project: 12) (showing 1):")
        assert "#42: Fix login [New]" in text

    def test_check_my_issues_prompts_for_status(self):
        result = OperationResult.success("check_my_issues", {
            "needs_status": True,
            "statuses": [{"id": 1, "name": "New", "is_default": True, "is_closed": False}],
        })

        text = render_result(result)

        assert text.startswith("Please specify a status_id")
        assert "1: New (default) [Open]" in text

    def test_unset_context(self):
        assert "set_current_project" in render_result(
            OperationResult.success("get_current_project", {"project": None})
        )
        assert "set_current_task" in render_result(
            OperationResult.success("get_current_task", {"issue": None})
        )

    def test_context(self):
        result = OperationResult.success("get_context", {
            "project": {"id": 12, "name": "Website"},
            "issue": None,
        })

        text = render_result(result)

        assert "Project: Website (ID: 12)" in text
        assert "Task: Not set" in text

    def test_verbatim_operations_are_json(self):
        payload = {"issue": {"id": 42, "subject": "Fix login"}}
        text = render_result(OperationResult.success("get_task", payload))

        assert json.loads(text) == payload

    def test_json_format(self):
        data = {"statuses": [{"id": 1, "name": "New"}]}
        text = render_result(OperationResult.success("list_issue_statuses", data), ResponseFormat.JSON)

        assert json.loads(text) == data


class TestRenderFailure:
    """Tests for failure rendering."""

    def test_local_failure_has_hint(self):
        result = OperationResult.failure("get_task", MissingContextError("issue_id", "set_current_task"))

        text = render_result(result)

        assert text.startswith("Error: issue_id is required.")
        assert "set_current_task" in text
        assert "Details" not in text

    def test_remote_failure_has_details(self):
        error = RemoteError("Redmine rejected the request.", status_code=422, detail={"errors": ["Subject cannot be blank"]})
        text = render_result(OperationResult.failure("create_task", error))

        assert "Error: Redmine rejected the request." in text
        assert "Details:" in text
        assert "Subject cannot be blank" in text


class TestTruncation:
    """Tests for response size limits."""

    def test_short_content_unchanged(self):
        assert _truncate_response("short") == "short"

    def test_long_content_truncated_at_line(self):
        content = "\n".join("x" * 99 for _ in range(1000))

        text = _truncate_response(content)

        assert "Response Truncated" in text
        body = text.split("\n\n---\n")[0]
        assert len(body) <= CHARACTER_LIMIT
        assert body.endswith("x" * 99)
