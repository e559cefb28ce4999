"""Tests for the Redmine REST client."""

import asyncio

import httpx
import pytest

from redmine_mcp.client import PAGE_SIZE


def _projects_handler(total, page_size=PAGE_SIZE):
    def handler(request):
        offset = int(request.url.params["offset"])
        limit = int(request.url.params["limit"])
        ids = range(offset + 1, min(offset + min(limit, page_size), total) + 1)
        return httpx.Response(200, json={
            "projects": [{"id": i, "name": f"Project {i}", "identifier": f"p{i}"} for i in ids],
            "total_count": total,
            "offset": offset,
            "limit": limit,
        })
    return handler


class TestRequests:
    """Tests for request shaping."""

    def test_sends_api_key_header(self, client, fake):
        fake.add("GET", "/users/current.json", {"user": {"id": 1, "login": "jdoe"}})

        result = asyncio.run(client.get_current_user())

        assert result["user"]["login"] == "jdoe"
        request = fake.requests[0]
        assert request.headers["X-Redmine-API-Key"] == "secret-key"
        assert str(request.url) == "https://redmine.example.com/users/current.json"

    def test_get_issue_joins_include(self, client, fake):
        fake.add("GET", "/issues/5.json", {"issue": {"id": 5}})

        asyncio.run(client.get_issue(5, ["journals", "watchers"]))

        assert fake.requests[0].url.params["include"] == "journals,watchers"

    def test_get_issue_without_include(self, client, fake):
        fake.add("GET", "/issues/5.json", {"issue": {"id": 5}})

        asyncio.run(client.get_issue(5))

        assert "include" not in fake.requests[0].url.params

    def test_create_issue_drops_none_fields(self, client, fake):
        fake.add("POST", "/issues.json", {"issue": {"id": 9}}, status=201)

        asyncio.run(client.create_issue({"project_id": 1, "subject": "Hi", "description": None}))

        assert fake.body(fake.requests[0]) == {"issue": {"project_id": 1, "subject": "Hi"}}

    def test_update_handles_empty_response(self, client, fake):
        """Redmine answers PUT with 204 and no body."""
        fake.add("PUT", "/issues/5.json", None, status=204)

        result = asyncio.run(client.update_issue(5, {"notes": "hello"}))

        assert result == {}
        assert fake.body(fake.requests[0]) == {"issue": {"notes": "hello"}}

    def test_add_note(self, client, fake):
        fake.add("PUT", "/issues/5.json", None, status=204)

        asyncio.run(client.add_note(5, "a comment"))

        assert fake.body(fake.requests[0]) == {"issue": {"notes": "a comment"}}

    def test_list_issues_drops_unset_filters(self, client, fake):
        fake.add("GET", "/issues.json", {"issues": [], "total_count": 0})

        asyncio.run(client.list_issues(status_id="open", limit=25))

        params = fake.requests[0].url.params
        assert params["status_id"] == "open"
        assert params["limit"] == "25"
        assert "project_id" not in params
        assert "assigned_to_id" not in params

    def test_today_time_entries_query(self, client, fake):
        fake.add("GET", "/time_entries.json", {"time_entries": []})

        asyncio.run(client.get_today_time_entries("2024-03-15"))

        params = fake.requests[0].url.params
        assert params["spent_on"] == "2024-03-15"
        assert params["user_id"] == "me"

    def test_log_time_body(self, client, fake):
        fake.add("POST", "/time_entries.json", {"time_entry": {"id": 1}}, status=201)

        asyncio.run(client.log_time({"issue_id": 5, "hours": 1.5, "activity_id": 9, "spent_on": None}))

        assert fake.body(fake.requests[0]) == {"time_entry": {"issue_id": 5, "hours": 1.5, "activity_id": 9}}

    def test_http_error_raises(self, client, fake):
        fake.add("GET", "/issues/5.json", {"errors": ["nope"]}, status=403)

        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(client.get_issue(5))


class TestListProjects:
    """Tests for paginated project listing."""

    def test_single_page(self, client, fake):
        fake.add_handler("GET", "/projects.json", _projects_handler(3))

        result = asyncio.run(client.list_projects())

        assert len(fake.requests) == 1
        assert result["total_count"] == 3
        assert [p["id"] for p in result["projects"]] == [1, 2, 3]

    def test_aggregates_all_pages(self, client, fake):
        """Should fetch exactly enough pages to cover the reported total."""
        fake.add_handler("GET", "/projects.json", _projects_handler(250))

        result = asyncio.run(client.list_projects())

        assert len(fake.requests) == 3
        assert [int(r.url.params["offset"]) for r in fake.requests] == [0, 100, 200]
        assert all(r.url.params["limit"] == str(PAGE_SIZE) for r in fake.requests)
        ids = [p["id"] for p in result["projects"]]
        assert len(ids) == 250
        assert len(set(ids)) == 250
        assert result["total_count"] == 250

    def test_exact_multiple_of_page_size(self, client, fake):
        fake.add_handler("GET", "/projects.json", _projects_handler(200))

        result = asyncio.run(client.list_projects())

        assert len(fake.requests) == 2
        assert len(result["projects"]) == 200

    def test_stops_on_empty_page(self, client, fake):
        """A total that overstates the real count must not loop forever."""
        def handler(request):
            offset = int(request.url.params["offset"])
            projects = [{"id": 1, "name": "Only"}] if offset == 0 else []
            return httpx.Response(200, json={"projects": projects, "total_count": 5})

        fake.add_handler("GET", "/projects.json", handler)

        result = asyncio.run(client.list_projects())

        assert len(fake.requests) == 2
        assert len(result["projects"]) == 1
        assert result["total_count"] == 5

    def test_no_projects(self, client, fake):
        fake.add("GET", "/projects.json", {"projects": [], "total_count": 0})

        result = asyncio.run(client.list_projects())

        assert len(fake.requests) == 1
        assert result["projects"] == []
        assert result["total_count"] == 0
