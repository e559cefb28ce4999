"""
Async client for the Redmine REST API.

Every method issues one request (list_projects issues one per page) and
returns the decoded JSON body. HTTP failures surface as httpx exceptions;
callers map them with errors.classify_http_error().
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import httpx

from .config import RedmineConfig

logger = logging.getLogger(__name__)

# Redmine caps `limit` at 100 items per page
PAGE_SIZE = 100


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None so omitted fields are never sent."""
    return {k: v for k, v in values.items() if v is not None}


class RedmineClient:
    """Thin async wrapper over the Redmine JSON endpoints."""

    def __init__(
        self,
        config: RedmineConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def issue_url(self, issue_id: int) -> str:
        """Web URL of an issue, for links in tool responses."""
        return f"{self.config.base_url}/issues/{issue_id}"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Redmine-API-Key": self.config.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _make_api_request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Reusable function for all API calls to Redmine.

        Args:
            endpoint: API endpoint (e.g., "/issues.json")
            method: HTTP method (GET, POST or PUT)
            data: JSON body for POST/PUT requests
            params: Query parameters

        Returns:
            JSON response from API, or an empty dict for empty bodies

        Raises:
            httpx.HTTPStatusError: For HTTP errors
            httpx.TimeoutException: For timeout errors
        """
        if method not in ("GET", "POST", "PUT"):
            raise ValueError(f"Unsupported HTTP method: {method}")

        params = _compact(params) if params else None
        logger.debug("Redmine request: %s %s params=%s", method, endpoint, params)

        async with httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=self._get_headers(),
            timeout=self.config.timeout,
            transport=self._transport
        ) as client:
            response = await client.request(method, endpoint, params=params, json=data)

        logger.debug("Redmine response: %s %s -> %s", method, endpoint, response.status_code)
        response.raise_for_status()

        # PUT answers 204 No Content
        if not response.content:
            return {}
        return response.json()

    # Issues

    async def create_issue(self, issue: Dict[str, Any]) -> Dict[str, Any]:
        return await self._make_api_request(
            "/issues.json", method="POST", data={"issue": _compact(issue)}
        )

    async def get_issue(self, issue_id: int, include: Optional[List[str]] = None) -> Dict[str, Any]:
        params = {"include": ",".join(include)} if include else None
        return await self._make_api_request(f"/issues/{issue_id}.json", params=params)

    async def update_issue(self, issue_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Send a partial update; only the keys present in `updates` change."""
        return await self._make_api_request(
            f"/issues/{issue_id}.json", method="PUT", data={"issue": _compact(updates)}
        )

    async def add_note(self, issue_id: int, notes: str) -> Dict[str, Any]:
        return await self._make_api_request(
            f"/issues/{issue_id}.json", method="PUT", data={"issue": {"notes": notes}}
        )

    async def list_issues(
        self,
        project_id: Optional[Union[int, str]] = None,
        assigned_to_id: Optional[Union[int, str]] = None,
        status_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> Dict[str, Any]:
        return await self._make_api_request(
            "/issues.json",
            params={
                "project_id": project_id,
                "assigned_to_id": assigned_to_id,
                "status_id": status_id,
                "limit": limit,
                "offset": offset,
            }
        )

    # Time tracking

    async def log_time(self, time_entry: Dict[str, Any]) -> Dict[str, Any]:
        return await self._make_api_request(
            "/time_entries.json", method="POST", data={"time_entry": _compact(time_entry)}
        )

    async def get_time_entries(self, issue_id: int) -> Dict[str, Any]:
        return await self._make_api_request("/time_entries.json", params={"issue_id": issue_id})

    async def get_today_time_entries(self, day: Optional[str] = None) -> Dict[str, Any]:
        """
        Time entries logged by the current user on one day.

        Args:
            day: Date in YYYY-MM-DD format (defaults to today, local time)

        Returns:
            Redmine time entry list payload
        """
        spent_on = day or datetime.now().strftime("%Y-%m-%d")
        return await self._make_api_request(
            "/time_entries.json",
            params={"spent_on": spent_on, "user_id": "me", "limit": PAGE_SIZE}
        )

    async def list_time_entry_activities(self) -> Dict[str, Any]:
        return await self._make_api_request("/enumerations/time_entry_activities.json")

    # Projects

    async def get_project(self, project_id: Union[int, str]) -> Dict[str, Any]:
        return await self._make_api_request(f"/projects/{project_id}.json")

    async def list_projects(self) -> Dict[str, Any]:
        """
        Fetch every project, following Redmine's pagination.

        Pages of PAGE_SIZE are requested until the aggregated count reaches
        the total_count reported by Redmine.

        Returns:
            Dict with the full "projects" list and the reported "total_count"
        """
        projects: List[Dict[str, Any]] = []
        seen = set()
        offset = 0
        total_count = 0

        while True:
            page = await self._make_api_request(
                "/projects.json", params={"limit": PAGE_SIZE, "offset": offset}
            )
            batch = page.get("projects", [])
            total_count = page.get("total_count", len(batch))

            for project in batch:
                if project.get("id") in seen:
                    continue
                seen.add(project.get("id"))
                projects.append(project)

            offset += PAGE_SIZE
            if not batch or len(projects) >= total_count:
                break

        logger.debug("Fetched %d of %d projects", len(projects), total_count)
        return {
            "projects": projects,
            "total_count": total_count,
            "limit": len(projects),
            "offset": 0,
        }

    # Users and enumerations

    async def get_current_user(self) -> Dict[str, Any]:
        return await self._make_api_request("/users/current.json")

    async def list_issue_statuses(self) -> Dict[str, Any]:
        return await self._make_api_request("/issue_statuses.json")
