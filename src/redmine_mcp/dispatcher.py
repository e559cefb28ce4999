"""
Operation dispatcher for the Redmine tools.

For every tool the Dispatcher resolves which ids to use (explicit argument
first, then the ContextStore), checks local preconditions before touching
Redmine, performs the remote calls in sequence and returns a structured
OperationResult. Rendering to text happens in formatters.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type, Union

import httpx
from pydantic import BaseModel, ValidationError

from .client import RedmineClient
from .context import ContextStore
from .errors import (
    InvalidArgumentsError,
    MissingContextError,
    MissingRequiredFieldError,
    RedmineMCPError,
    RemoteNotFoundError,
    UnknownOperationError,
    classify_http_error,
)
from .models import (
    AddNoteInput,
    CheckMyIssuesInput,
    CreateTaskInput,
    EmptyInput,
    GetTaskInput,
    IssueIdInput,
    ListTasksInput,
    LogTimeInput,
    OperationResult,
    SetCurrentProjectInput,
    SetCurrentTaskInput,
    SimpleFormatInput,
    UpdateTaskInput,
)

logger = logging.getLogger(__name__)

# Status filters Redmine understands without a numeric id
STATUS_KEYWORDS = ("open", "closed", "*")

UPDATABLE_FIELDS = (
    "subject",
    "description",
    "status_id",
    "priority_id",
    "assigned_to_id",
    "estimated_hours",
    "done_ratio",
    "notes",
)

Handler = Callable[[Any], Awaitable[Dict[str, Any]]]


def group_time_entries(entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Group time entries by issue and sum their hours.

    Groups keep the order in which their issue first appears. Entries logged
    on a project without an issue share a group whose issue_id is None.

    Returns:
        Dict with "groups" (issue_id, hours, entries) and "total_hours"
    """
    groups: Dict[Optional[int], Dict[str, Any]] = {}
    total = 0.0
    for entry in entries:
        hours = float(entry.get("hours") or 0)
        issue_id = (entry.get("issue") or {}).get("id")
        group = groups.setdefault(issue_id, {"issue_id": issue_id, "hours": 0.0, "entries": []})
        group["hours"] += hours
        group["entries"].append(entry)
        total += hours

    for group in groups.values():
        group["hours"] = round(group["hours"], 2)

    return {"groups": list(groups.values()), "total_hours": round(total, 2)}


class Dispatcher:
    """Runs Redmine tool operations against a client and a context store."""

    def __init__(self, client: RedmineClient, store: ContextStore):
        self.client = client
        self.store = store
        self._operations: Dict[str, Tuple[Type[BaseModel], Handler]] = {
            "create_task": (CreateTaskInput, self.create_task),
            "get_task": (GetTaskInput, self.get_task),
            "update_task": (UpdateTaskInput, self.update_task),
            "add_note": (AddNoteInput, self.add_note),
            "log_time": (LogTimeInput, self.log_time),
            "list_tasks": (ListTasksInput, self.list_tasks),
            "get_time_entries": (IssueIdInput, self.get_time_entries),
            "get_today_time_entries": (SimpleFormatInput, self.get_today_time_entries),
            "list_activities": (SimpleFormatInput, self.list_activities),
            "list_issue_statuses": (SimpleFormatInput, self.list_issue_statuses),
            "check_my_issues": (CheckMyIssuesInput, self.check_my_issues),
            "list_projects": (SimpleFormatInput, self.list_projects),
            "get_current_user": (EmptyInput, self.get_current_user),
            "set_current_project": (SetCurrentProjectInput, self.set_current_project),
            "get_current_project": (EmptyInput, self.get_current_project),
            "set_current_task": (SetCurrentTaskInput, self.set_current_task),
            "get_current_task": (EmptyInput, self.get_current_task),
            "get_context": (EmptyInput, self.get_context),
            "clear_context": (EmptyInput, self.clear_context),
        }

    @property
    def operation_names(self) -> List[str]:
        return list(self._operations)

    def input_model(self, name: str) -> Type[BaseModel]:
        if name not in self._operations:
            raise UnknownOperationError(name)
        return self._operations[name][0]

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> OperationResult:
        """
        Run a tool from a loosely-typed argument bag.

        The bag is validated into the tool's input model first; unknown
        tools and invalid arguments become failure results.
        """
        try:
            model = self.input_model(name)
            params = self._validate(model, arguments or {})
        except RedmineMCPError as e:
            logger.info("Rejected %s: %s", name, e.message)
            return OperationResult.failure(name, e)
        return await self.dispatch(name, params)

    async def dispatch(self, name: str, params: BaseModel) -> OperationResult:
        """Run a tool with already-validated params."""
        if name not in self._operations:
            return OperationResult.failure(name, UnknownOperationError(name))

        _, handler = self._operations[name]
        try:
            data = await handler(params)
        except RedmineMCPError as e:
            logger.info("%s failed: %s", name, e.message)
            return OperationResult.failure(name, e)
        except Exception as e:
            error = classify_http_error(e)
            if not isinstance(e, httpx.HTTPError):
                logger.exception("Unexpected error in %s", name)
            else:
                logger.warning("%s failed: %s", name, error.message)
            return OperationResult.failure(name, error)
        return OperationResult.success(name, data)

    @staticmethod
    def _validate(model: Type[BaseModel], arguments: Dict[str, Any]) -> BaseModel:
        try:
            return model.model_validate(arguments)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False)
            missing = [".".join(str(p) for p in err["loc"]) for err in errors if err["type"] == "missing"]
            if missing:
                raise MissingRequiredFieldError(
                    f"Missing required field{'s' if len(missing) > 1 else ''}: {', '.join(missing)}"
                ) from e
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in errors
            )
            raise InvalidArgumentsError(
                f"Invalid arguments - {problems}", detail=errors
            ) from e

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def _resolve_project(self, explicit: Optional[Union[int, str]]) -> Union[int, str]:
        project_id = explicit if explicit is not None else self.store.get_project()
        if project_id is None:
            raise MissingContextError("project_id", "set_current_project")
        return project_id

    def _resolve_task(self, explicit: Optional[int]) -> int:
        task_id = explicit if explicit is not None else self.store.get_task()
        if task_id is None:
            raise MissingContextError("issue_id", "set_current_task")
        return task_id

    async def _resolve_status(self, status_id: Optional[Union[int, str]]) -> Optional[Union[int, str]]:
        """Accept keywords and ids as-is, look status names up in the catalog."""
        if status_id is None or isinstance(status_id, int):
            return status_id
        if status_id in STATUS_KEYWORDS or status_id.isdigit():
            return status_id

        statuses = (await self.client.list_issue_statuses()).get("issue_statuses", [])
        for status in statuses:
            if status.get("name", "").lower() == status_id.lower():
                return status["id"]
        raise InvalidArgumentsError(
            f"Unknown issue status '{status_id}'.",
            hint="Use list_issue_statuses to see valid statuses, or use \"open\", \"closed\" or \"*\".",
            detail={"issue_statuses": statuses}
        )

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def create_task(self, params: CreateTaskInput) -> Dict[str, Any]:
        project_id = self._resolve_project(params.project_id)

        assigned_to_id = params.assigned_to_id
        if assigned_to_id is None:
            user = await self.client.get_current_user()
            assigned_to_id = user["user"]["id"]

        result = await self.client.create_issue({
            "project_id": project_id,
            "subject": params.subject,
            "description": params.description,
            "tracker_id": params.tracker_id,
            "status_id": params.status_id,
            "priority_id": params.priority_id,
            "assigned_to_id": assigned_to_id,
            "estimated_hours": params.estimated_hours,
            "parent_issue_id": params.parent_issue_id,
        })
        issue = result["issue"]
        logger.info("Created issue #%s in project %s", issue.get("id"), project_id)
        return {"issue": issue, "url": self.client.issue_url(issue["id"])}

    async def get_task(self, params: GetTaskInput) -> Dict[str, Any]:
        issue_id = self._resolve_task(params.issue_id)
        return await self.client.get_issue(issue_id, params.include)

    async def update_task(self, params: UpdateTaskInput) -> Dict[str, Any]:
        issue_id = self._resolve_task(params.issue_id)

        updates = {
            field: getattr(params, field)
            for field in UPDATABLE_FIELDS
            if field in params.model_fields_set and getattr(params, field) is not None
        }
        if not updates:
            raise MissingRequiredFieldError(
                "No fields to update.",
                hint=f"Provide at least one of: {', '.join(UPDATABLE_FIELDS)}."
            )

        await self.client.update_issue(issue_id, updates)
        logger.info("Updated issue #%s (%s)", issue_id, ", ".join(updates))
        return {
            "issue_id": issue_id,
            "updated_fields": list(updates),
            "url": self.client.issue_url(issue_id),
        }

    async def add_note(self, params: AddNoteInput) -> Dict[str, Any]:
        issue_id = self._resolve_task(params.issue_id)
        if not params.notes:
            raise MissingRequiredFieldError("notes is required to add a note.")

        await self.client.add_note(issue_id, params.notes)
        return {"issue_id": issue_id, "url": self.client.issue_url(issue_id)}

    async def list_tasks(self, params: ListTasksInput) -> Dict[str, Any]:
        # No current project means all projects
        project_id = params.project_id if params.project_id is not None else self.store.get_project()
        status_id = await self._resolve_status(params.status_id)

        result = await self.client.list_issues(
            project_id=project_id,
            assigned_to_id=params.assigned_to_id,
            status_id=status_id,
            limit=params.limit,
            offset=params.offset,
        )
        issues = result.get("issues", [])
        return {
            "project_id": project_id,
            "total_count": result.get("total_count", len(issues)),
            "count": len(issues),
            "issues": issues,
        }

    async def check_my_issues(self, params: CheckMyIssuesInput) -> Dict[str, Any]:
        # Without a status filter, offer the catalog rather than guessing one
        if params.status_id is None:
            statuses = await self.client.list_issue_statuses()
            return {"needs_status": True, "statuses": statuses.get("issue_statuses", [])}

        status_id = await self._resolve_status(params.status_id)
        user = (await self.client.get_current_user())["user"]
        result = await self.client.list_issues(
            assigned_to_id=user["id"],
            status_id=status_id,
            limit=params.limit,
        )
        issues = result.get("issues", [])
        return {
            "needs_status": False,
            "user": user,
            "total_count": result.get("total_count", len(issues)),
            "count": len(issues),
            "issues": issues,
        }

    # ------------------------------------------------------------------
    # Time tracking
    # ------------------------------------------------------------------

    async def log_time(self, params: LogTimeInput) -> Dict[str, Any]:
        issue_id = self._resolve_task(params.issue_id)
        if params.hours is None:
            raise MissingRequiredFieldError("hours is required for logging time.")
        if params.activity_id is None:
            raise MissingRequiredFieldError(
                "activity_id is required for logging time.",
                hint="Use list_activities to see available activity options and their IDs."
            )

        result = await self.client.log_time({
            "issue_id": issue_id,
            "hours": params.hours,
            "activity_id": params.activity_id,
            "comments": params.comments,
            "spent_on": params.spent_on,
        })
        logger.info("Logged %sh on issue #%s", params.hours, issue_id)
        return {"issue_id": issue_id, "time_entry": result["time_entry"]}

    async def get_time_entries(self, params: IssueIdInput) -> Dict[str, Any]:
        issue_id = self._resolve_task(params.issue_id)
        return await self.client.get_time_entries(issue_id)

    async def get_today_time_entries(self, params: SimpleFormatInput) -> Dict[str, Any]:
        day = datetime.now().strftime("%Y-%m-%d")
        result = await self.client.get_today_time_entries(day)
        summary = group_time_entries(result.get("time_entries", []))
        summary["date"] = day
        return summary

    async def list_activities(self, params: SimpleFormatInput) -> Dict[str, Any]:
        result = await self.client.list_time_entry_activities()
        return {"activities": result.get("time_entry_activities", [])}

    # ------------------------------------------------------------------
    # Catalogs
    # ------------------------------------------------------------------

    async def list_issue_statuses(self, params: SimpleFormatInput) -> Dict[str, Any]:
        result = await self.client.list_issue_statuses()
        return {"statuses": result.get("issue_statuses", [])}

    async def list_projects(self, params: SimpleFormatInput) -> Dict[str, Any]:
        result = await self.client.list_projects()
        return {"projects": result["projects"], "total_count": result["total_count"]}

    async def get_current_user(self, params: EmptyInput) -> Dict[str, Any]:
        return await self.client.get_current_user()

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    async def set_current_project(self, params: SetCurrentProjectInput) -> Dict[str, Any]:
        try:
            project = (await self.client.get_project(params.project_id))["project"]
        except Exception as e:
            error = classify_http_error(e)
            if isinstance(error, RemoteNotFoundError):
                raise RemoteNotFoundError(
                    f"Project '{params.project_id}' not found.",
                    hint=("Call list_projects first to see available projects and make sure "
                          "the project exists before calling set_current_project."),
                    status_code=error.status_code,
                    detail=error.detail
                ) from e
            raise error from e

        # Always store the numeric id, never the slug
        self.store.set_project(project["id"])
        return {"project": project}

    async def get_current_project(self, params: EmptyInput) -> Dict[str, Any]:
        project_id = self.store.get_project()
        if project_id is None:
            return {"project": None}
        return {"project": (await self.client.get_project(project_id))["project"]}

    async def set_current_task(self, params: SetCurrentTaskInput) -> Dict[str, Any]:
        # Confirm the issue exists before storing it; a failed lookup leaves
        # the previous current task in place.
        try:
            issue = (await self.client.get_issue(params.issue_id))["issue"]
        except Exception as e:
            error = classify_http_error(e)
            if isinstance(error, RemoteNotFoundError):
                raise RemoteNotFoundError(
                    f"Task #{params.issue_id} not found.",
                    hint="Use list_tasks to find an existing task ID.",
                    status_code=error.status_code,
                    detail=error.detail
                ) from e
            raise error from e

        self.store.set_task(issue["id"])
        return {"issue": issue}

    async def get_current_task(self, params: EmptyInput) -> Dict[str, Any]:
        task_id = self.store.get_task()
        if task_id is None:
            return {"issue": None}
        return {"issue": (await self.client.get_issue(task_id))["issue"]}

    async def get_context(self, params: EmptyInput) -> Dict[str, Any]:
        context = self.store.get_all()
        project = None
        issue = None
        if context["project_id"] is not None:
            project = (await self.client.get_project(context["project_id"]))["project"]
        if context["task_id"] is not None:
            issue = (await self.client.get_issue(context["task_id"]))["issue"]
        return {"project": project, "issue": issue}

    async def clear_context(self, params: EmptyInput) -> Dict[str, Any]:
        self.store.clear()
        return {"cleared": True}
