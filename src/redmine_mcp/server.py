"""
Redmine MCP Server

This MCP server provides tools to create, inspect and update Redmine issues,
log time, and keep a current project/task as the default for later calls.
Built with FastMCP; runs on stdio.
"""

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from . import __version__
from .client import RedmineClient
from .config import ConfigurationError, RedmineConfig, get_setup_help_message
from .context import ContextStore
from .dispatcher import Dispatcher
from .formatters import render_result
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
    ResponseFormat,
    SetCurrentProjectInput,
    SetCurrentTaskInput,
    SimpleFormatInput,
    UpdateTaskInput,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "redmine_mcp"


def _respond(result: OperationResult, response_format: ResponseFormat = ResponseFormat.MARKDOWN) -> str:
    """Render a result; failures are raised so the host sees isError."""
    text = render_result(result, response_format)
    if not result.ok:
        raise ToolError(text)
    return text


def _annotations(title: str, read_only: bool, idempotent: bool, open_world: bool = True) -> dict:
    return {
        "title": title,
        "readOnlyHint": read_only,
        "destructiveHint": False,
        "idempotentHint": idempotent,
        "openWorldHint": open_world
    }


def create_server(config: RedmineConfig, dispatcher: Optional[Dispatcher] = None) -> FastMCP:
    """
    Create and configure the Redmine MCP server.

    Args:
        config: Validated Redmine connection settings
        dispatcher: Pre-built dispatcher (a fresh client and context store
            are created when omitted)

    Returns:
        Configured FastMCP server instance
    """
    if dispatcher is None:
        dispatcher = Dispatcher(RedmineClient(config), ContextStore())

    mcp = FastMCP(SERVER_NAME)

    # ============================================================================
    # Tool Implementations - Issues
    # ============================================================================

    @mcp.tool(name="create_task", annotations=_annotations("Create Redmine Task", False, False))
    async def create_task(params: CreateTaskInput) -> str:
        """
        Create a new task (issue) in Redmine. Uses the current project if project_id is not specified
        and assigns the task to the current user if assigned_to_id is not specified.

        Args:
            params (CreateTaskInput): Validated input parameters

        Returns:
            str: Confirmation with the new task ID, status and link
        """
        return _respond(await dispatcher.dispatch("create_task", params))

    @mcp.tool(name="get_task", annotations=_annotations("Get Redmine Task", True, True))
    async def get_task(params: GetTaskInput) -> str:
        """
        Get detailed information about a specific task. Uses the current task if issue_id is not specified.

        Args:
            params (GetTaskInput): Validated input parameters

        Returns:
            str: The Redmine issue as JSON
        """
        return _respond(await dispatcher.dispatch("get_task", params))

    @mcp.tool(name="update_task", annotations=_annotations("Update Redmine Task", False, False))
    async def update_task(params: UpdateTaskInput) -> str:
        """
        Update an existing task. Uses the current task if issue_id is not specified.
        Only the fields you provide are changed; notes are added as a comment.

        Args:
            params (UpdateTaskInput): Validated input parameters

        Returns:
            str: Confirmation listing the changed fields
        """
        return _respond(await dispatcher.dispatch("update_task", params))

    @mcp.tool(name="add_note", annotations=_annotations("Comment on Redmine Task", False, False))
    async def add_note(params: AddNoteInput) -> str:
        """
        Add a comment/note to a task. Uses the current task if issue_id is not specified.

        Args:
            params (AddNoteInput): Validated input parameters

        Returns:
            str: Confirmation with a link to the task
        """
        return _respond(await dispatcher.dispatch("add_note", params))

    @mcp.tool(name="list_tasks", annotations=_annotations("List Redmine Tasks", True, True))
    async def list_tasks(params: ListTasksInput) -> str:
        """
        List tasks with optional filters. Uses the current project if project_id is not specified;
        lists across all projects when no current project is set.

        Args:
            params (ListTasksInput): Validated input parameters

        Returns:
            str: Matching tasks with the total count, as markdown or JSON
        """
        return _respond(await dispatcher.dispatch("list_tasks", params), params.response_format)

    @mcp.tool(name="check_my_issues", annotations=_annotations("Check My Issues", True, True))
    async def check_my_issues(params: CheckMyIssuesInput) -> str:
        """
        Check issues assigned to the current user. If status_id is not provided, lists the
        available statuses for you to choose from instead.

        Args:
            params (CheckMyIssuesInput): Validated input parameters

        Returns:
            str: The user's issues, or the status catalog when no status was given
        """
        return _respond(await dispatcher.dispatch("check_my_issues", params), params.response_format)

    # ============================================================================
    # Tool Implementations - Time Tracking
    # ============================================================================

    @mcp.tool(name="log_time", annotations=_annotations("Log Time on Redmine Task", False, False))
    async def log_time(params: LogTimeInput) -> str:
        """
        Log time/hours spent on a task. Uses the current task if issue_id is not specified.
        IMPORTANT: hours and activity_id are required - use list_activities to see available options.

        Args:
            params (LogTimeInput): Validated input parameters

        Returns:
            str: Confirmation with hours, activity and comments
        """
        return _respond(await dispatcher.dispatch("log_time", params))

    @mcp.tool(name="get_time_entries", annotations=_annotations("Get Task Time Entries", True, True))
    async def get_time_entries(params: IssueIdInput) -> str:
        """
        Get time entries logged for a specific task. Uses the current task if issue_id is not specified.

        Args:
            params (IssueIdInput): Validated input parameters

        Returns:
            str: The Redmine time entries as JSON
        """
        return _respond(await dispatcher.dispatch("get_time_entries", params))

    @mcp.tool(name="get_today_time_entries", annotations=_annotations("Get Today's Time Entries", True, True))
    async def get_today_time_entries(params: SimpleFormatInput) -> str:
        """
        Get all time entries logged today by the current user, grouped by task with totals.

        Args:
            params (SimpleFormatInput): Validated input parameters

        Returns:
            str: Per-task hours and the day's total
        """
        return _respond(await dispatcher.dispatch("get_today_time_entries", params), params.response_format)

    @mcp.tool(name="list_activities", annotations=_annotations("List Time Entry Activities", True, True))
    async def list_activities(params: SimpleFormatInput) -> str:
        """
        List all available time entry activities.

        Args:
            params (SimpleFormatInput): Validated input parameters

        Returns:
            str: Activity IDs and names, default marked
        """
        return _respond(await dispatcher.dispatch("list_activities", params), params.response_format)

    # ============================================================================
    # Tool Implementations - Catalogs
    # ============================================================================

    @mcp.tool(name="list_issue_statuses", annotations=_annotations("List Issue Statuses", True, True))
    async def list_issue_statuses(params: SimpleFormatInput) -> str:
        """
        List all available issue statuses.

        Args:
            params (SimpleFormatInput): Validated input parameters

        Returns:
            str: Status IDs and names with default and open/closed markers
        """
        return _respond(await dispatcher.dispatch("list_issue_statuses", params), params.response_format)

    @mcp.tool(name="list_projects", annotations=_annotations("List Redmine Projects", True, True))
    async def list_projects(params: SimpleFormatInput) -> str:
        """
        List all available projects.

        Args:
            params (SimpleFormatInput): Validated input parameters

        Returns:
            str: Every project with ID, name and identifier
        """
        return _respond(await dispatcher.dispatch("list_projects", params), params.response_format)

    @mcp.tool(name="get_current_user", annotations=_annotations("Get Current Redmine User", True, True))
    async def get_current_user() -> str:
        """Get information about the current authenticated user."""
        return _respond(await dispatcher.dispatch("get_current_user", EmptyInput()))

    # ============================================================================
    # Tool Implementations - Context
    # ============================================================================

    @mcp.tool(name="set_current_project", annotations=_annotations("Set Current Project", False, True))
    async def set_current_project(params: SetCurrentProjectInput) -> str:
        """
        Set the current project context (will be used as default for operations).
        IMPORTANT: call list_projects first and only pass a project from its results.

        Args:
            params (SetCurrentProjectInput): Validated input parameters

        Returns:
            str: Confirmation with the project name and numeric ID
        """
        return _respond(await dispatcher.dispatch("set_current_project", params))

    @mcp.tool(name="get_current_project", annotations=_annotations("Get Current Project", True, True))
    async def get_current_project() -> str:
        """Get the current project context."""
        return _respond(await dispatcher.dispatch("get_current_project", EmptyInput()))

    @mcp.tool(name="set_current_task", annotations=_annotations("Set Current Task", False, True))
    async def set_current_task(params: SetCurrentTaskInput) -> str:
        """
        Set the current task context (will be used as default for operations).

        Args:
            params (SetCurrentTaskInput): Validated input parameters

        Returns:
            str: Confirmation with the task ID and subject
        """
        return _respond(await dispatcher.dispatch("set_current_task", params))

    @mcp.tool(name="get_current_task", annotations=_annotations("Get Current Task", True, True))
    async def get_current_task() -> str:
        """Get the current task context."""
        return _respond(await dispatcher.dispatch("get_current_task", EmptyInput()))

    @mcp.tool(name="get_context", annotations=_annotations("Get Current Context", True, True))
    async def get_context() -> str:
        """Get all current context (project and task)."""
        return _respond(await dispatcher.dispatch("get_context", EmptyInput()))

    @mcp.tool(name="clear_context", annotations=_annotations("Clear Current Context", False, True, False))
    async def clear_context() -> str:
        """Clear all current context (project and task)."""
        return _respond(await dispatcher.dispatch("clear_context", EmptyInput()))

    return mcp


def _configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


# ============================================================================
# Server Entry Point
# ============================================================================

def main() -> None:
    try:
        config = RedmineConfig.from_env()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print(f"\n{get_setup_help_message()}", file=sys.stderr)
        sys.exit(1)

    _configure_logging(config.log_level)
    logger.info("Starting Redmine MCP Server v%s for %s", __version__, config.base_url)

    mcp = create_server(config)
    mcp.run()


if __name__ == "__main__":
    main()
