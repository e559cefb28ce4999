"""
Pydantic models for tool inputs and operation results.

Each tool has its own input model; the Dispatcher only ever sees validated
instances of these.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind, RedmineMCPError

DEFAULT_LIMIT = 25
MAX_LIMIT = 100


# ============================================================================
# Enums and Shared Models
# ============================================================================

class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    MARKDOWN = "markdown"
    JSON = "json"


class BaseToolInput(BaseModel):
    """Base model with common configuration."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra='forbid'
    )


class EmptyInput(BaseToolInput):
    """Input model for tools that take no arguments."""


class SimpleFormatInput(BaseToolInput):
    """Input model for simple list operations with format option."""
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' (default) or 'json'"
    )


# ============================================================================
# Issue Inputs
# ============================================================================

class CreateTaskInput(BaseToolInput):
    """Input model for creating a new task (issue)."""
    subject: str = Field(
        ...,
        description="Task subject/title",
        min_length=1,
        max_length=255
    )
    project_id: Optional[Union[int, str]] = Field(
        default=None,
        description="Project ID or identifier (uses current project if not specified)"
    )
    description: Optional[str] = Field(
        default=None,
        description="Detailed description of the task"
    )
    tracker_id: Optional[int] = Field(
        default=None,
        description="Tracker ID (e.g., 1=Bug, 2=Feature, 3=Support)"
    )
    status_id: Optional[int] = Field(
        default=None,
        description="Status ID (e.g., 1=New); see list_issue_statuses"
    )
    priority_id: Optional[int] = Field(
        default=None,
        description="Priority ID (e.g., 2=Normal)"
    )
    assigned_to_id: Optional[int] = Field(
        default=None,
        description="User ID to assign the task to (defaults to the current user)"
    )
    estimated_hours: Optional[float] = Field(
        default=None,
        description="Estimated hours for completion",
        ge=0
    )
    parent_issue_id: Optional[int] = Field(
        default=None,
        description="ID of the parent task, to create this one as a subtask",
        gt=0
    )


class GetTaskInput(BaseToolInput):
    """Input model for fetching one task."""
    issue_id: Optional[int] = Field(
        default=None,
        description="The ID of the issue/task (uses current task if not specified)",
        gt=0
    )
    include: Optional[List[str]] = Field(
        default=None,
        description=(
            "Additional data to include (e.g., children, attachments, relations, "
            "changesets, journals, watchers)"
        )
    )


class UpdateTaskInput(BaseToolInput):
    """Input model for a partial task update. Only supplied fields are sent."""
    issue_id: Optional[int] = Field(
        default=None,
        description="The ID of the issue/task to update (uses current task if not specified)",
        gt=0
    )
    subject: Optional[str] = Field(default=None, description="New subject/title", min_length=1)
    description: Optional[str] = Field(default=None, description="New description")
    status_id: Optional[int] = Field(default=None, description="New status ID")
    priority_id: Optional[int] = Field(default=None, description="New priority ID")
    assigned_to_id: Optional[int] = Field(default=None, description="New assignee user ID")
    estimated_hours: Optional[float] = Field(default=None, description="New estimate in hours", ge=0)
    done_ratio: Optional[int] = Field(default=None, description="Percent done (0-100)", ge=0, le=100)
    notes: Optional[str] = Field(default=None, description="Add a comment/note to the issue")


class AddNoteInput(BaseToolInput):
    """Input model for commenting on a task."""
    issue_id: Optional[int] = Field(
        default=None,
        description="The ID of the issue/task (uses current task if not specified)",
        gt=0
    )
    notes: Optional[str] = Field(default=None, description="Comment text (REQUIRED)")


class ListTasksInput(BaseToolInput):
    """Input model for listing tasks with optional filters."""
    project_id: Optional[Union[int, str]] = Field(
        default=None,
        description=(
            "Filter by project ID or identifier (uses current project if not "
            "specified; all projects when no current project is set)"
        )
    )
    assigned_to_id: Optional[Union[int, str]] = Field(
        default=None,
        description="Filter by assigned user ID (use \"me\" for current user)"
    )
    status_id: Optional[Union[int, str]] = Field(
        default=None,
        description=(
            "Filter by status: \"open\" for all open statuses, \"closed\" for closed, "
            "\"*\" for all, a status ID or a status name"
        )
    )
    limit: int = Field(
        default=DEFAULT_LIMIT,
        description=f"Maximum number of tasks to return (default: {DEFAULT_LIMIT})",
        ge=1,
        le=MAX_LIMIT
    )
    offset: Optional[int] = Field(
        default=None,
        description="Number of tasks to skip, for paging through results",
        ge=0
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' (default) or 'json'"
    )


class CheckMyIssuesInput(BaseToolInput):
    """Input model for listing the current user's issues."""
    status_id: Optional[Union[int, str]] = Field(
        default=None,
        description=(
            "Filter by status: \"open\", \"closed\", \"*\" for all, a status ID or a "
            "status name. When omitted the available statuses are listed instead."
        )
    )
    limit: int = Field(
        default=DEFAULT_LIMIT,
        description=f"Maximum number of tasks to return (default: {DEFAULT_LIMIT})",
        ge=1,
        le=MAX_LIMIT
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' (default) or 'json'"
    )


# ============================================================================
# Time Tracking Inputs
# ============================================================================

class LogTimeInput(BaseToolInput):
    """Input model for logging time on a task."""
    issue_id: Optional[int] = Field(
        default=None,
        description="The ID of the issue/task (uses current task if not specified)",
        gt=0
    )
    hours: Optional[float] = Field(
        default=None,
        description="Number of hours spent (REQUIRED)",
        gt=0
    )
    activity_id: Optional[int] = Field(
        default=None,
        description="Time entry activity ID (REQUIRED - use list_activities to see available options)"
    )
    comments: Optional[str] = Field(
        default=None,
        description="Comments about the work done",
        max_length=1024
    )
    spent_on: Optional[str] = Field(
        default=None,
        description="Date the time was spent (YYYY-MM-DD format, defaults to today)",
        pattern=r'^\d{4}-\d{2}-\d{2}$'
    )


class IssueIdInput(BaseToolInput):
    """Input model for tools acting on one task."""
    issue_id: Optional[int] = Field(
        default=None,
        description="The ID of the issue/task (uses current task if not specified)",
        gt=0
    )


# ============================================================================
# Context Inputs
# ============================================================================

class SetCurrentProjectInput(BaseToolInput):
    """Input model for choosing the current project."""
    project_id: Union[int, str] = Field(
        ...,
        description="Project ID or identifier to set as current (must be from the list_projects results)"
    )


class SetCurrentTaskInput(BaseToolInput):
    """Input model for choosing the current task."""
    issue_id: int = Field(
        ...,
        description="Task/issue ID to set as current",
        gt=0
    )


# ============================================================================
# Results
# ============================================================================

class ErrorInfo(BaseModel):
    """Failure description: short message, corrective hint, raw remote detail."""
    kind: ErrorKind
    message: str
    hint: Optional[str] = None
    status_code: Optional[int] = None
    detail: Any = None


class OperationResult(BaseModel):
    """Outcome of one tool invocation: either data or error, never both."""
    operation: str
    ok: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[ErrorInfo] = None

    @classmethod
    def success(cls, operation: str, data: Dict[str, Any]) -> "OperationResult":
        return cls(operation=operation, ok=True, data=data)

    @classmethod
    def failure(cls, operation: str, exc: RedmineMCPError) -> "OperationResult":
        return cls(
            operation=operation,
            ok=False,
            error=ErrorInfo(
                kind=exc.kind,
                message=exc.message,
                hint=exc.hint,
                status_code=exc.status_code,
                detail=exc.detail
            )
        )
