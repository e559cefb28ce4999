"""
Text rendering of operation results.

The Dispatcher produces structured data; this module turns it into the
markdown or JSON text that is returned to the MCP host.
"""

import json
from typing import Any, Callable, Dict, List, Optional

from .models import ErrorInfo, OperationResult, ResponseFormat

CHARACTER_LIMIT = 25000  # Maximum response size in characters

STATUS_FILTER_HELP = (
    "You can also use:\n"
    "- \"open\" for all open statuses\n"
    "- \"closed\" for all closed statuses\n"
    "- \"*\" for all statuses"
)

# Tools whose payload is echoed verbatim as JSON
VERBATIM_OPERATIONS = ("get_task", "get_time_entries", "get_current_user")


def _truncate_response(content: str) -> str:
    """
    Truncate response if it exceeds CHARACTER_LIMIT with helpful guidance.

    Args:
        content: Response content to check

    Returns:
        Original content or truncated content with guidance
    """
    if len(content) <= CHARACTER_LIMIT:
        return content

    truncated = content[:CHARACTER_LIMIT]
    last_newline = truncated.rfind('\n')
    if last_newline > 0:
        truncated = truncated[:last_newline]

    truncated += (
        f"\n\n---\n**Response Truncated**: Showing partial results due to size limit "
        f"({len(content):,} characters). To see more:\n"
        f"- Use `limit` and `offset` to page through results\n"
        f"- Add filters to narrow down results\n"
        f"- Request specific items by ID\n"
    )
    return truncated


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _format_hours(hours: Any) -> str:
    """3.0 -> '3h', 3.5 -> '3.5h'."""
    try:
        return f"{float(hours):g}h"
    except (TypeError, ValueError):
        return "?h"


def _name(entity: Optional[Dict[str, Any]], default: str = "N/A") -> str:
    if not entity:
        return default
    return entity.get("name", default)


def _issue_line(issue: Dict[str, Any]) -> str:
    return f"#{issue.get('id')}: {issue.get('subject', 'Untitled')} [{_name(issue.get('status'), 'Unknown')}]"


def _status_line(status: Dict[str, Any]) -> str:
    default = " (default)" if status.get("is_default") else ""
    state = " [Closed]" if status.get("is_closed") else " [Open]"
    return f"{status.get('id')}: {status.get('name')}{default}{state}"


def format_error(error: ErrorInfo) -> str:
    """Render a failure: message, corrective hint, then Redmine's diagnostic."""
    lines = [f"Error: {error.message}"]
    if error.hint:
        lines.extend(["", error.hint])
    if error.detail is not None:
        lines.extend(["", f"Details: {_to_json(error.detail)}"])
    return "\n".join(lines)


# ============================================================================
# Markdown renderers, one per operation
# ============================================================================

def _render_create_task(data: Dict[str, Any]) -> str:
    issue = data["issue"]
    return (
        f"✅ Task created successfully!\n\n"
        f"**ID**: {issue.get('id')}\n"
        f"**Subject**: {issue.get('subject')}\n"
        f"**Status**: {_name(issue.get('status'))}\n"
        f"**Assignee**: {_name(issue.get('assigned_to'), 'Unassigned')}\n\n"
        f"View at: {data['url']}"
    )


def _render_update_task(data: Dict[str, Any]) -> str:
    return (
        f"✅ Task #{data['issue_id']} updated successfully!\n\n"
        f"**Changed**: {', '.join(data['updated_fields'])}\n\n"
        f"View at: {data['url']}"
    )


def _render_add_note(data: Dict[str, Any]) -> str:
    return f"✅ Note added to task #{data['issue_id']}.\n\nView at: {data['url']}"


def _render_log_time(data: Dict[str, Any]) -> str:
    entry = data["time_entry"]
    return (
        f"✅ Time logged successfully!\n\n"
        f"**Hours**: {_format_hours(entry.get('hours'))}\n"
        f"**Issue**: #{data['issue_id']}\n"
        f"**Date**: {entry.get('spent_on', 'N/A')}\n"
        f"**Activity**: {_name(entry.get('activity'))}\n"
        f"**Comments**: {entry.get('comments') or 'N/A'}"
    )


def _render_issue_list(header: str, issues: List[Dict[str, Any]]) -> str:
    lines = [header, ""]
    lines.extend(_issue_line(issue) for issue in issues)
    return "\n".join(lines)


def _render_list_tasks(data: Dict[str, Any]) -> str:
    context_info = f" (Project: {data['project_id']})" if data.get("project_id") is not None else ""
    header = f"Found {data['total_count']} tasks{context_info} (showing {data['count']}):"
    return _render_issue_list(header, data["issues"])


def _render_check_my_issues(data: Dict[str, Any]) -> str:
    if data.get("needs_status"):
        status_list = "\n".join(_status_line(s) for s in data["statuses"])
        return (
            f"Please specify a status_id to filter your issues.\n\n"
            f"Available issue statuses:\n\n{status_list}\n\n"
            f"{STATUS_FILTER_HELP}\n\n"
            f"Example: call check_my_issues with status_id set to \"open\" to see all your open issues."
        )
    header = (
        f"Found {data['total_count']} issues assigned to {data['user'].get('login')} "
        f"(showing {data['count']}):"
    )
    return _render_issue_list(header, data["issues"])


def _render_today_time_entries(data: Dict[str, Any]) -> str:
    if not data["groups"]:
        return "No time entries logged today."

    lines = [f"Time entries for {data['date']}:", ""]
    for group in data["groups"]:
        label = f"Issue #{group['issue_id']}" if group["issue_id"] is not None else "No issue"
        lines.append(f"{label}: {_format_hours(group['hours'])}")
        for entry in group["entries"]:
            comment = f": {entry['comments']}" if entry.get("comments") else ""
            lines.append(f"  - {_format_hours(entry.get('hours'))} ({_name(entry.get('activity'))}){comment}")
        lines.append("")
    lines.append(f"Total hours today: {_format_hours(data['total_hours'])}")
    return "\n".join(lines)


def _render_activities(data: Dict[str, Any]) -> str:
    activity_list = "\n".join(
        f"{a.get('id')}: {a.get('name')}{' (default)' if a.get('is_default') else ''}"
        for a in data["activities"]
    )
    return f"Available time entry activities:\n\n{activity_list}"


def _render_statuses(data: Dict[str, Any]) -> str:
    status_list = "\n".join(_status_line(s) for s in data["statuses"])
    return f"Available issue statuses:\n\n{status_list}\n\n{STATUS_FILTER_HELP}"


def _render_projects(data: Dict[str, Any]) -> str:
    project_list = "\n".join(
        f"{p.get('id')}: {p.get('name')} ({p.get('identifier')})" for p in data["projects"]
    )
    return f"Available projects ({len(data['projects'])} of {data['total_count']}):\n\n{project_list}"


def _render_project_line(project: Dict[str, Any]) -> str:
    return f"{project.get('name')} (ID: {project.get('id')})"


def _render_task_line(issue: Dict[str, Any]) -> str:
    return f"#{issue.get('id')} - {issue.get('subject')}"


def _render_set_current_project(data: Dict[str, Any]) -> str:
    return f"Current project set to: {_render_project_line(data['project'])}"


def _render_get_current_project(data: Dict[str, Any]) -> str:
    if data["project"] is None:
        return "No current project set. Use set_current_project to set one."
    return f"Current project: {_render_project_line(data['project'])}"


def _render_set_current_task(data: Dict[str, Any]) -> str:
    return f"Current task set to: {_render_task_line(data['issue'])}"


def _render_get_current_task(data: Dict[str, Any]) -> str:
    if data["issue"] is None:
        return "No current task set. Use set_current_task to set one."
    return f"Current task: {_render_task_line(data['issue'])}"


def _render_context(data: Dict[str, Any]) -> str:
    project = _render_project_line(data["project"]) if data["project"] else "Not set"
    task = _render_task_line(data["issue"]) if data["issue"] else "Not set"
    return f"Current context:\n\nProject: {project}\nTask: {task}\n"


def _render_clear_context(data: Dict[str, Any]) -> str:
    return "All context cleared (project and task)."


MARKDOWN_RENDERERS: Dict[str, Callable[[Dict[str, Any]], str]] = {
    "create_task": _render_create_task,
    "update_task": _render_update_task,
    "add_note": _render_add_note,
    "log_time": _render_log_time,
    "list_tasks": _render_list_tasks,
    "check_my_issues": _render_check_my_issues,
    "get_today_time_entries": _render_today_time_entries,
    "list_activities": _render_activities,
    "list_issue_statuses": _render_statuses,
    "list_projects": _render_projects,
    "set_current_project": _render_set_current_project,
    "get_current_project": _render_get_current_project,
    "set_current_task": _render_set_current_task,
    "get_current_task": _render_get_current_task,
    "get_context": _render_context,
    "clear_context": _render_clear_context,
}


def render_result(
    result: OperationResult,
    response_format: ResponseFormat = ResponseFormat.MARKDOWN
) -> str:
    """
    Render an operation result as text for the MCP host.

    Args:
        result: Outcome returned by the Dispatcher
        response_format: markdown (human-readable) or json (structured)

    Returns:
        Response text, truncated to CHARACTER_LIMIT
    """
    if not result.ok:
        return format_error(result.error)

    renderer = MARKDOWN_RENDERERS.get(result.operation)
    if (
        response_format == ResponseFormat.JSON
        or result.operation in VERBATIM_OPERATIONS
        or renderer is None
    ):
        return _truncate_response(_to_json(result.data))
    return _truncate_response(renderer(result.data))
