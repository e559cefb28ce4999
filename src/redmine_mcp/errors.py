"""
Error taxonomy for Redmine operations.

Local precondition failures (missing context, missing fields, bad arguments,
unknown tools) are raised before any request reaches Redmine. Remote failures
are produced by classify_http_error() from the httpx exception that the
client raised.
"""

from enum import Enum
from typing import Any, Optional

import httpx


class ErrorKind(str, Enum):
    """Classification carried by every failure result."""
    MISSING_CONTEXT = "missing_context"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_ARGUMENTS = "invalid_arguments"
    REMOTE_NOT_FOUND = "remote_not_found"
    REMOTE_ERROR = "remote_error"
    UNKNOWN_OPERATION = "unknown_operation"


class RedmineMCPError(Exception):
    """Base class for failures reported back to the tool caller."""
    kind: ErrorKind = ErrorKind.REMOTE_ERROR

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Any = None
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.status_code = status_code
        self.detail = detail


class MissingContextError(RedmineMCPError):
    """A project or task id was neither supplied nor set as current."""
    kind = ErrorKind.MISSING_CONTEXT

    def __init__(self, field: str, setter: str):
        super().__init__(
            f"{field} is required.",
            hint=f"Either provide it or set a default using {setter}.",
        )
        self.field = field


class MissingRequiredFieldError(RedmineMCPError):
    """An operation-specific mandatory field was omitted."""
    kind = ErrorKind.MISSING_REQUIRED_FIELD


class InvalidArgumentsError(RedmineMCPError):
    """Arguments could not be validated into the operation's input model."""
    kind = ErrorKind.INVALID_ARGUMENTS


class UnknownOperationError(RedmineMCPError):
    kind = ErrorKind.UNKNOWN_OPERATION

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class RemoteNotFoundError(RedmineMCPError):
    """Redmine answered 404 for the referenced entity."""
    kind = ErrorKind.REMOTE_NOT_FOUND


class RemoteError(RedmineMCPError):
    """Any other Redmine or transport failure."""
    kind = ErrorKind.REMOTE_ERROR


def _response_detail(response: httpx.Response) -> Any:
    """Redmine's diagnostic body: parsed JSON when possible, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def classify_http_error(e: Exception) -> RedmineMCPError:
    """
    Map an exception raised while talking to Redmine onto the error taxonomy.

    Args:
        e: Exception raised by RedmineClient (usually an httpx error)

    Returns:
        RemoteNotFoundError for 404 responses, RemoteError for everything else
    """
    if isinstance(e, RedmineMCPError):
        return e

    if isinstance(e, httpx.HTTPStatusError):
        status = e.response.status_code
        detail = _response_detail(e.response)
        if status == 404:
            return RemoteNotFoundError(
                "Resource not found. Please check that the ID is correct and "
                "the item still exists in Redmine.",
                status_code=status, detail=detail
            )
        if status == 401:
            message = ("Invalid API key. Please check that REDMINE_API_KEY is set "
                       "correctly and that the REST API is enabled in Redmine.")
        elif status == 403:
            message = "Permission denied. Your Redmine account is not allowed to perform this operation."
        elif status == 422:
            message = "Redmine rejected the request as invalid. See details for the validation errors."
        elif status == 429:
            message = "Rate limit exceeded. Please wait a moment before making more requests to Redmine."
        elif status >= 500:
            message = ("Redmine server error. The service may be temporarily "
                       "unavailable. Please try again in a few moments.")
        else:
            message = f"Redmine request failed with status {status}."
        return RemoteError(message, status_code=status, detail=detail)

    if isinstance(e, httpx.TimeoutException):
        return RemoteError(
            "Request timed out. Redmine is taking too long to respond. "
            "Please try again or raise REDMINE_TIMEOUT."
        )
    if isinstance(e, httpx.ConnectError):
        return RemoteError(
            "Cannot connect to Redmine. Please check REDMINE_URL and your network connection."
        )
    if isinstance(e, httpx.HTTPError):
        return RemoteError(f"HTTP error while talking to Redmine - {type(e).__name__}: {e}")

    return RemoteError(f"Unexpected error occurred - {type(e).__name__}: {e}")
