"""Error taxonomy and the classifier that turns failures into user-safe records.

Every failure that reaches a caller goes through one of the two classifiers
below, which produce the apology text, the structured ``ErrorDetails`` block and
the HTTP status to answer with. Stack traces are never included.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import openai

from .models import ErrorDetails


class ErrorCode(str, Enum):
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    UUID_GENERATION_FAILURE = "UUID_GENERATION_FAILURE"

    MISSING_TASK_DESCRIPTION = "MISSING_TASK_DESCRIPTION"
    MISSING_TASK_ID = "MISSING_TASK_ID"
    INVALID_TASK_ID_FORMAT = "INVALID_TASK_ID_FORMAT"
    INVALID_TASK_UPDATES = "INVALID_TASK_UPDATES"

    MISSING_REMINDER_TITLE = "MISSING_REMINDER_TITLE"
    INVALID_SCHEDULED_TIME = "INVALID_SCHEDULED_TIME"
    MISSING_REMINDER_ID = "MISSING_REMINDER_ID"
    INVALID_REMINDER_ID_FORMAT = "INVALID_REMINDER_ID_FORMAT"
    INVALID_REMINDER_UPDATES = "INVALID_REMINDER_UPDATES"

    MISSING_EXPENSES = "MISSING_EXPENSES"
    INVALID_EXPENSE_ITEM = "INVALID_EXPENSE_ITEM"
    INVALID_EXPENSE_AMOUNT = "INVALID_EXPENSE_AMOUNT"

    MISSING_GOAL_TITLE = "MISSING_GOAL_TITLE"
    INVALID_GOAL_TARGET = "INVALID_GOAL_TARGET"
    INVALID_GOAL_PROGRESS = "INVALID_GOAL_PROGRESS"
    MISSING_GOAL_ID = "MISSING_GOAL_ID"
    INVALID_GOAL_ID_FORMAT = "INVALID_GOAL_ID_FORMAT"
    INVALID_GOAL_UPDATES = "INVALID_GOAL_UPDATES"

    MISSING_JOURNAL_CONTENT = "MISSING_JOURNAL_CONTENT"
    INVALID_JOURNAL_MOOD = "INVALID_JOURNAL_MOOD"

    # Upstream completion endpoint
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_REQUEST = "INVALID_REQUEST"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


CODES = frozenset(code.value for code in ErrorCode)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class RevaError(Exception):
    """Base class for errors raised by the engine."""


class IdentifierGenerationFailure(RevaError):
    """Raised when every identifier tier failed to produce a valid value."""

    code = ErrorCode.UUID_GENERATION_FAILURE

    def __init__(self, errors: List[str], timestamp: Optional[str] = None):
        self.errors = list(errors)
        self.timestamp = timestamp or utc_timestamp()
        super().__init__(
            "Identifier generation failed in every tier: " + "; ".join(self.errors)
        )


@dataclass
class ToolError:
    """The failure half of a tool execution result."""

    code: str
    message: str


@dataclass
class Classification:
    message: str
    details: ErrorDetails
    status_code: int = 200


# tool name -> (verb, noun, app section)
TOOL_SUBJECTS = {
    "createTask": ("create", "task", "Tasks"),
    "updateTask": ("update", "task", "Tasks"),
    "createReminder": ("create", "reminder", "Reminders"),
    "updateReminder": ("update", "reminder", "Reminders"),
    "trackExpenses": ("track", "expenses", "Expenses"),
    "createGoal": ("create", "goal", "Goals"),
    "updateGoal": ("update", "goal", "Goals"),
    "createJournalEntry": ("save", "journal entry", "Journal"),
    "generalChat": ("answer", "message", "chat"),
}


def classify_tool_failure(
    failure: Union[ToolError, Exception],
    tool: Optional[str],
    params: Any = None,
    include_details: bool = False,
) -> Classification:
    """Maps a failed tool execution to a user-facing message and error record.

    Parameters
    ----------
    failure : ToolError or Exception
        A validation result returned by the tool, or an exception it raised.
    tool : str, optional
        The tool name as requested by the model.
    params : Any, optional
        The parameters the model supplied. Only echoed back when
        ``include_details`` is set.
    include_details : bool, default=False
        Attach the failure message and the offending parameters. Never enabled
        in production.

    Returns
    -------
    Classification
    """
    verb, noun, section = TOOL_SUBJECTS.get(tool or "", ("complete", "request", ""))

    if isinstance(failure, ToolError) and failure.code == ErrorCode.UNKNOWN_TOOL:
        code = ErrorCode.UNKNOWN_TOOL.value
        retryable = False
        message = "I'm not able to do that yet, so I couldn't complete your request."
        suggestion = "Try rephrasing your request, or use the app directly."
    elif isinstance(failure, ToolError):
        code = failure.code
        retryable = False
        message = (
            f"I couldn't {verb} that {noun} because some details were missing "
            "or invalid."
        )
        suggestion = f"Please {verb} it manually in the {section} section."
    elif isinstance(failure, IdentifierGenerationFailure):
        code = ErrorCode.UUID_GENERATION_FAILURE.value
        retryable = True
        message = f"I ran into a temporary problem while saving your {noun}."
        suggestion = "Please try again in a moment."
    else:
        code = ErrorCode.INTERNAL_ERROR.value
        retryable = True
        message = f"Something went wrong while I tried to {verb} your {noun}."
        suggestion = "Please try again in a moment."

    details = None
    if include_details:
        reason = failure.message if isinstance(failure, ToolError) else str(failure)
        details = {"message": reason, "params": params}
        if isinstance(failure, IdentifierGenerationFailure):
            details["tierErrors"] = failure.errors
        elif isinstance(failure, Exception):
            details["exception"] = type(failure).__name__

    return Classification(
        message=message,
        details=ErrorDetails(
            retryable=retryable,
            error_code=code,
            timestamp=utc_timestamp(),
            suggested_action=suggestion,
            tool=tool,
            details=details,
        ),
    )


# status -> (code, http status, retryable, message, suggestion)
UPSTREAM_FAILURES = {
    401: (
        ErrorCode.AUTHENTICATION_ERROR,
        401,
        False,
        "I'm having trouble connecting to my AI service right now.",
        "Please contact support if this keeps happening.",
    ),
    429: (
        ErrorCode.RATE_LIMITED,
        429,
        True,
        "I'm getting a lot of requests right now.",
        "Please wait a few seconds and try again.",
    ),
    "client": (
        ErrorCode.INVALID_REQUEST,
        400,
        False,
        "I couldn't process that request.",
        "Try rephrasing your message or starting a new conversation.",
    ),
    "connection": (
        ErrorCode.SERVICE_UNAVAILABLE,
        503,
        True,
        "My AI service is temporarily unavailable.",
        "Please try again in a moment.",
    ),
    "other": (
        ErrorCode.INTERNAL_ERROR,
        500,
        True,
        "Sorry, something went wrong while I was thinking about that.",
        "Please try again in a moment.",
    ),
}


def upstream_status(error: Exception) -> Optional[int]:
    """Returns the HTTP status carried by an upstream error, if any."""
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(getattr(error, "response", None), "status_code", None)
    return status if isinstance(status, int) else None


def is_connection_error(error: Exception) -> bool:
    # openai.APITimeoutError subclasses APIConnectionError
    return isinstance(
        error, (openai.APIConnectionError, ConnectionError, TimeoutError)
    )


def classify_upstream_failure(
    error: Exception, include_details: bool = False
) -> Classification:
    """Maps a failed call to the completion endpoint to an error record."""
    status = upstream_status(error)
    if status in (401, 429):
        key = status
    elif status is not None and 400 <= status < 500:
        key = "client"
    elif is_connection_error(error):
        key = "connection"
    else:
        key = "other"
    code, http_status, retryable, message, suggestion = UPSTREAM_FAILURES[key]

    details: Optional[Dict[str, Any]] = None
    if include_details:
        details = {
            "message": str(error),
            "exception": type(error).__name__,
            "upstreamStatus": status,
        }

    return Classification(
        message=message,
        details=ErrorDetails(
            retryable=retryable,
            error_code=code.value,
            timestamp=utc_timestamp(),
            suggested_action=suggestion,
            details=details,
        ),
        status_code=http_status,
    )
