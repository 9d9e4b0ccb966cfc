"""Concrete implementations for tool handlers.

A tool is an action the model may ask for by name (``createTask``,
``trackExpenses``...). The handler validates the model's parameters, mints
identifiers for the entities it creates and describes the action as an
``ActionFragment``. Nothing is persisted here: the client stores the entities
described by the fragment.
"""

import math
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Type, Union

from dateutil import parser as date_parser
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

from . import identifiers, observers
from .errors import CODES, ErrorCode, ToolError, classify_tool_failure
from .models import ActionFragment, MultipleAction

Number = Union[int, float]


class ToolName(str, Enum):
    CREATE_TASK = "createTask"
    UPDATE_TASK = "updateTask"
    CREATE_REMINDER = "createReminder"
    UPDATE_REMINDER = "updateReminder"
    TRACK_EXPENSES = "trackExpenses"
    CREATE_GOAL = "createGoal"
    UPDATE_GOAL = "updateGoal"
    CREATE_JOURNAL_ENTRY = "createJournalEntry"
    GENERAL_CHAT = "generalChat"


TOOL_CATALOG: List[Dict[str, Any]] = [
    {
        "name": ToolName.CREATE_TASK.value,
        "description": "Create a new task or to-do item.",
        "parameters": {
            "description": "string, required",
            "priority": "low | medium | high, defaults to medium",
            "dueDate": "ISO 8601 date or date-time, optional",
        },
    },
    {
        "name": ToolName.UPDATE_TASK.value,
        "description": "Change an existing task, e.g. mark it done or reschedule it.",
        "parameters": {
            "taskId": "identifier of the task, required",
            "updates": "object with the fields to change, required",
        },
    },
    {
        "name": ToolName.CREATE_REMINDER.value,
        "description": "Schedule a reminder.",
        "parameters": {
            "title": "string, required",
            "description": "string, optional",
            "scheduledTime": "ISO 8601 date-time, optional",
        },
    },
    {
        "name": ToolName.UPDATE_REMINDER.value,
        "description": "Change an existing reminder.",
        "parameters": {
            "reminderId": "identifier of the reminder, required",
            "updates": "object with the fields to change; scheduledTime must be a date-time",
        },
    },
    {
        "name": ToolName.TRACK_EXPENSES.value,
        "description": "Record one or more expenses.",
        "parameters": {
            "expenses": (
                "array of {item: string, amount: number > 0, "
                "category: string, date: ISO 8601 date}, required"
            ),
        },
    },
    {
        "name": ToolName.CREATE_GOAL.value,
        "description": "Create a goal to work towards.",
        "parameters": {
            "title": "string, required",
            "description": "string, optional",
            "target": "number > 0, optional",
            "progress": "number >= 0, optional, defaults to 0",
        },
    },
    {
        "name": ToolName.UPDATE_GOAL.value,
        "description": "Change an existing goal or record progress on it.",
        "parameters": {
            "goalId": "identifier of the goal, required",
            "updates": "object; target must be > 0 and progress >= 0 when present",
        },
    },
    {
        "name": ToolName.CREATE_JOURNAL_ENTRY.value,
        "description": "Write a journal entry.",
        "parameters": {
            "content": "string, required",
            "mood": "string, optional",
        },
    },
    {
        "name": ToolName.GENERAL_CHAT.value,
        "description": "Answer conversationally when no other tool applies.",
        "parameters": {
            "tone": "string, optional",
            "response": "string, optional",
        },
    },
]


# --- Parameter validation helpers ---
def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_datetime(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        return False
    return True


def _required_text(value: Any, code: ErrorCode, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise PydanticCustomError(code.value, f"{label} must be a non-empty string")
    return value.strip()


def _required_identifier(
    value: Any, missing: ErrorCode, malformed: ErrorCode, label: str
) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise PydanticCustomError(missing.value, f"{label} is required")
    if not identifiers.is_valid(value):
        raise PydanticCustomError(malformed.value, f"{label} is not a valid identifier")
    return value


def _required_updates(value: Any, code: ErrorCode) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise PydanticCustomError(code.value, "updates must be an object")
    return value


def _check_target(value: Any) -> Any:
    if value is not None and not (_is_number(value) and value > 0):
        raise PydanticCustomError(
            ErrorCode.INVALID_GOAL_TARGET.value, "target must be a number above zero"
        )
    return value


def _check_progress(value: Any) -> Any:
    if value is not None and not (_is_number(value) and value >= 0):
        raise PydanticCustomError(
            ErrorCode.INVALID_GOAL_PROGRESS.value,
            "progress must be a number of zero or more",
        )
    return value


def _check_scheduled_time(value: Any) -> Any:
    if value is not None and not _is_datetime(value):
        raise PydanticCustomError(
            ErrorCode.INVALID_SCHEDULED_TIME.value,
            "scheduledTime must be a valid date and time",
        )
    return value


# --- Parameter records, one per tool ---
class ToolParams(BaseModel):
    """Base record for a tool's decoded parameters."""

    model_config = ConfigDict(populate_by_name=True)

    # field name -> error code for validation failures not raised with a code
    error_codes: ClassVar[Dict[str, str]] = {}

    @classmethod
    def error_code_for(cls, error: Dict[str, Any]) -> str:
        if error["type"] in CODES:
            return error["type"]
        for part in error["loc"]:
            if isinstance(part, str) and part in cls.error_codes:
                return cls.error_codes[part]
        return ErrorCode.INVALID_PARAMETERS.value


class CreateTaskParams(ToolParams):
    description: Optional[str] = Field(None, validate_default=True)
    priority: Any = "medium"
    due_date: Any = Field(
        None, validation_alias=AliasChoices("dueDate", "due_date")
    )

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value):
        return _required_text(value, ErrorCode.MISSING_TASK_DESCRIPTION, "description")

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "medium"
        return value.strip() if isinstance(value, str) else value


class UpdateTaskParams(ToolParams):
    task_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("taskId", "task_id", "id"),
        validate_default=True,
    )
    updates: Optional[Dict[str, Any]] = Field(None, validate_default=True)

    @field_validator("task_id", mode="before")
    @classmethod
    def _task_id(cls, value):
        return _required_identifier(
            value, ErrorCode.MISSING_TASK_ID, ErrorCode.INVALID_TASK_ID_FORMAT, "taskId"
        )

    @field_validator("updates", mode="before")
    @classmethod
    def _updates(cls, value):
        return _required_updates(value, ErrorCode.INVALID_TASK_UPDATES)


class CreateReminderParams(ToolParams):
    title: Optional[str] = Field(None, validate_default=True)
    description: Any = None
    scheduled_time: Optional[str] = Field(
        None, validation_alias=AliasChoices("scheduledTime", "scheduled_time")
    )

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value):
        return _required_text(value, ErrorCode.MISSING_REMINDER_TITLE, "title")

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def _scheduled_time(cls, value):
        return _check_scheduled_time(value)


class UpdateReminderParams(ToolParams):
    reminder_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("reminderId", "reminder_id", "id"),
        validate_default=True,
    )
    updates: Optional[Dict[str, Any]] = Field(None, validate_default=True)

    @field_validator("reminder_id", mode="before")
    @classmethod
    def _reminder_id(cls, value):
        return _required_identifier(
            value,
            ErrorCode.MISSING_REMINDER_ID,
            ErrorCode.INVALID_REMINDER_ID_FORMAT,
            "reminderId",
        )

    @field_validator("updates", mode="before")
    @classmethod
    def _updates(cls, value):
        updates = _required_updates(value, ErrorCode.INVALID_REMINDER_UPDATES)
        for key in ("scheduledTime", "scheduled_time"):
            if key in updates:
                _check_scheduled_time(updates[key])
        return updates


class ExpenseParams(BaseModel):
    model_config = ConfigDict(extra="allow")

    item: Optional[str] = Field(None, validate_default=True)
    amount: Optional[Number] = Field(None, validate_default=True)
    category: Any = None
    date: Any = None

    @field_validator("item", mode="before")
    @classmethod
    def _item(cls, value):
        return _required_text(value, ErrorCode.INVALID_EXPENSE_ITEM, "item")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value):
        if not (_is_number(value) and value > 0):
            raise PydanticCustomError(
                ErrorCode.INVALID_EXPENSE_AMOUNT.value,
                "amount must be a number above zero",
            )
        return value


class TrackExpensesParams(ToolParams):
    expenses: Optional[List[ExpenseParams]] = Field(None, validate_default=True)

    error_codes: ClassVar[Dict[str, str]] = {
        "expenses": ErrorCode.INVALID_EXPENSE_ITEM.value,
    }

    @model_validator(mode="before")
    @classmethod
    def _single_expense(cls, data):
        # A bare expense object becomes a one-element batch.
        if not isinstance(data, dict):
            return data
        if "expenses" not in data and ("item" in data or "amount" in data):
            return {"expenses": [data]}
        if isinstance(data.get("expenses"), dict):
            return {**data, "expenses": [data["expenses"]]}
        return data

    @field_validator("expenses", mode="before")
    @classmethod
    def _expenses(cls, value):
        if not isinstance(value, list) or not value:
            raise PydanticCustomError(
                ErrorCode.MISSING_EXPENSES.value,
                "expenses must be a non-empty array",
            )
        return value


class CreateGoalParams(ToolParams):
    title: Optional[str] = Field(None, validate_default=True)
    description: Any = None
    target: Optional[Number] = None
    progress: Optional[Number] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value):
        return _required_text(value, ErrorCode.MISSING_GOAL_TITLE, "title")

    @field_validator("target", mode="before")
    @classmethod
    def _target(cls, value):
        return _check_target(value)

    @field_validator("progress", mode="before")
    @classmethod
    def _progress(cls, value):
        return _check_progress(value)


class UpdateGoalParams(ToolParams):
    goal_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("goalId", "goal_id", "id"),
        validate_default=True,
    )
    updates: Optional[Dict[str, Any]] = Field(None, validate_default=True)

    @field_validator("goal_id", mode="before")
    @classmethod
    def _goal_id(cls, value):
        return _required_identifier(
            value, ErrorCode.MISSING_GOAL_ID, ErrorCode.INVALID_GOAL_ID_FORMAT, "goalId"
        )

    @field_validator("updates", mode="before")
    @classmethod
    def _updates(cls, value):
        updates = _required_updates(value, ErrorCode.INVALID_GOAL_UPDATES)
        if "target" in updates:
            _check_target(updates["target"])
        if "progress" in updates:
            _check_progress(updates["progress"])
        return updates


class CreateJournalEntryParams(ToolParams):
    content: Optional[str] = Field(None, validate_default=True)
    mood: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, value):
        return _required_text(value, ErrorCode.MISSING_JOURNAL_CONTENT, "content")

    @field_validator("mood", mode="before")
    @classmethod
    def _mood(cls, value):
        if value is not None and not isinstance(value, str):
            raise PydanticCustomError(
                ErrorCode.INVALID_JOURNAL_MOOD.value, "mood must be a string"
            )
        return value


class GeneralChatParams(ToolParams):
    tone: Any = "neutral"
    response: Any = ""

    @field_validator("tone", "response", mode="before")
    @classmethod
    def _defaults(cls, value, info):
        if value is None:
            return "neutral" if info.field_name == "tone" else ""
        return value


def decode_params(
    model: Type[ToolParams], params: Any
) -> Union[ToolParams, ToolError]:
    """Decodes a tool's raw parameter mapping into its typed record.

    Returns a ``ToolError`` carrying the code of the first validation failure
    instead of raising.
    """
    if not isinstance(params, dict):
        return ToolError(
            ErrorCode.INVALID_PARAMETERS.value, "Tool parameters must be an object"
        )
    try:
        return model.model_validate(params)
    except ValidationError as exc:
        error = exc.errors()[0]
        return ToolError(model.error_code_for(error), error["msg"])


# --- Tool handlers ---
class Tool(ABC):
    """Interface for executing the tools the model may request."""

    @abstractmethod
    def get_tools(self) -> List[Dict[str, Any]]:
        """Returns the catalog of tools offered to the LLM."""
        return []

    @abstractmethod
    def execute_tool(self, tool_name: Optional[str], params: Any) -> ActionFragment:
        """Executes a tool and returns the fragment it contributes to the result.

        Implementations never raise: failures are returned as a fragment
        carrying ``error_details``.
        """
        pass


class NoTool(Tool):
    """Handler that offers no tools; the model's answer is always plain text."""

    def get_tools(self) -> List[Dict[str, Any]]:
        return []

    def execute_tool(self, tool_name: Optional[str], params: Any) -> ActionFragment:
        return ActionFragment()


Handler = Callable[[Any], ActionFragment]


class Actions(Tool):
    """The assistant's built-in tools: tasks, reminders, expenses, goals, journal.

    Parameters
    ----------
    generator : identifiers.IdentifierGenerator, optional
        Mints ids for created entities. Defaults to a generator reporting to
        ``observer``.
    observer : observers.Observer, optional
        Receives ``tool.start``, ``tool.success`` and ``tool.failure`` events.
    include_details : bool, default=False
        Attach failure reasons and the offending parameters to error details.
    """

    def __init__(
        self,
        generator: Optional[identifiers.IdentifierGenerator] = None,
        observer: Optional[observers.Observer] = None,
        include_details: bool = False,
    ):
        self.observer = observer or observers.NoObserver()
        self.generator = generator or identifiers.IdentifierGenerator(
            observer=self.observer
        )
        self.include_details = include_details
        self._registry: Dict[ToolName, Tuple[Type[ToolParams], Handler]] = {
            ToolName.CREATE_TASK: (CreateTaskParams, self._create_task),
            ToolName.UPDATE_TASK: (UpdateTaskParams, self._update_task),
            ToolName.CREATE_REMINDER: (CreateReminderParams, self._create_reminder),
            ToolName.UPDATE_REMINDER: (UpdateReminderParams, self._update_reminder),
            ToolName.TRACK_EXPENSES: (TrackExpensesParams, self._track_expenses),
            ToolName.CREATE_GOAL: (CreateGoalParams, self._create_goal),
            ToolName.UPDATE_GOAL: (UpdateGoalParams, self._update_goal),
            ToolName.CREATE_JOURNAL_ENTRY: (
                CreateJournalEntryParams,
                self._create_journal_entry,
            ),
            ToolName.GENERAL_CHAT: (GeneralChatParams, self._general_chat),
        }

    def get_tools(self) -> List[Dict[str, Any]]:
        return [dict(entry) for entry in TOOL_CATALOG]

    def execute_tool(self, tool_name: Optional[str], params: Any) -> ActionFragment:
        if not tool_name or params is None:
            return ActionFragment()
        tool_name = str(tool_name)

        started = time.perf_counter()
        self.observer.record("tool.start", tool=tool_name, params=params)
        try:
            outcome = self._run(tool_name, params)
        except Exception as e:
            outcome = e
        duration_ms = round((time.perf_counter() - started) * 1000, 3)

        if isinstance(outcome, ActionFragment):
            self.observer.record(
                "tool.success",
                tool=tool_name,
                duration_ms=duration_ms,
                context_item_id=outcome.context_item_id,
            )
            return outcome

        classification = classify_tool_failure(
            outcome, tool_name, params, include_details=self.include_details
        )
        self.observer.record(
            "tool.failure",
            tool=tool_name,
            duration_ms=duration_ms,
            error_code=classification.details.error_code,
            reason=outcome.message if isinstance(outcome, ToolError) else str(outcome),
            params=params,
        )
        return ActionFragment(
            ai_response_text=classification.message,
            action_icon="error",
            error_details=classification.details,
        )

    def _run(self, tool_name: Any, params: Any) -> Union[ActionFragment, ToolError]:
        try:
            name = ToolName(tool_name)
        except ValueError:
            return ToolError(ErrorCode.UNKNOWN_TOOL.value, f"Unknown tool: {tool_name!r}")
        model, handler = self._registry[name]
        decoded = decode_params(model, params)
        if isinstance(decoded, ToolError):
            return decoded
        return handler(decoded)

    def _create_task(self, params: CreateTaskParams) -> ActionFragment:
        task_id = self.generator.generate()
        return ActionFragment(
            action_metadata={
                "tool": ToolName.CREATE_TASK.value,
                "description": params.description,
                "priority": params.priority,
                "due_date": params.due_date,
                "task_id": task_id,
            },
            context_item_id=task_id,
            context_item_type="task",
            updated_item_type="task",
            action_icon="task",
        )

    def _update_task(self, params: UpdateTaskParams) -> ActionFragment:
        return ActionFragment(
            action_metadata={
                "tool": ToolName.UPDATE_TASK.value,
                "task_id": params.task_id,
                "updates": params.updates,
            },
            context_item_id=params.task_id,
            context_item_type="task",
            updated_item_type="task",
            action_icon="edit",
        )

    def _create_reminder(self, params: CreateReminderParams) -> ActionFragment:
        reminder_id = self.generator.generate()
        return ActionFragment(
            action_metadata={
                "tool": ToolName.CREATE_REMINDER.value,
                "title": params.title,
                "description": params.description,
                "scheduled_time": params.scheduled_time,
                "reminder_id": reminder_id,
            },
            context_item_id=reminder_id,
            context_item_type="reminder",
            updated_item_type="reminder",
            action_icon="notifications",
        )

    def _update_reminder(self, params: UpdateReminderParams) -> ActionFragment:
        return ActionFragment(
            action_metadata={
                "tool": ToolName.UPDATE_REMINDER.value,
                "reminder_id": params.reminder_id,
                "updates": params.updates,
            },
            context_item_id=params.reminder_id,
            context_item_type="reminder",
            updated_item_type="reminder",
            action_icon="notifications",
        )

    def _track_expenses(self, params: TrackExpensesParams) -> ActionFragment:
        # Mint every id before building anything so a failure leaves no partial batch.
        expense_ids = [self.generator.generate() for _ in params.expenses]
        entries = [expense.model_dump(exclude_none=True) for expense in params.expenses]
        return ActionFragment(
            action_metadata={
                "tool": ToolName.TRACK_EXPENSES.value,
                "expenses": [
                    {**entry, "expense_id": expense_id}
                    for entry, expense_id in zip(entries, expense_ids)
                ],
                "total_amount": sum(expense.amount for expense in params.expenses),
            },
            multiple_actions=[
                MultipleAction(type="expense", id=expense_id, data=entry)
                for entry, expense_id in zip(entries, expense_ids)
            ],
            updated_item_type="expense",
            action_icon="receipt",
        )

    def _create_goal(self, params: CreateGoalParams) -> ActionFragment:
        goal_id = self.generator.generate()
        return ActionFragment(
            action_metadata={
                "tool": ToolName.CREATE_GOAL.value,
                "title": params.title,
                "description": params.description,
                "target": params.target,
                "progress": params.progress if params.progress is not None else 0,
                "goal_id": goal_id,
            },
            context_item_id=goal_id,
            context_item_type="goal",
            updated_item_type="goal",
            action_icon="flag",
        )

    def _update_goal(self, params: UpdateGoalParams) -> ActionFragment:
        return ActionFragment(
            action_metadata={
                "tool": ToolName.UPDATE_GOAL.value,
                "goal_id": params.goal_id,
                "updates": params.updates,
            },
            context_item_id=params.goal_id,
            context_item_type="goal",
            updated_item_type="goal",
            action_icon="flag",
        )

    def _create_journal_entry(self, params: CreateJournalEntryParams) -> ActionFragment:
        entry_id = self.generator.generate()
        return ActionFragment(
            action_metadata={
                "tool": ToolName.CREATE_JOURNAL_ENTRY.value,
                "content": params.content,
                "mood": params.mood,
                "entry_id": entry_id,
            },
            context_item_id=entry_id,
            context_item_type="journal",
            updated_item_type="journal",
            action_icon="book",
        )

    def _general_chat(self, params: GeneralChatParams) -> ActionFragment:
        return ActionFragment(
            action_metadata={
                "tool": ToolName.GENERAL_CHAT.value,
                "tone": params.tone,
                "response": params.response,
            },
            action_icon="chat",
        )
