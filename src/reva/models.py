"""
Defines the core Pydantic data models for the application.

These models serve as the formal, validated data contract between the HTTP
surface, the engine and the tool dispatcher. Wire names are camelCase, matching
what the mobile client sends and expects back.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# --- Constants ---
USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"

DEFAULT_TONE = "Neutral"


class WireModel(BaseModel):
    """Base model serialising to camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Request models ---
class ChatMessage(BaseModel):
    """Represents a single message of the caller-supplied history."""

    role: str
    content: str


class ContextItem(BaseModel):
    """The entity the previous conversational turn concerned."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: Optional[str] = None


class ChatTurn(BaseModel):
    """One inbound chat turn, as posted to ``/api/v1/chat``."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(
        min_length=1, validation_alias=AliasChoices("chatInput", "message")
    )
    history: List[ChatMessage] = Field(
        default_factory=list,
        validation_alias=AliasChoices("chatHistory", "history"),
    )
    context_item: Optional[ContextItem] = Field(
        default=None, validation_alias=AliasChoices("contextItem", "context_item")
    )
    current_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("currentDate", "current_date")
    )
    tone: str = DEFAULT_TONE
    master_prompt: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("masterPrompt", "master_prompt")
    )
    existing_data: Any = Field(
        default=None, validation_alias=AliasChoices("existingData", "existing_data")
    )

    @field_validator("history", mode="before")
    @classmethod
    def _keep_complete_entries(cls, value: Any) -> List[Dict[str, str]]:
        if not isinstance(value, list):
            return []
        return [
            {"role": entry["role"], "content": entry["content"]}
            for entry in value
            if isinstance(entry, dict)
            and isinstance(entry.get("role"), str)
            and isinstance(entry.get("content"), str)
            and entry["role"]
            and entry["content"]
        ]

    @field_validator("tone", mode="before")
    @classmethod
    def _default_tone(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_TONE
        return value


# --- Response models ---
class ErrorDetails(WireModel):
    """Structured, user-safe description of a failure."""

    retryable: bool
    error_code: str
    timestamp: str
    suggested_action: str
    tool: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class MultipleAction(WireModel):
    """One of several entities produced by a single turn."""

    type: str
    id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ActionFragment(WireModel):
    """The partial ``ActionResult`` a single tool execution contributes."""

    ai_response_text: Optional[str] = None
    action_metadata: Optional[Dict[str, Any]] = None
    context_item_id: Optional[str] = None
    context_item_type: Optional[str] = None
    updated_item_type: Optional[str] = None
    action_icon: Optional[str] = None
    multiple_actions: Optional[List[MultipleAction]] = None
    error_details: Optional[ErrorDetails] = None

    @property
    def is_error(self) -> bool:
        return self.error_details is not None


class ActionResult(ActionFragment):
    """The output contract returned to the caller for every chat turn.

    Unlike fragments, results are emitted with explicit nulls so clients can
    rely on every key being present.
    """

    ai_response_text: str

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
