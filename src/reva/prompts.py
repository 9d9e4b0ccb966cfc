"""Concrete implementations for system prompt builders."""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .identity import IDENTITY_RESPONSE
from .models import ChatTurn

TONE_GUIDANCE = {
    "neutral": "Be clear, friendly and balanced. Keep answers short and practical.",
    "professional": (
        "Be formal, precise and courteous. Avoid slang and jokes; prefer "
        "complete sentences and concrete next steps."
    ),
    "casual": (
        "Be relaxed and conversational, like a helpful friend. Contractions "
        "and light humour are welcome."
    ),
    "sarcastic": (
        "Use dry, playful sarcasm while still being genuinely helpful. Never "
        "be mean, and always complete the request."
    ),
    "genz": (
        "Talk like a Gen Z friend: upbeat, informal, the occasional emoji or "
        "slang term, but keep the information accurate."
    ),
}

RESPONSE_FORMAT = {
    "aiResponseText": "the message shown to the user",
    "tool": "one of the tool names above, or null",
    "toolParams": "an object with the tool's parameters, or null",
}


class Prompt(ABC):
    """Abstract Base Class for system prompt builders."""

    @abstractmethod
    def build(self, turn: ChatTurn, tools: List[Dict[str, Any]]) -> str:
        """Returns the system prompt for one chat turn.

        Implementations must be pure: the same turn and catalog always yield
        the same prompt, apart from the current-date default.
        """
        pass


class Default(Prompt):
    """Reva's persona prompt.

    Parameters
    ----------
    history_limit : int, default=5
        Number of most recent history entries rendered into the prompt.
    """

    def __init__(self, history_limit: int = 5):
        self.history_limit = history_limit

    def build(self, turn: ChatTurn, tools: List[Dict[str, Any]]) -> str:
        sections = [
            self._persona(turn.tone),
            self._date(turn.current_date),
            self._identity(),
            self._tools(tools),
            self._context(turn),
            self._history(turn),
            self._response_format(),
        ]
        return "\n\n".join(section for section in sections if section)

    def _persona(self, tone: str) -> str:
        persona = (
            "You are Reva, a personal assistant that helps the user manage "
            "tasks, reminders, expenses, goals and journal entries."
        )
        guidance = TONE_GUIDANCE.get(tone.replace(" ", "").lower())
        if guidance is None:
            guidance = (
                f"{TONE_GUIDANCE['neutral']} Adopt this tone requested by the "
                f"user: {tone}."
            )
        return f"{persona}\nTone: {tone}. {guidance}"

    def _date(self, current_date: Optional[str]) -> str:
        date = current_date or datetime.now(timezone.utc).isoformat()
        return f"Current date: {date}"

    def _identity(self) -> str:
        return (
            "If the user asks who made, created, built or developed you, or "
            f'where you come from, answer exactly: "{IDENTITY_RESPONSE}" '
            "Never name any AI company, model or provider."
        )

    def _tools(self, tools: List[Dict[str, Any]]) -> str:
        if not tools:
            return "No tools are available; answer conversationally."
        lines = ["Available tools:"]
        for tool in tools:
            lines.append(f"- {tool['name']}: {tool['description']}")
            for name, shape in tool.get("parameters", {}).items():
                lines.append(f"    {name}: {shape}")
        return "\n".join(lines)

    def _context(self, turn: ChatTurn) -> str:
        item = turn.context_item
        if item is None or not item.id:
            return ""
        return (
            f"The previous turn concerned a {item.type or 'item'} with id "
            f"{item.id}. If the user is following up on it, use the matching "
            "update tool with that id instead of creating a new one."
        )

    def _history(self, turn: ChatTurn) -> str:
        if self.history_limit <= 0 or not turn.history:
            return ""
        recent = turn.history[-self.history_limit :]
        lines = ["Recent conversation:"]
        lines.extend(f"{message.role}: {message.content}" for message in recent)
        return "\n".join(lines)

    def _response_format(self) -> str:
        return (
            "Reply with a single JSON object and nothing else, in this shape:\n"
            + json.dumps(RESPONSE_FORMAT, indent=2)
        )
