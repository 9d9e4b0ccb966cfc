"""
The request orchestration engine for Reva.

The engine takes one validated chat turn through identity interception,
prompt construction, the completion call, parsing and tool dispatch, using the
pillars of the app it is bound to.
"""

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .errors import classify_upstream_failure
from .identity import IDENTITY_RESPONSE, is_identity_question
from .models import SYSTEM_ROLE, USER_ROLE, ActionResult, ChatTurn
from .parsing import ResponseParser

if TYPE_CHECKING:
    from . import Reva


class Engine(ABC):
    """Abstract Base Class for all Reva engines."""

    def __init__(self, app: Optional["Reva"] = None) -> None:
        """Initialize the engine.

        Parameters
        ----------
        app : Reva, optional
            The app whose pillars the engine uses. Can be bound later.
        """
        self.app = app

    @abstractmethod
    def handle_message(self, turn: ChatTurn) -> Tuple[ActionResult, int]:
        """Handles one chat turn.

        Returns
        -------
        tuple of (ActionResult, int)
            The result for the caller and the HTTP status to answer with.
        """
        pass


class Synchronous(Engine):
    """One blocking completion call per turn, without retries."""

    def handle_message(self, turn: ChatTurn) -> Tuple[ActionResult, int]:
        if is_identity_question(turn.message):
            return (
                ActionResult(ai_response_text=IDENTITY_RESPONSE, action_icon="info"),
                200,
            )

        messages = self._build_messages(turn)
        settings = self.app.settings
        started = time.perf_counter()
        try:
            response = self.app.llm.generate_response(
                messages,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
            )
            raw_text = self.app.llm.extract_content(response)
        except Exception as e:
            classification = classify_upstream_failure(
                e, include_details=settings.include_error_details
            )
            self.app.observer.record(
                "completion.failure",
                error_code=classification.details.error_code,
                status=classification.status_code,
                reason=str(e),
            )
            result = ActionResult(
                ai_response_text=classification.message,
                action_icon="error",
                error_details=classification.details,
            )
            return result, classification.status_code

        self.app.observer.record(
            "completion.success",
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
            characters=len(raw_text),
        )
        parser = ResponseParser(self.app.tools, observer=self.app.observer)
        return parser.parse(raw_text), 200

    def _build_messages(self, turn: ChatTurn) -> List[Dict[str, Any]]:
        system_prompt = turn.master_prompt or self.app.prompt.build(
            turn, self.app.tools.get_tools()
        )
        return [
            {"role": SYSTEM_ROLE, "content": system_prompt},
            {"role": USER_ROLE, "content": turn.message},
        ]
