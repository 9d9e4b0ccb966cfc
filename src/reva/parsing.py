"""Turns the model's free-form answer into an ``ActionResult``.

The model is asked for a JSON envelope but is not trusted to produce one. The
parser takes the outermost ``{...}`` span and hands the requested tool to the
dispatcher. Only the model's ``aiResponseText`` is taken from the envelope;
every action field comes from the dispatcher's fragment. When nothing usable
is found, the raw text is returned as a plain conversational answer.
"""

import json
import re
from typing import Any, Dict, Optional, Tuple

from . import observers
from .models import ActionResult
from .tools import Tool

CODE_FENCE = re.compile(r"```[a-zA-Z]*")


def _locate(text: str) -> Optional[Tuple[int, int]]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return start, end + 1


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Decodes the span from the first ``{`` to the last ``}`` of ``text``.

    Returns None unless the span decodes to a JSON object.
    """
    span = _locate(text)
    if span is None:
        return None
    try:
        decoded = json.loads(text[span[0] : span[1]])
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


def _surrounding_text(text: str) -> str:
    span = _locate(text)
    if span is None:
        return text.strip()
    outside = text[: span[0]] + text[span[1] :]
    return CODE_FENCE.sub("", outside).strip()


def _first(envelope: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if envelope.get(key) is not None:
            return envelope[key]
    return None


class ResponseParser:
    """Parses model output and dispatches the tool it asks for.

    Parameters
    ----------
    tools : tools.Tool
        The dispatcher that executes the requested tool.
    observer : observers.Observer, optional
        Receives ``parse.fallback`` when the answer degrades to plain text.
    """

    def __init__(self, tools: Tool, observer: Optional[observers.Observer] = None):
        self.tools = tools
        self.observer = observer or observers.NoObserver()

    def parse(self, raw_text: Any) -> ActionResult:
        """Returns the structured result for ``raw_text``. Never raises."""
        if not isinstance(raw_text, str):
            raw_text = "" if raw_text is None else str(raw_text)
        try:
            return self._parse(raw_text)
        except Exception as e:
            self.observer.record(
                "parse.fallback", reason=str(e), exception=type(e).__name__
            )
            return ActionResult(ai_response_text=raw_text)

    def _parse(self, raw_text: str) -> ActionResult:
        envelope = extract_json_object(raw_text)
        if envelope is None:
            return ActionResult(ai_response_text=raw_text)

        fragment = self.tools.execute_tool(
            _first(envelope, "tool", "selectedTool"),
            _first(envelope, "toolParams", "parameters"),
        )
        produced = fragment.to_wire()

        text = envelope.get("aiResponseText")
        if not isinstance(text, str):
            text = _surrounding_text(raw_text) or raw_text
        # A failed tool apologises with its own text.
        produced.setdefault("aiResponseText", text)
        return ActionResult.model_validate(produced)
