"""Concrete implementations for LLM providers."""

import json
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "anthropic/claude-3-sonnet"


class LLM(ABC):
    """Abstract Base Class for all LLM providers."""

    @abstractmethod
    def generate_response(
        self, messages: List[Dict[str, Any]], model: Optional[str] = None, **kwargs: Any
    ) -> Any:
        """Generates a response from the LLM provider.

        This method should return the provider's native, rich response object
        directly from their SDK. Failures are raised as the SDK raises them;
        classifying them is the engine's job.

        Parameters
        ----------
        messages : List[Dict[str, Any]]
            A list of ``{"role", "content"}`` message dictionaries.
        model : str, optional
            The specific model to use for the generation.
        **kwargs : Any
            Provider-specific parameters (e.g., max_tokens, temperature) to be
            passed directly to the SDK.

        Returns
        -------
        Any
            The provider's native, rich response object.
        """
        pass

    @abstractmethod
    def extract_content(self, response: Any) -> str:
        """Extracts the text content from the provider's native response object.

        Returns an empty string when the response carries no text.
        """
        pass


class OpenAI(LLM):
    """Any OpenAI-compatible chat-completion endpoint.

    The SDK's own retries are disabled: a failed call is reported to the
    caller immediately.
    """

    def __init__(
        self,
        default_model: str = "gpt-4o",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ):
        from openai import OpenAI

        self.client = OpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self.model = default_model

    def generate_response(
        self, messages: List[Dict[str, Any]], model=None, **kwargs: Any
    ) -> Any:
        return self.client.chat.completions.create(
            messages=messages, model=model or self.model, **kwargs
        )

    def extract_content(self, response: Any) -> str:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            return ""
        return content or ""


class OpenRouter(OpenAI):
    def __init__(
        self,
        default_model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ):
        super().__init__(
            default_model=default_model,
            api_key=api_key or os.environ["OPENROUTER_API_KEY"],
            base_url=base_url or OPENROUTER_BASE_URL,
            timeout=timeout,
        )

    def generate_response(self, messages, model=None, **kwargs):
        return self.client.chat.completions.create(
            model=model or self.model,
            messages=messages,
            extra_headers={
                "HTTP-Referer": "https://reva.app",
                "X-Title": "Reva",
            },
            **kwargs,
        )


class Echo(LLM):
    """Offline stand-in that answers every message with a ``generalChat`` envelope."""

    def __init__(self, default_model: str = "echo-v1"):
        self.model = default_model

    def generate_response(self, messages, model=None, **kwargs):
        user_prompt = messages[-1]["content"] if messages else "No message provided"
        envelope = {
            "aiResponseText": f"Echo: {user_prompt}",
            "tool": "generalChat",
            "toolParams": {"tone": "neutral", "response": user_prompt},
        }
        return {"content": json.dumps(envelope), "model": model or self.model}

    def extract_content(self, response: Any) -> str:
        if isinstance(response, dict) and "content" in response:
            return response["content"] or ""
        return str(response) if response is not None else ""
