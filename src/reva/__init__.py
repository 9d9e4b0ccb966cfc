"""
The main entrypoint for the Reva package.

This module contains the Reva application class, which wires the extensible
pillars (LLM, tools, prompt, engine, observer) behind a small HTTP surface.
"""

from typing import Optional

from flask import Flask
from flask_cors import CORS

from . import config, engine, llm, observers, prompts, tools

__version__ = "0.1.0"


class Reva(Flask):
    """
    The Reva chat backend.

    This class acts as the central orchestrator, using the injected pillar
    components to answer chat turns. The constructor uses concrete default
    implementations built from ``settings``, while every pillar can be
    replaced.
    """

    def __init__(
        self,
        llm: Optional[llm.LLM] = None,
        tools: Optional[tools.Tool] = None,
        prompt: Optional[prompts.Prompt] = None,
        engine: Optional[engine.Engine] = None,
        observer: Optional[observers.Observer] = None,
        settings: Optional[config.Settings] = None,
        import_name: str = __name__,
        **kwargs,
    ) -> None:
        """
        Initialize the Reva application with configurable pillars.

        Parameters
        ----------
        llm : llm.LLM, optional
            Completion provider. Defaults to llm.OpenRouter() when an API key
            is configured, otherwise llm.Echo() with a warning.
        tools : tools.Tool, optional
            Tool dispatcher. Defaults to tools.Actions().
        prompt : prompts.Prompt, optional
            System prompt builder. Defaults to prompts.Default().
        engine : engine.Engine, optional
            Request orchestration. Defaults to engine.Synchronous().
        observer : observers.Observer, optional
            Receives tool, identifier and completion events. Defaults to
            observers.Logging().
        settings : config.Settings, optional
            Defaults to config.Settings.from_env().
        **kwargs
            Additional arguments passed to the Flask constructor.

        Examples
        --------
        Basic usage with defaults:

        >>> app = Reva()

        Custom configuration:

        >>> app = Reva(
        ...     llm=llm.OpenAI(default_model="gpt-4o-mini"),
        ...     observer=observers.Collector(),
        ... )
        """
        super().__init__(import_name, **kwargs)

        self.settings = settings if settings is not None else config.Settings.from_env()
        self.observer = observer if observer is not None else observers.Logging()

        if llm:
            self.llm = llm
        elif self.settings.api_key:
            from .llm import OpenRouter

            self.llm = OpenRouter(
                default_model=self.settings.model,
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
            )
        else:
            import warnings

            warnings.warn(
                "Reva is running with a simple Echo LLM because OPENROUTER_API_KEY is not set.",
                UserWarning,
            )
            from .llm import Echo

            self.llm = Echo()

        tools_module = globals()["tools"]
        prompts_module = globals()["prompts"]
        engine_module = globals()["engine"]

        self.tools = (
            tools
            if tools is not None
            else tools_module.Actions(
                observer=self.observer,
                include_details=self.settings.include_error_details,
            )
        )
        self.prompt = (
            prompt
            if prompt is not None
            else prompts_module.Default(history_limit=self.settings.history_limit)
        )
        self.engine = engine if engine is not None else engine_module.Synchronous()
        self.engine.app = self

        CORS(self, origins=self.settings.cors_origins)
        self._register_routes()

    def _register_routes(self) -> None:
        """Registers the HTTP routes that orchestrate the pillars."""
        from .routes import register_routes

        register_routes(self)
