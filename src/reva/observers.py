"""Concrete implementations for activity observers.

Tool executions and identifier generation report what they do through an
injected observer instead of a module-level logger, so callers decide where the
events go (log output, an in-memory collector in tests, or nowhere).
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple


class Observer(ABC):
    """Interface for receiving engine activity events."""

    @abstractmethod
    def record(self, event: str, **fields: Any) -> None:
        """Receives a single named event with its structured fields."""
        pass


class NoObserver(Observer):
    """Default observer that discards every event."""

    def record(self, event: str, **fields: Any) -> None:
        pass


class Logging(Observer):
    """Forwards events to a standard library logger.

    Events ending in ``.failure`` are logged at ERROR, ``.fallback`` at WARNING
    and everything else at INFO, so every tool attempt shows up by default.
    """

    LEVELS = {
        "failure": logging.ERROR,
        "fallback": logging.WARNING,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("reva.activity")

    def record(self, event: str, **fields: Any) -> None:
        level = self.LEVELS.get(event.rsplit(".", 1)[-1], logging.INFO)
        if not self.logger.isEnabledFor(level):
            return
        rendered = " ".join(f"{key}={value!r}" for key, value in fields.items())
        self.logger.log(level, "%s %s", event, rendered)


class Collector(Observer):
    """Keeps every event in memory, in the order received."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def record(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    def names(self) -> List[str]:
        return [event for event, _ in self.events]

    def of(self, event: str) -> List[Dict[str, Any]]:
        """Returns the fields of every recorded ``event``."""
        return [fields for name, fields in self.events if name == event]
