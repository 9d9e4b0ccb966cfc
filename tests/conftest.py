"""
Core pytest configuration and fixtures for Reva testing.

This module provides shared test fixtures, configuration, and utilities
that support the pillar-based testing architecture.
"""

import json
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from reva.config import Settings
from reva.identifiers import IdentifierGenerator
from reva.models import ASSISTANT_ROLE, USER_ROLE, ChatTurn
from reva.observers import Collector
from reva.tools import Actions

# ===== TEST DATA FIXTURES =====


@pytest.fixture
def sample_history() -> List[Dict[str, str]]:
    """Sample chat history as posted by the client."""
    return [
        {"role": USER_ROLE, "content": "I need to buy groceries"},
        {"role": ASSISTANT_ROLE, "content": "Got it, I added that task."},
        {"role": USER_ROLE, "content": "Also remind me to call mom"},
        {"role": ASSISTANT_ROLE, "content": "Reminder created."},
    ]


@pytest.fixture
def sample_turn(sample_history) -> ChatTurn:
    """A fully populated chat turn."""
    return ChatTurn.model_validate(
        {
            "chatInput": "Mark the groceries task as done",
            "chatHistory": sample_history,
            "contextItem": {
                "id": "a1b2c3d4-e5f6-4789-a012-b3c4d5e6f789",
                "type": "task",
            },
            "currentDate": "2024-06-01T09:00:00Z",
            "tone": "Casual",
        }
    )


def make_envelope(
    tool: Optional[str] = None,
    params: Optional[Dict[str, Any]] = None,
    text: str = "Done!",
    **extra: Any,
) -> str:
    """Renders the JSON envelope the model is asked to answer with."""
    envelope = {"aiResponseText": text, "tool": tool, "toolParams": params}
    envelope.update(extra)
    return json.dumps(envelope)


@pytest.fixture
def envelope():
    """Helper function to build model envelopes in tests."""
    return make_envelope


# ===== PILLAR FIXTURES =====


@pytest.fixture
def collector() -> Collector:
    """In-memory observer for asserting on emitted events."""
    return Collector()


@pytest.fixture
def generator(collector) -> IdentifierGenerator:
    """Identifier generator with the default tiers, reporting to ``collector``."""
    return IdentifierGenerator(observer=collector)


@pytest.fixture
def actions(generator, collector) -> Actions:
    """The built-in tool dispatcher with error details enabled."""
    return Actions(generator=generator, observer=collector, include_details=True)


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the process environment."""
    return Settings(debug_routes=True)


# ===== MOCK FIXTURES =====


@pytest.fixture
def mock_llm():
    """Mock LLM provider answering with a generalChat envelope."""
    mock = MagicMock()
    mock.generate_response.return_value = {"content": "raw"}
    mock.extract_content.return_value = make_envelope(
        "generalChat", {"tone": "neutral", "response": "Hi!"}, text="Hi!"
    )
    return mock


# ===== APP FIXTURES =====


@pytest.fixture
def test_app(settings, collector):
    """
    Provides a Reva app instance with simple, predictable pillars.

    This fixture is ideal for integration tests where we need a running app
    but want to avoid external dependencies like actual LLM APIs.
    """
    from reva import Reva
    from reva.llm import Echo

    app = Reva(llm=Echo(), observer=collector, settings=settings)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(test_app):
    """Flask test client for the HTTP surface."""
    return test_app.test_client()


# ===== CONFIGURATION =====


def pytest_configure(config):
    """Pytest configuration."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow-running")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
