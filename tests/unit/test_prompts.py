"""Tests for the Prompt pillar implementations."""

import json

import pytest
from reva.identity import IDENTITY_RESPONSE
from reva.models import ChatTurn
from reva.prompts import TONE_GUIDANCE, Default, Prompt
from reva.tools import TOOL_CATALOG


def turn(**fields) -> ChatTurn:
    return ChatTurn.model_validate({"chatInput": "hello", **fields})


class TestDefaultPrompt:
    @pytest.fixture
    def prompt(self) -> Default:
        return Default()

    def test_implements_interface(self, prompt):
        assert isinstance(prompt, Prompt)

    def test_is_deterministic(self, prompt, sample_turn):
        """Identical inputs with a fixed date give identical prompts."""
        assert prompt.build(sample_turn, TOOL_CATALOG) == prompt.build(
            sample_turn, TOOL_CATALOG
        )

    def test_sections_in_order(self, prompt, sample_turn):
        text = prompt.build(sample_turn, TOOL_CATALOG)
        positions = [
            text.index("You are Reva"),
            text.index("Current date: 2024-06-01T09:00:00Z"),
            text.index(IDENTITY_RESPONSE),
            text.index("Available tools:"),
            text.index("update tool"),
            text.index("Recent conversation:"),
            text.index('"aiResponseText"'),
        ]
        assert positions == sorted(positions)

    def test_lists_every_tool_with_parameters(self, prompt):
        text = prompt.build(turn(), TOOL_CATALOG)
        for tool in TOOL_CATALOG:
            assert f"- {tool['name']}:" in text
        assert "taskId:" in text
        assert "scheduledTime:" in text

    def test_without_tools(self, prompt):
        assert "No tools are available" in prompt.build(turn(), [])

    @pytest.mark.parametrize(
        "tone,key",
        [
            ("Neutral", "neutral"),
            ("professional", "professional"),
            ("CASUAL", "casual"),
            ("Sarcastic", "sarcastic"),
            ("GenZ", "genz"),
            ("Gen Z", "genz"),
        ],
    )
    def test_canonical_tones(self, prompt, tone, key):
        """Canonical tones match case-insensitively."""
        assert TONE_GUIDANCE[key] in prompt.build(turn(tone=tone), [])

    def test_custom_tone_passed_verbatim(self, prompt):
        """Unknown tones keep the neutral baseline and are passed through."""
        text = prompt.build(turn(tone="like a pirate"), [])
        assert TONE_GUIDANCE["neutral"] in text
        assert "like a pirate" in text

    def test_default_date_is_now(self, prompt):
        assert "Current date: 20" in prompt.build(turn(), [])

    def test_context_linkage(self, prompt):
        text = prompt.build(
            turn(contextItem={"id": "abc", "type": "reminder"}), TOOL_CATALOG
        )
        assert "reminder with id abc" in text

    def test_no_context_without_id(self, prompt):
        text = prompt.build(turn(contextItem={"type": "reminder"}), TOOL_CATALOG)
        assert "previous turn" not in text

    def test_history_limited_to_last_turns(self, prompt):
        history = [{"role": "user", "content": f"message {i}"} for i in range(8)]
        text = prompt.build(turn(chatHistory=history), [])
        assert "user: message 2" not in text
        for i in range(3, 8):
            assert f"user: message {i}" in text

    def test_history_limit_is_configurable(self, sample_turn):
        text = Default(history_limit=1).build(sample_turn, [])
        assert "assistant: Reminder created." in text
        assert "I need to buy groceries" not in text

    def test_zero_history_limit(self, sample_turn):
        assert "Recent conversation" not in Default(history_limit=0).build(sample_turn, [])

    def test_ends_with_envelope(self, prompt):
        text = prompt.build(turn(), [])
        envelope = json.loads(text[text.index("{") :])
        assert set(envelope) == {"aiResponseText", "tool", "toolParams"}
