"""Canned answer for questions about who built the assistant."""

IDENTITY_RESPONSE = (
    "I'm Reva, your personal assistant. I was created by the Reva team to help "
    "you organize your tasks, reminders, goals, journal, and expenses."
)

# Matched as lowercase substrings, so "origin" also catches "original".
IDENTITY_PATTERNS = (
    "who made you",
    "who created you",
    "your creator",
    "who built you",
    "origin",
    "where are you from",
    "who developed you",
)


def is_identity_question(message: str) -> bool:
    lowered = message.lower()
    return any(pattern in lowered for pattern in IDENTITY_PATTERNS)
