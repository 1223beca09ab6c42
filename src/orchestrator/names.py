"""
Asking for, and remembering, the user's name within a conversation.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from .memory import ConversationTurn

NAME_REQUEST = "Before we start, what is your name? 😊"

_NAME_REQUEST_MARKERS = ("what is ur name", "what is your name", "what's your name")
_NAME_PREFIX_RE = re.compile(
    r"^(my name is|i'?m|i am|it'?s|it is|this is|call me|name'?s)\s+",
    re.I,
)
_TRAILING_PUNCT_RE = re.compile(r"[.,!?]+$")


def is_name_request(text: str) -> bool:
    t = (text or "").lower()
    return any(m in t for m in _NAME_REQUEST_MARKERS)


def extract_user_name(text: str) -> str:
    """Strip self-introduction phrasing and keep at most three words."""
    name = _NAME_PREFIX_RE.sub("", (text or "").strip())
    name = _TRAILING_PUNCT_RE.sub("", name)
    return " ".join(name.split()[:3]).strip()


def get_user_name(history: Sequence[ConversationTurn]) -> Optional[str]:
    """Name the user gave in reply to a name request, newest first."""
    for i in range(len(history) - 1, 0, -1):
        turn = history[i]
        prev = history[i - 1]
        if turn.is_user and prev.is_assistant and is_name_request(prev.content):
            name = extract_user_name(turn.content)
            if name:
                return name
    return None


def should_ask_for_name(history: Sequence[ConversationTurn]) -> bool:
    """
    True on the first user message of a conversation that already has
    history (a welcome turn), when no name was asked for or given yet.
    """
    if not history:
        return False
    if get_user_name(history):
        return False
    if any(t.is_user for t in history):
        return False
    return not any(t.is_assistant and is_name_request(t.content) for t in history)


def is_name_response(history: Sequence[ConversationTurn]) -> bool:
    """True when the latest assistant turn asked for the user's name."""
    for turn in reversed(history):
        if turn.is_assistant:
            return is_name_request(turn.content)
    return False
