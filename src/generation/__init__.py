"""
Answer generation for event questions.

- Prompt context from candidate events and recent history
- Chat completion through the LLM client
- Deterministic fallback summaries
"""

from .config import GenerationConfig
from .context_builder import build_prompt_context, format_events_context, format_history
from .fallback import (
    FOLLOW_UP_APOLOGY,
    GENERAL_CHAT_MESSAGE,
    NO_EVENTS_MESSAGE,
    compose_event_summary,
    found_events_message,
)
from .generator import AnswerGenerator, GenerationError
from .prompts import NO_EVENTS_MARKER, SYSTEM_PROMPT

__all__ = [
    "AnswerGenerator",
    "FOLLOW_UP_APOLOGY",
    "GENERAL_CHAT_MESSAGE",
    "GenerationConfig",
    "GenerationError",
    "NO_EVENTS_MARKER",
    "NO_EVENTS_MESSAGE",
    "SYSTEM_PROMPT",
    "build_prompt_context",
    "compose_event_summary",
    "format_events_context",
    "format_history",
    "found_events_message",
]
