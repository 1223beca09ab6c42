"""
Prompt context for event answers.

Formats candidate events into numbered ``Event n:`` blocks, appends the
recent conversation and an optional note with the user's name.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from src.events import MISSING, EventRecord, display_date, display_location, has_value

from .prompts import NO_EVENTS_MARKER, SYSTEM_PROMPT


def _or_missing(value: str) -> str:
    return value if has_value(value) else MISSING


def format_event(index: int, event: EventRecord, ocr_chars: int = 300) -> str:
    date = display_date(event)
    shown_date = f"📅 {date}" if has_value(date) else MISSING
    highlights = ", ".join(event.highlights) if event.highlights else MISSING
    ocr = event.ocr_text[:ocr_chars] if event.raw_ocr else MISSING
    lines = [
        f"Event {index}:",
        f"- Name: {_or_missing(event.name)}",
        f"- Organizer: {_or_missing(event.organizer)}",
        f"- Date: {shown_date} (Numerical date: {date})",
        f"- Time: {_or_missing(event.time)}",
        f"- Location: {display_location(event) or MISSING}",
        f"- Entry Type: {_or_missing(event.entry_type)}",
        f"- Website: {_or_missing(event.website)}",
        f"- Highlights: {highlights}",
        f"- Additional Info: {ocr}",
    ]
    return "\n".join(lines)


def format_events_context(events: Sequence[EventRecord], ocr_chars: int = 300) -> str:
    """Numbered event blocks, or the "No events found" marker when empty."""
    if not events:
        return NO_EVENTS_MARKER
    return "\n\n".join(format_event(i, e, ocr_chars) for i, e in enumerate(events, 1))


def format_history(history: Sequence, turns: int = 10, assistant_name: str = "A-Agent") -> str:
    """Last ``turns`` messages as a "=== Previous Conversation ===" block."""
    if not history:
        return ""
    lines: List[str] = []
    for turn in list(history)[-turns:]:
        who = "User" if turn.role == "user" else assistant_name
        lines.append(f"{who}: {turn.content}")
    return (
        "\n\n=== Previous Conversation ===\n"
        + "\n".join(lines)
        + "\n=== End of Previous Conversation ===\n"
    )


def build_prompt_context(
    events: Sequence[EventRecord],
    history: Sequence = (),
    user_name: Optional[str] = None,
    *,
    assistant_name: str = "A-Agent",
    city: str = "Hyderabad",
    history_turns: int = 10,
    ocr_chars: int = 300,
) -> str:
    """Full system prompt: instructions with the events filled in, then history and name note."""
    prompt = SYSTEM_PROMPT.format(
        assistant_name=assistant_name,
        city=city,
        events_context=format_events_context(events, ocr_chars),
    )
    prompt += format_history(history, history_turns, assistant_name)
    if user_name:
        prompt += (
            f"\nNote: The user's name is {user_name}. "
            "You can use their name to personalize responses when appropriate.\n"
        )
    return prompt
