"""
Deterministic replies for when the chat model fails or says nothing usable.
"""

from __future__ import annotations

from typing import Sequence

from src.events import EventRecord, display_date, display_location, has_value

FOLLOW_UP_APOLOGY = (
    "I'm having a little trouble accessing that information right now. "
    "Could you try asking about the event details again?"
)
NO_EVENTS_MESSAGE = "I couldn't find any events matching your search. Try different keywords!"
GENERAL_CHAT_MESSAGE = (
    "I'm having a little trouble chatting right now. 😊 "
    "You can still ask me about events, like 'show me upcoming events'."
)


def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def summary_line(index: int, event: EventRecord) -> str:
    line = f"{index}. {event.name or 'Event'}"
    date = display_date(event)
    if has_value(date):
        line += f" on {date}"
    if has_value(event.time):
        line += f" at {event.time}"
    location = display_location(event)
    if location:
        line += f" at {location}"
    return line


def compose_event_summary(events: Sequence[EventRecord], top: int = 3) -> str:
    """
    Plain-text summary of the top events.

    Always names the first event, so a non-empty candidate list never
    produces a blank reply.
    """
    n = len(events)
    if n == 0:
        return NO_EVENTS_MESSAGE
    lines = "\n".join(summary_line(i, e) for i, e in enumerate(events[:top], 1))
    text = f"I found {n} event{_plural(n)} related to your search! 📅\n\n{lines}"
    rest = n - top
    if rest > 0:
        text += f"\n\n...and {rest} more event{_plural(rest)}!"
    return text


def found_events_message(n: int) -> str:
    return f"I found {n} event{_plural(n)} related to your search! Here they are: 👇"
