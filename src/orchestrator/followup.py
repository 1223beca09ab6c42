"""
Follow-up detection and answers recovered from earlier turns.

A follow-up ("what time?", "where is it") is answered from the events the
assistant already showed, or failing that from the text of its earlier
replies. Nothing here touches the event store.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from src.events import EventRecord, clean_location, display_date, has_value
from src.telemetry import Tracer, default_tracer

from .memory import ConversationTurn

DETAIL_WORDS = (
    "date", "time", "location", "place", "contact", "number", "phone", "email",
    "website", "address", "price", "cost", "when", "where", "who", "what",
    "which", "how", "their", "they", "its", "the",
)
EVENT_REFERENCE_WORDS = (
    "event", "festival", "concert", "show", "stadium", "venue", "location",
)
_ASKING_ABOUT_RE = re.compile(r"^(tell|give|show|what).*(more|details|info|about)")

FOLLOW_UP_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (
        r"^(which|what|when|where|who|whose)\s+(date|time|location|place|contact|number|price|cost|website|email|phone|name)",
        r"^(the\s+)?(date|time|location|place|contact|number|price|cost|website|email|phone|address|name)",
        r"^what\s+(is|are)\s+(the\s+)?(event\s+)?(name|date|time|location|place|contact|organizer|website)",
        r"^(their|its|his|her|they)\s+",
        r"^(contact|phone|email|website|address|price|cost|date|time|location|place|name|organizer)",
        r"^(how much|how long|how many|how far)",
        r"(contact|phone)\s*(number|details|info)?$",
        r"^(when|where|who|what time|what date|what name)",
        r"^(tell|give|show).*(more|details|info|about)",
        r"more\s+about",
        r"about\s+(the|this|that|it)",
    )
)

_TELL_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (r"tell.*about", r"tell.*that", r"tell.*it", r"tell.*this", r"say.*about", r"can.*tell", r"could.*tell")
)
_TIME_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (
        r"(\d{1,2}\s*(?:am|pm)\s*(?:to|-)?\s*\d{1,2}\s*(?:am|pm))",
        r"(\d{1,2}:\d{2}\s*(?:am|pm)?\s*(?:to|-)?\s*\d{1,2}:\d{2}\s*(?:am|pm)?)",
        r"from\s*(\d{1,2}\s*(?:am|pm)|\d{1,2}:\d{2})\s*to\s*(\d{1,2}\s*(?:am|pm)|\d{1,2}:\d{2})",
    )
)
_CONTACT_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (
        r"contact.*?([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})",
        r"email.*?([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})",
        r"phone.*?(\d{10,})",
        r"call.*?(\d{10,})",
    )
)
_VENUE_WORDS = (
    "cafe|stadium|hall|center|theater|park|venue|arena|auditorium|ground|hotel|restaurant|club|bar|"
    "studio|gallery|mall|plaza|square|garden|beach|resort|academy|institute|school|college|university|"
    "library|museum|theatre|cinema|field|grounds?"
)
_LOCATION_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (
        r"\bat\s+([A-Za-z][A-Za-z\s]+)",
        r"happening\s+(?:at|in)\s+([A-Za-z][A-Za-z\s]+)",
        r"(?:located|takes place)\s+(?:at|in)\s+([A-Za-z][A-Za-z\s]+)",
        r"(?:venue|location|place):\s*([A-Za-z][A-Za-z\s]+)",
        rf"(?:at|venue|location|place)\s+([A-Za-z][A-Za-z\s]*(?:{_VENUE_WORDS}))",
    )
)
_CAPITALIZED_AT_RE = re.compile(r"\bat\s+([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*)")
_LOCATION_SKIP = {
    "the", "a", "an", "at", "in", "on", "for", "to", "from", "and", "or", "but", "it", "is", "was", "are", "were",
}
_MONTHS = "january|february|march|april|may|june|july|august|september|october|november|december"
_DATE_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (
        rf"({_MONTHS})\s+(\d{{1,2}})(?:st|nd|rd|th)?",
        rf"(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTHS})",
        r"on\s+(\w+\s+\d{1,2})",
    )
)

_WORD_RE = re.compile(r"[a-z']+")


def _has_any(q: str, words: Sequence[str]) -> bool:
    return any(w in q for w in words)


def _answer_from_event(q: str, event: EventRecord) -> Optional[str]:
    """Answer a detail question from a single event's fields."""
    if "name" in q and ("event" in q or "what" in q) and has_value(event.name):
        return f"The event name is {event.name}."
    if ("organizer" in q or ("who" in q and "organize" in q)) and has_value(event.organizer):
        return f"The event is organized by {event.organizer}."
    if "date" in q or ("when" in q and "time" not in q):
        day = display_date(event)
        if has_value(day):
            return f"The event is on {day}."
    if "time" in q and has_value(event.time):
        return f"The event time is {event.time}."
    if _has_any(q, ("location", "where", "venue", "place")):
        location = clean_location(event.location, event)
        if has_value(location):
            return f"The event is happening at {location}."
    if _has_any(q, ("website", "url", "link")) and has_value(event.website):
        return f"The event website is {event.website}."
    if _has_any(q, ("entry", "ticket", "price", "cost", "free")) and has_value(event.entry_type):
        return f"The event entry is {event.entry_type}."
    return None


def _location_from_text(content: str) -> Optional[str]:
    for pattern in _LOCATION_PATTERNS:
        m = pattern.search(content)
        if not m:
            continue
        location = re.split(r"[.,!?;:]", m.group(1).strip())[0].strip()
        if len(location) > 2 and location.lower() not in _LOCATION_SKIP:
            return location
    m = _CAPITALIZED_AT_RE.search(content)
    if m:
        location = re.split(r"[.,!?;:]", m.group(1).strip())[0].strip()
        if len(location) > 3:
            return location
    return None


def _answer_from_text(q: str, content: str) -> Optional[str]:
    """Answer a detail question by scanning an earlier assistant reply."""
    wants_more = ("tell" in q or "say" in q or any(p.search(q) for p in _TELL_PATTERNS))
    if wants_more and _has_any(q, ("about", "that", "it", "this")) and len(content) > 30:
        return content

    if "time" in q or ("when" in q and "date" not in q):
        for pattern in _TIME_PATTERNS:
            m = pattern.search(content)
            if m:
                return f"The event is scheduled {m.group(0)}."

    if "contact" in q or "organizer" in q:
        for pattern in _CONTACT_PATTERNS:
            m = pattern.search(content)
            if m:
                return f"You can contact them at {m.group(1)}."

    if _has_any(q, ("where", "location", "venue", "place")):
        location = _location_from_text(content)
        if location:
            return f"The event is happening at {location}."

    if "date" in q:
        for pattern in _DATE_PATTERNS:
            m = pattern.search(content)
            if m:
                return f"The event is on {m.group(0)}."
    return None


class ConversationContextResolver:
    """Detects follow-up questions and answers them from history."""

    def __init__(self, window: int = 6, tracer: Optional[Tracer] = None):
        self.window = window
        self.tracer = tracer or default_tracer()

    def is_follow_up(self, utterance: str, history: Sequence[ConversationTurn]) -> bool:
        if not history:
            return False
        q = (utterance or "").lower().strip()
        if not q:
            return False

        if len(q.split()) <= 3 and set(_WORD_RE.findall(q)) & set(DETAIL_WORDS):
            self.tracer.emit("follow_up_detected", reason="short_detail", utterance=utterance)
            return True

        recent = " ".join(t.content.lower() for t in history[-self.window :])
        if _has_any(recent, EVENT_REFERENCE_WORDS) and ("about" in q or "tell me more" in q or _ASKING_ABOUT_RE.match(q)):
            self.tracer.emit("follow_up_detected", reason="event_reference", utterance=utterance)
            return True

        if any(p.search(q) for p in FOLLOW_UP_PATTERNS):
            self.tracer.emit("follow_up_detected", reason="pattern", utterance=utterance)
            return True
        return False

    def extract_answer(self, utterance: str, history: Sequence[ConversationTurn]) -> Optional[str]:
        """
        Answer from the most recent sourced assistant turn, then from the
        text of earlier assistant replies, newest first. None when neither
        has the detail asked for.
        """
        if not history:
            return None
        q = (utterance or "").lower().strip()

        for turn in reversed(history):
            if turn.is_assistant and turn.sources:
                answer = _answer_from_event(q, turn.sources[0])
                if answer:
                    self.tracer.emit("follow_up_answered", source="event", event_id=turn.sources[0].id)
                    return answer

        for turn in reversed(history):
            if turn.is_assistant and turn.content:
                answer = _answer_from_text(q, turn.content)
                if answer:
                    self.tracer.emit("follow_up_answered", source="text")
                    return answer

        self.tracer.emit("follow_up_unanswered", utterance=utterance)
        return None
