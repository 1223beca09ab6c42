"""
Recovery of noisy date and location fields from an event's OCR text.

Scraped posters often come back with a date of ``"th"`` or a location of
``"NE"`` or ``"N/A"`` while the real value sits somewhere in ``full_text`` or
``raw_ocr``. The rules below are plain data, tried in order, so tests can
enumerate them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from src.telemetry import Tracer, default_tracer

from .models import MISSING, EventRecord, has_value
from .months import MONTH_ALT, MONTH_RE, ORDINAL, format_ordinal

_M = rf"(?:{MONTH_ALT})"
_D = r"(?<!\d)\d{1,2}(?!\d)"


@dataclass(frozen=True)
class DateRecoveryRule:
    name: str
    pattern: re.Pattern[str]


DATE_RECOVERY_RULES: List[DateRecoveryRule] = [
    DateRecoveryRule("day_list_month", re.compile(rf"{_D}{ORDINAL}\s*(?:[&,]|and)\s*{_D}{ORDINAL}\s+{_M}(?![a-z])", re.I)),
    DateRecoveryRule("month_day_list", re.compile(rf"(?<![a-z]){_M}\s+{_D}{ORDINAL}\s*(?:[&,]|and)\s*{_D}{ORDINAL}", re.I)),
    DateRecoveryRule("day_range_month", re.compile(rf"{_D}\s*[-/]\s*{_D}\s+{_M}(?![a-z])", re.I)),
    DateRecoveryRule("month_day_range", re.compile(rf"(?<![a-z]){_M}\s+{_D}\s*[-/]\s*{_D}", re.I)),
    DateRecoveryRule("day_month_year", re.compile(rf"{_D}{ORDINAL}\s+{_M},?\s+\d{{4}}", re.I)),
    DateRecoveryRule("month_day_year", re.compile(rf"(?<![a-z]){_M}\s+{_D}{ORDINAL},?\s+\d{{4}}", re.I)),
    DateRecoveryRule("day_month", re.compile(rf"{_D}{ORDINAL}\s+{_M}(?![a-z])", re.I)),
    DateRecoveryRule("month_day", re.compile(rf"(?<![a-z]){_M}\s+{_D}{ORDINAL}(?![a-z])", re.I)),
    DateRecoveryRule("iso", re.compile(r"(?<!\d)\d{4}-\d{1,2}-\d{1,2}(?!\d)")),
    DateRecoveryRule("numeric", re.compile(r"(?<!\d)\d{1,2}/\d{1,2}/\d{4}(?!\d)")),
]

_DAY_NUMBER_RE = re.compile(_D)


def is_degenerate_date(value: Optional[str]) -> bool:
    """Dates that cannot be parsed on their own: blank, ``N/A``, ``th``, two chars or fewer."""
    if value is None:
        return True
    v = value.strip()
    return not v or v == MISSING or v.lower() == "th" or len(v) <= 2


def _date_from_ocr(ocr_text: str) -> Optional[str]:
    """Pair the first valid day number with the first month name anywhere in the OCR lines."""
    month = MONTH_RE.search(ocr_text)
    if not month:
        return None
    for m in _DAY_NUMBER_RE.finditer(ocr_text):
        day = int(m.group(0))
        if 1 <= day <= 31:
            name = month.group(1)
            return f"{format_ordinal(day)} {name[:1].upper()}{name[1:].lower()}"
    return None


def clean_date_string(
    raw: Optional[str],
    record: Optional[EventRecord] = None,
    *,
    tracer: Optional[Tracer] = None,
) -> Optional[str]:
    """
    Replace a degenerate date with one recovered from the owning record.

    Valid-looking strings come back unchanged; so do degenerate ones that
    cannot be recovered.
    """
    if not is_degenerate_date(raw):
        return raw
    if record is None:
        return raw
    tracer = tracer or default_tracer()
    if record.full_text:
        for rule in DATE_RECOVERY_RULES:
            m = rule.pattern.search(record.full_text)
            if m:
                tracer.emit("date_recovered", event_id=record.id, source="full_text", rule=rule.name, value=m.group(0))
                return m.group(0)
    if record.raw_ocr:
        recovered = _date_from_ocr(record.ocr_text)
        if recovered:
            tracer.emit("date_recovered", event_id=record.id, source="raw_ocr", rule="day_and_month", value=recovered)
            return recovered
    tracer.emit("date_recovery_failed", event_id=record.id, raw=raw)
    return raw


@dataclass(frozen=True)
class LocationCodeRule:
    """A location placeholder code and how to expand it from the event text."""

    canonical: str
    prefix: Tuple[str, ...]
    patterns: Tuple[re.Pattern[str], ...]


_AT = r"(?:happening at|located at|venue|location|place|at):?\s*"

LOCATION_CODE_RULES: Dict[str, LocationCodeRule] = {
    "NE": LocationCodeRule(
        canonical="Ashoka mall",
        prefix=("ashoka", "one"),
        patterns=(
            re.compile(rf"{_AT}(Ashoka\s+One\s+Mall[^,)]*)", re.I),
            re.compile(rf"{_AT}(Ashoka\s+One[^,)]*)", re.I),
            re.compile(rf"{_AT}(Ashoka[^,)]*)", re.I),
            re.compile(r"(Ashoka\s+One\s+Mall[^,)]*)", re.I),
            re.compile(r"(Ashoka\s+One[^,)]*)", re.I),
            re.compile(r"(Ashoka[^,)]*)", re.I),
        ),
    ),
}

ADDRESS_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"(?<![A-Za-z])(?i:happening at|located at|venue|location|place|at):?\s+([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+){0,3})"),
    re.compile(r"(?<![A-Za-z])(?i:happening at|located at|at)\s+([A-Z][A-Za-z]+\s+[A-Z][A-Za-z]+)"),
)

CAPITALIZED_PHRASE_RE = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,2})\b")

LOCATION_SKIP_WORDS = frozenset({
    "Event", "Date", "Time", "Entry", "Free", "Contact", "Website", "Organizer",
    "January", "February", "March", "April", "May", "June", "July", "August",
    "September", "October", "November", "December",
})


def _first_two_words(text: str) -> str:
    return " ".join(text.split()[:2])


def _expand_code(rule: LocationCodeRule, texts: List[str]) -> str:
    for text in texts:
        if not text:
            continue
        for pattern in rule.patterns:
            m = pattern.search(text)
            if not m:
                continue
            words = m.group(1).split()
            lowered = tuple(w.lower() for w in words[: len(rule.prefix)])
            if lowered == rule.prefix:
                return rule.canonical
            if len(words) >= 2:
                return f"{words[0]} {words[1]}"
            if words and words[0].lower() == rule.prefix[0]:
                return rule.canonical
    return rule.canonical


def _address_from_text(text: str) -> Optional[str]:
    for pattern in ADDRESS_PATTERNS:
        m = pattern.search(text)
        if m:
            return _first_two_words(m.group(1))
    for m in CAPITALIZED_PHRASE_RE.finditer(text):
        phrase = m.group(1)
        if any(w in LOCATION_SKIP_WORDS for w in phrase.split()):
            continue
        return _first_two_words(phrase)
    return None


def clean_location(
    location: Optional[str],
    record: Optional[EventRecord] = None,
    *,
    tracer: Optional[Tracer] = None,
) -> Optional[str]:
    """
    Expand placeholder codes and fill missing locations from the event text.

    Returns the input unchanged when nothing better can be found.
    """
    tracer = tracer or default_tracer()
    code = (location or "").strip().upper()
    rule = LOCATION_CODE_RULES.get(code)
    if rule is not None:
        texts = [record.full_text, record.ocr_text] if record is not None else []
        resolved = _expand_code(rule, texts)
        tracer.emit("location_recovered", code=code, value=resolved)
        return resolved
    if has_value(location):
        return location
    if record is None:
        return location
    for source, text in (("full_text", record.full_text), ("raw_ocr", record.ocr_text)):
        if not text:
            continue
        found = _address_from_text(text)
        if found:
            tracer.emit("location_recovered", event_id=record.id, source=source, value=found)
            return found
    return location


def display_date(record: EventRecord) -> str:
    """Date text for user-facing lists, recovered when the stored value is noise."""
    cleaned = clean_date_string(record.date_raw or MISSING, record)
    return MISSING if is_degenerate_date(cleaned) else cleaned


def display_location(record: EventRecord) -> str:
    cleaned = clean_location(record.location, record)
    return cleaned if has_value(cleaned) else ""
