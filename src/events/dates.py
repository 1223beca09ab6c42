"""
Parsing of free-text event dates into calendar dates.

Scraped dates are frequently malformed ("7th & 8th FEB", "Feb 7-8",
"th", "25/01/2026"). Parsing runs in three stages:

1. noise recovery from the owning record (see ``cleaners``),
2. a lenient pass that pairs any day number with any month name,
3. strict positional patterns for canonical and numeric-only shapes.

The parser never raises; failures come back as ``None``.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from src.telemetry import Tracer, default_tracer

from .cleaners import clean_date_string, is_degenerate_date
from .clock import Clock, SystemClock
from .models import EventRecord
from .months import MONTH_ALT, MONTH_RE, ORDINAL, month_number

_M = rf"({MONTH_ALT})"
_D = r"(?<!\d)(\d{1,2})(?!\d)"
_Y = r"(?<!\d)(\d{4})(?!\d)"
_DN = r"(?<!\d)\d{1,2}(?!\d)"
_SEP = r"\s*(?:&|,|-|/|and)\s*"

_DAY_RE = re.compile(_DN)
_YEAR_RE = re.compile(r"(?<!\d)(?:19|20)\d{2}(?!\d)")

# (year, month, day) builder; ``None`` means the current year.
Builder = Callable[[re.Match[str]], "tuple[Optional[int], int, int] | None"]


@dataclass(frozen=True)
class DatePattern:
    """A canonical date shape the parser accepts."""

    name: str
    pattern: re.Pattern[str]
    build: Builder


def _month(m: re.Match[str], group: int) -> int:
    return month_number(m.group(group)) or 0


def _days(text: str) -> List[int]:
    return [int(d) for d in re.findall(r"\d{1,2}", text)]


def _numeric_trailing_year(m: re.Match[str]):
    first, second, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    # MM/DD/YYYY unless the first group cannot be a month.
    if first > 12:
        return year, second, first
    return year, first, second


def _numeric_leading_year(m: re.Match[str]):
    year, middle, last = int(m.group(1)), int(m.group(2)), int(m.group(3))
    # YYYY/MM/DD unless the middle group cannot be a month.
    if middle > 12:
        return year, last, middle
    return year, middle, last


STRICT_PATTERNS: List[DatePattern] = [
    DatePattern(
        "month_day_year",
        re.compile(rf"{_M}\s+{_D}{ORDINAL},?\s+{_Y}", re.I),
        lambda m: (int(m.group(3)), _month(m, 1), int(m.group(2))),
    ),
    DatePattern(
        "day_month_year",
        re.compile(rf"{_D}{ORDINAL}\s+{_M},?\s+{_Y}", re.I),
        lambda m: (int(m.group(3)), _month(m, 2), int(m.group(1))),
    ),
    DatePattern(
        "day_list_month",
        re.compile(rf"((?:{_DN}{ORDINAL}{_SEP})+{_DN}{ORDINAL})\s+{_M}", re.I),
        lambda m: (None, _month(m, 2), min(_days(m.group(1)))),
    ),
    DatePattern(
        "month_day_list",
        re.compile(rf"{_M}\s+((?:{_DN}{ORDINAL}{_SEP})+{_DN}{ORDINAL})", re.I),
        lambda m: (None, _month(m, 1), min(_days(m.group(2)))),
    ),
    DatePattern(
        "day_month",
        re.compile(rf"{_D}{ORDINAL}\s+{_M}", re.I),
        lambda m: (None, _month(m, 2), int(m.group(1))),
    ),
    DatePattern(
        "month_day",
        re.compile(rf"{_M}\s+{_D}{ORDINAL}", re.I),
        lambda m: (None, _month(m, 1), int(m.group(2))),
    ),
    DatePattern(
        "iso",
        re.compile(rf"{_Y}-(\d{{1,2}})-(\d{{1,2}})(?!\d)"),
        lambda m: (int(m.group(1)), int(m.group(2)), int(m.group(3))),
    ),
    DatePattern(
        "year_first_slash",
        re.compile(rf"{_Y}/(\d{{1,2}})/(\d{{1,2}})(?!\d)"),
        _numeric_leading_year,
    ),
    DatePattern(
        "numeric_trailing_year",
        re.compile(rf"{_D}[/-](\d{{1,2}})[/-]{_Y}"),
        _numeric_trailing_year,
    ),
]
MONTH_DAY_LISTS = [p for p in STRICT_PATTERNS if p.name in ("day_list_month", "month_day_list")]


class DateExpressionParser:
    """Turn noisy event date strings into ``datetime.date`` values."""

    def __init__(self, clock: Optional[Clock] = None, tracer: Optional[Tracer] = None):
        self.clock = clock or SystemClock()
        self.tracer = tracer or default_tracer()

    @property
    def current_year(self) -> int:
        return self.clock.now().year

    def parse(self, raw: Optional[str], record: Optional[EventRecord] = None) -> Optional[dt.date]:
        cleaned = clean_date_string(raw, record, tracer=self.tracer)
        if is_degenerate_date(cleaned):
            self.tracer.emit(
                "date_parse_failed",
                raw=raw,
                reason="degenerate",
                event_id=record.id if record else None,
            )
            return None
        text = " ".join(cleaned.lower().split())
        parsed = self._parse_lenient(text)
        if parsed is None:
            parsed = self._parse_strict(text)
        if parsed is None:
            self.tracer.emit(
                "date_parse_failed",
                raw=raw,
                reason="no_pattern",
                days=_DAY_RE.findall(text),
                months=[m.group(1) for m in MONTH_RE.finditer(text)],
                event_id=record.id if record else None,
            )
        return parsed

    def _parse_lenient(self, text: str) -> Optional[dt.date]:
        """First valid day number plus first month name, wherever they sit."""
        month_match = MONTH_RE.search(text)
        if month_match is None:
            return None
        valid_days = [int(d) for d in _DAY_RE.findall(text) if 1 <= int(d) <= 31]
        if not valid_days:
            return None
        day = valid_days[0]
        for pattern in MONTH_DAY_LISTS:
            listed = pattern.pattern.search(text)
            # Only a list written against the month; "7-8 pm" elsewhere is a time.
            if listed and listed.start() <= month_match.start() < listed.end():
                built = pattern.build(listed)
                if built and 1 <= built[2] <= 31:
                    day = built[2]
                    break
        year_match = _YEAR_RE.search(text)
        year = int(year_match.group(0)) if year_match else self.current_year
        return self._build(year, month_number(month_match.group(1)) or 0, day, text, "lenient")

    def _parse_strict(self, text: str) -> Optional[dt.date]:
        for pattern in STRICT_PATTERNS:
            m = pattern.pattern.search(text)
            if not m:
                continue
            built = pattern.build(m)
            if built is None:
                continue
            year, month, day = built
            parsed = self._build(year or self.current_year, month, day, text, pattern.name)
            if parsed is not None:
                return parsed
        return None

    def _build(self, year: int, month: int, day: int, text: str, rule: str) -> Optional[dt.date]:
        try:
            return dt.date(year, month, day)
        except ValueError:
            self.tracer.emit("date_out_of_range", text=text, rule=rule, year=year, month=month, day=day)
            return None
