"""
Month-name tables shared by the date parser and the field cleaners.
"""

from __future__ import annotations

import re
from typing import Dict

MONTHS: Dict[str, int] = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

# Full names precede their abbreviations so alternation prefers the long form.
MONTH_ALT = "|".join(sorted(MONTHS, key=lambda m: (MONTHS[m], -len(m))))

# Standalone month token: not glued to other letters ("mar" in "market" is not March).
MONTH_RE = re.compile(rf"(?<![a-z])({MONTH_ALT})(?![a-z])", re.I)

ORDINAL = r"(?:st|nd|rd|th)?"


def month_number(name: str) -> int | None:
    return MONTHS.get(name.lower())


def ordinal_suffix(day: int) -> str:
    if 11 <= day <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_ordinal(day: int) -> str:
    return f"{day}{ordinal_suffix(day)}"
