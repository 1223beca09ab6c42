"""
Completeness score for candidate event records.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import EventRecord, has_value

ACRONYM_BONUS_RE = re.compile(r"^[A-Z]{2,4}$")
ACRONYM_EXEMPT_RE = re.compile(r"^[A-Z]{2,3}$")


def is_noise_name(name: str) -> bool:
    """Short names that are not acronyms, e.g. a bare "the" lifted from a poster."""
    n = (name or "").strip()
    return len(n) <= 3 and not ACRONYM_EXEMPT_RE.match(n)


@dataclass(frozen=True)
class QualityWeights:
    name: int = 30
    short_name_penalty: int = -20
    date: int = 25
    location: int = 20
    time: int = 10
    organizer: int = 10
    website: int = 5


class EventQualityScorer:
    """Heuristic 0-100 score of how complete an event record is."""

    def __init__(self, weights: QualityWeights | None = None):
        self.weights = weights or QualityWeights()

    def raw_score(self, event: EventRecord) -> int:
        """Unfloored score; the short-name penalty can push it below zero."""
        w = self.weights
        score = 0
        name = event.name.strip()
        if has_value(name):
            if is_noise_name(name):
                score += w.short_name_penalty
            if len(name) > 3 or ACRONYM_BONUS_RE.match(name):
                score += w.name
        if has_value(event.date_raw):
            score += w.date
        if has_value(event.location):
            score += w.location
        if has_value(event.time):
            score += w.time
        if has_value(event.organizer):
            score += w.organizer
        if has_value(event.website):
            score += w.website
        return score

    def score(self, event: EventRecord) -> int:
        return max(0, self.raw_score(event))
