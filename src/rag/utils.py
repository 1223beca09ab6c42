"""
Keyword extraction for the substring search path.
"""

from __future__ import annotations

import re
from typing import List

SPLIT_RE = re.compile(r"[\s,.?!]+")
PUNCT_RE = re.compile(r"[^\w\s]")

STOPWORDS = {
    "show", "me", "any", "event", "events", "of", "in", "for", "the",
    "a", "an", "find", "search", "about", "is", "are", "which", "what",
    "when", "where",
}

GENERAL_LISTING_RE = re.compile(r"(popular|show|all|any|latest|upcoming)\s+events?", re.I)


def extract_keywords(text: str) -> List[str]:
    """Lowercased query tokens longer than two characters, minus stop words."""
    keywords: List[str] = []
    for tok in SPLIT_RE.split(text.lower()):
        if len(tok) <= 2 or tok in STOPWORDS:
            continue
        if tok not in keywords:
            keywords.append(tok)
    return keywords


def strip_punctuation(text: str) -> str:
    return PUNCT_RE.sub("", text).strip()


def is_general_listing(text: str) -> bool:
    return bool(GENERAL_LISTING_RE.search(text))
