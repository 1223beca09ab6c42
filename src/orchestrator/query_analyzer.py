"""
Query analyzer: is this about events, is it a follow-up, which date bucket.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from src.rag.buckets import DateBucket

from .followup import ConversationContextResolver
from .memory import ConversationTurn


@dataclass
class QueryAnalysis:
    """Result of query analysis for the orchestrator."""

    is_event_query: bool
    is_follow_up: bool
    has_sourced_history: bool
    date_bucket: Optional[DateBucket]
    requires_retrieval: bool


EVENT_KEYWORDS = (
    "event", "events", "festival", "festivals", "concert", "concerts",
    "show", "shows", "party", "parties", "meetup", "meetups",
    "happening", "happenings", "activity", "activities",
    "find", "search", "show me", "tell me about", "what events",
    "upcoming", "today", "tomorrow", "this week", "weekend",
    "venue", "location", "where", "when", "date", "time",
    "music", "sports", "art", "theater", "comedy", "dance",
    "stadium", "cafe", "hall", "center",
)

_SEARCH_SHAPE = re.compile(r"^(find|search|show|list|tell me|what|which|are there|do you have)", re.I)
_GENERAL_CHAT = re.compile(
    r"^(hi|hello|hey|hii|greetings|good morning|good evening|good afternoon|sup|what's up|"
    r"wassup|yo|namaste|namaskar|how are you|how do you do)\b",
    re.I,
)


def is_event_query(query: str) -> bool:
    """Keyword or search-shaped question, excluding greeting-shaped openers."""
    q = (query or "").lower().strip()
    if not q or _GENERAL_CHAT.match(q):
        return False
    has_keyword = any(k in q for k in EVENT_KEYWORDS)
    return has_keyword or (bool(_SEARCH_SHAPE.match(q)) and len(q) > 10)


def date_bucket_for(query: str) -> Optional[DateBucket]:
    q = (query or "").lower()
    if "today" in q:
        return DateBucket.TODAY
    if "tomorrow" in q:
        return DateBucket.TOMORROW
    if "week" in q:
        return DateBucket.WEEK
    return None


class QueryAnalyzer:
    """Decides whether a query needs event retrieval."""

    def __init__(self, context_resolver: Optional[ConversationContextResolver] = None):
        self.context_resolver = context_resolver or ConversationContextResolver()

    def analyze(
        self,
        query: str,
        history: Optional[List[ConversationTurn]] = None,
    ) -> QueryAnalysis:
        history = history or []
        q = (query or "").strip()
        if not q:
            return QueryAnalysis(
                is_event_query=False,
                is_follow_up=False,
                has_sourced_history=False,
                date_bucket=None,
                requires_retrieval=False,
            )
        event_query = is_event_query(q)
        follow_up = self.context_resolver.is_follow_up(q, history)
        sourced = any(t.sources for t in history)
        return QueryAnalysis(
            is_event_query=event_query,
            is_follow_up=follow_up,
            has_sourced_history=sourced,
            date_bucket=date_bucket_for(q),
            requires_retrieval=event_query or (follow_up and sourced),
        )
