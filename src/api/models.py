"""
Request and response models for the events API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from src.events import EventRecord, display_date, display_location


class ChatRequest(BaseModel):
    """Request body for POST /api/chat."""

    query: str = Field(..., min_length=1, description="User message")
    conversation_id: Optional[str] = Field(None, description="Session ID for conversation history")
    display_name: Optional[str] = Field(None, description="Name of a signed-in user, if any")


class EventOut(BaseModel):
    """Event card shown alongside an answer."""

    id: str
    name: str = ""
    organizer: str = ""
    date: str = ""
    time: str = ""
    location: str = ""
    entry_type: str = ""
    website: str = ""
    highlights: List[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, event: EventRecord) -> "EventOut":
        return cls(
            id=event.id,
            name=event.name,
            organizer=event.organizer,
            date=display_date(event),
            time=event.time,
            location=display_location(event) or event.location,
            entry_type=event.entry_type,
            website=event.website,
            highlights=list(event.highlights),
        )


class ChatResponse(BaseModel):
    """Response for POST /api/chat."""

    answer: str
    sources: List[EventOut] = Field(default_factory=list)
    intent: str = "no_match"


class SearchRequest(BaseModel):
    """Request body for POST /api/search."""

    query: str = Field(..., min_length=1)
    top_k: int = Field(10, ge=1, le=50)


class SearchHit(BaseModel):
    """Single search result."""

    event: EventOut
    score: float
    source: str = ""


class SearchResponse(BaseModel):
    """Response for POST /api/search."""

    query: str
    results: List[SearchHit] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    status: str = "ok"
    events_loaded: int = 0


class StatsResponse(BaseModel):
    """Response for GET /api/stats."""

    active_conversations: int = 0
    events_loaded: int = 0
    embedded_events: int = 0
    generation_enabled: bool = False
