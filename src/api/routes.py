"""
API routes: chat, search, health, stats, conversation.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.orchestrator import ConversationMemory, UserIdentity

from .models import (
    ChatRequest,
    ChatResponse,
    EventOut,
    HealthResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
    StatsResponse,
)

router = APIRouter(prefix="/api", tags=["api"])

_UNAVAILABLE = {"detail": "Service unavailable: events not loaded or agent not initialized."}


def _get_state(request: Request) -> tuple[Any, Any, Any, int]:
    agent = getattr(request.app.state, "agent", None)
    retriever = getattr(request.app.state, "retriever", None)
    store = getattr(request.app.state, "store", None)
    events_loaded = getattr(request.app.state, "events_loaded", 0)
    return agent, retriever, store, events_loaded


def _get_sessions(request: Request) -> dict[str, ConversationMemory]:
    if getattr(request.app.state, "sessions", None) is None:
        request.app.state.sessions = {}
    return request.app.state.sessions


def _session(request: Request, conversation_id: str) -> ConversationMemory:
    """Per-conversation memory, created on first use."""
    return _get_sessions(request).setdefault(conversation_id, ConversationMemory(max_turns=20))


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check."""
    _, _, _, events_loaded = _get_state(request)
    return HealthResponse(status="ok", events_loaded=events_loaded)


@router.get("/stats", response_model=StatsResponse)
async def stats(request: Request) -> StatsResponse:
    """Usage statistics."""
    agent, _, store, events_loaded = _get_state(request)
    sessions = _get_sessions(request)
    embedded = sum(1 for e in store.events if e.embedding) if store is not None else 0
    return StatsResponse(
        active_conversations=len(sessions),
        events_loaded=events_loaded,
        embedded_events=embedded,
        generation_enabled=agent is not None and agent.generator is not None,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(request: Request, body: ChatRequest) -> ChatResponse | JSONResponse:
    """Answer a message with the event agent, using the conversation's earlier turns."""
    agent, _, _, events_loaded = _get_state(request)
    if agent is None or events_loaded == 0:
        return JSONResponse(status_code=503, content=_UNAVAILABLE)
    memory = _session(request, body.conversation_id or "default")
    history = memory.get_history()
    identity = UserIdentity(display_name=body.display_name) if body.display_name else None
    resp = await asyncio.to_thread(agent.answer, body.query, history, identity)
    memory.add_turn(body.query, resp.answer, resp.sources)
    return ChatResponse(
        answer=resp.answer,
        sources=[EventOut.from_record(e) for e in resp.sources],
        intent=resp.intent.value,
    )


@router.post("/search", response_model=SearchResponse)
async def search_endpoint(request: Request, body: SearchRequest) -> SearchResponse | JSONResponse:
    """Direct hybrid search (no generation)."""
    agent, retriever, _, events_loaded = _get_state(request)
    if retriever is None or events_loaded == 0:
        return JSONResponse(status_code=503, content=_UNAVAILABLE)
    embedding = None
    if agent is not None and agent.embedder is not None:
        embedding = await asyncio.to_thread(agent.embedder.embed, body.query)
    results = await asyncio.to_thread(retriever.retrieve, body.query, embedding, body.top_k)
    hits = [
        SearchHit(event=EventOut.from_record(r.event), score=round(r.score, 4), source=r.source)
        for r in results
    ]
    return SearchResponse(query=body.query, results=hits)


@router.delete("/conversation")
async def clear_conversation(request: Request, conversation_id: str = "default") -> dict:
    """Clear conversation history for the given conversation_id."""
    memory = _get_sessions(request).get(conversation_id)
    if memory is not None:
        memory.clear()
    return {"ok": True, "conversation_id": conversation_id}
