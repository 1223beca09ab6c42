"""
Tests for the events assistant FastAPI routes.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.orchestrator import EventAgent
from src.rag import HybridRetriever

client = TestClient(app)


@pytest.fixture
def loaded(monkeypatch, store, clock):
    """App state as the lifespan would set it, over the sample events and without a chat model."""
    retriever = HybridRetriever(store)
    agent = EventAgent(store, retriever=retriever, clock=clock)
    monkeypatch.setattr(app.state, "agent", agent, raising=False)
    monkeypatch.setattr(app.state, "retriever", retriever, raising=False)
    monkeypatch.setattr(app.state, "store", store, raising=False)
    monkeypatch.setattr(app.state, "events_loaded", len(store), raising=False)
    monkeypatch.setattr(app.state, "sessions", {}, raising=False)
    return agent


def test_health():
    """GET /api/health returns ok and events_loaded."""
    r = client.get("/api/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert isinstance(data["events_loaded"], int)


def test_stats():
    """GET /api/stats returns active_conversations."""
    r = client.get("/api/stats")
    assert r.status_code == 200
    data = r.json()
    assert isinstance(data["active_conversations"], int)
    assert "generation_enabled" in data


def test_search_requires_body():
    """POST /api/search without body returns 422."""
    r = client.post("/api/search", json={})
    assert r.status_code == 422


def test_chat_requires_body():
    """POST /api/chat without body returns 422."""
    r = client.post("/api/chat", json={})
    assert r.status_code == 422


def test_chat_unavailable_without_events():
    """No events loaded: chat returns 503 with a detail message."""
    r = client.post("/api/chat", json={"query": "any events today?"})
    assert r.status_code == 503
    assert "detail" in r.json()


def test_clear_conversation():
    """DELETE /api/conversation returns ok."""
    r = client.delete("/api/conversation?conversation_id=default")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "conversation_id": "default"}


def test_chat_greeting(loaded):
    r = client.post("/api/chat", json={"query": "hi there", "conversation_id": "c1"})
    assert r.status_code == 200
    data = r.json()
    assert data["answer"].startswith("Hey there! 👋")
    assert data["sources"] == []
    assert data["intent"] == "greeting"


def test_chat_display_name(loaded):
    r = client.post("/api/chat", json={"query": "hello", "display_name": "Priya"})
    assert r.json()["answer"].startswith("Hey Priya! 👋")


def test_chat_lists_events_then_answers_follow_up(loaded):
    """The session keeps the shown events, so a follow-up is answered from them."""
    r = client.post("/api/chat", json={"query": "show all events", "conversation_id": "s1"})
    data = r.json()
    assert data["intent"] == "list_events"
    assert len(data["sources"]) == 5
    first = data["sources"][0]
    assert first["id"] == "e1"
    assert first["date"] == "October 17, 2026"
    assert first["highlights"] == ["DJ sets", "Food court"]

    r = client.post("/api/chat", json={"query": "what time", "conversation_id": "s1"})
    data = r.json()
    assert data["answer"] == "The event time is 6 PM."
    assert [s["id"] for s in data["sources"]] == ["e1"]

    stats = client.get("/api/stats").json()
    assert stats["active_conversations"] == 1
    assert stats["events_loaded"] == 5
    assert stats["generation_enabled"] is False


def test_clear_conversation_forgets_turns(loaded):
    client.post("/api/chat", json={"query": "show all events", "conversation_id": "s2"})
    client.delete("/api/conversation?conversation_id=s2")
    r = client.post("/api/chat", json={"query": "what time", "conversation_id": "s2"})
    assert r.json()["answer"] != "The event time is 6 PM."


def test_search_returns_hits(loaded):
    r = client.post("/api/search", json={"query": "comedy", "top_k": 3})
    assert r.status_code == 200
    data = r.json()
    assert data["query"] == "comedy"
    assert [h["event"]["id"] for h in data["results"]] == ["e2"]
    assert data["results"][0]["source"] == "keyword"
