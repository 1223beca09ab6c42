"""
Tests for orchestrator: query analyzer, evaluator, conversation memory, names, event agent.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.generation import (
    FOLLOW_UP_APOLOGY,
    GENERAL_CHAT_MESSAGE,
    NO_EVENTS_MARKER,
    NO_EVENTS_MESSAGE,
    AnswerGenerator,
    GenerationError,
)
from src.orchestrator import (
    AgentResponse,
    AnswerEvaluator,
    ConversationMemory,
    ConversationTurn,
    EvalResult,
    EventAgent,
    IntentKind,
    QueryAnalysis,
    QueryAnalyzer,
    UserIdentity,
)
from src.orchestrator.names import NAME_REQUEST, extract_user_name, get_user_name, should_ask_for_name
from src.rag import DateBucket, RetrievalResult, StorageError
from src.telemetry import RecordingTracer

WELCOME = "Welcome to A-Agent! Ask me about events around the city."


# --- Query analyzer ---


def test_query_analyzer_output_shape():
    """QueryAnalyzer.analyze returns a QueryAnalysis with boolean flags."""
    result = QueryAnalyzer().analyze("music festival tonight")
    assert isinstance(result, QueryAnalysis)
    assert result.is_event_query is True
    assert result.is_follow_up is False
    assert result.date_bucket is None
    assert result.requires_retrieval is True


def test_query_analyzer_small_talk_no_retrieval():
    analyzer = QueryAnalyzer()
    for q in ("how are you doing", "hey, any plans?", "good morning friend"):
        assert analyzer.analyze(q).requires_retrieval is False


@pytest.mark.parametrize(
    "q, bucket",
    [
        ("any concerts today", DateBucket.TODAY),
        ("concerts tomorrow night", DateBucket.TOMORROW),
        ("gigs later this week", DateBucket.WEEK),
        ("comedy on saturday", None),
    ],
)
def test_query_analyzer_date_bucket(q, bucket):
    assert QueryAnalyzer().analyze(q).date_bucket == bucket


def test_query_analyzer_empty_query():
    r = QueryAnalyzer().analyze("   ")
    assert r.requires_retrieval is False
    assert r.is_follow_up is False


def test_query_analyzer_follow_up_over_sourced_history(sample_events):
    """A follow-up needs retrieval context only when an earlier turn showed events."""
    analyzer = QueryAnalyzer()
    sourced = [ConversationTurn("assistant", "Here you go", sources=[sample_events[0]])]
    plain = [ConversationTurn("assistant", "Hello!")]

    r = analyzer.analyze("how far is it", sourced)
    assert r.is_follow_up and r.has_sourced_history and r.requires_retrieval

    r = analyzer.analyze("how far is it", plain)
    assert r.is_follow_up and not r.has_sourced_history and not r.requires_retrieval


# --- Evaluator ---


def test_evaluator_output_shape():
    result = AnswerEvaluator().evaluate("q", "Sunburn starts at 6 PM at Gachibowli Stadium.")
    assert isinstance(result, EvalResult)
    assert result.is_usable is True
    assert result.problems == []
    assert result.confidence == 1.0


@pytest.mark.parametrize(
    "answer, problem",
    [
        ("", "empty_answer"),
        (" x ", "empty_answer"),
        ("Error: upstream timeout", "error_shaped"),
        ('{"error": "bad gateway"}', "error_shaped"),
        ("None", "error_shaped"),
        ("Here you go {events_context}", "template_leak"),
    ],
)
def test_evaluator_rejects(answer, problem):
    result = AnswerEvaluator().evaluate("q", answer)
    assert result.is_usable is False
    assert problem in result.problems


# --- Memory ---


def test_memory_add_turn_get_history(sample_events):
    mem = ConversationMemory(max_turns=5)
    mem.add_turn("any festivals?", "Sunburn is on!", [sample_events[0]])
    history = mem.get_history()
    assert len(mem) == 2
    assert history[0].is_user and history[0].content == "any festivals?"
    assert history[1].is_assistant and history[1].sources == [sample_events[0]]
    assert history[1].timestamp is not None


def test_memory_clear():
    mem = ConversationMemory()
    mem.add_turn("hi", "hello")
    mem.clear()
    assert mem.get_history() == []


def test_memory_max_turns_trimmed():
    mem = ConversationMemory(max_turns=2)
    mem.add_turn("q1", "a1")
    mem.add_turn("q2", "a2")
    assert [t.content for t in mem.get_history()] == ["q2", "a2"]
    assert [t.content for t in mem.get_history(last_n=1)] == ["a2"]


def test_turn_role_aliases_and_from_dict(sample_events):
    turn = ConversationTurn.from_dict({"role": "ai", "content": "hi", "sources": [sample_events[0].to_dict()]})
    assert turn.is_assistant
    assert turn.sources[0].id == "e1"
    assert turn.sources[0].time == "6 PM"
    assert ConversationTurn("bot", "x").role == "assistant"


# --- Names ---


@pytest.mark.parametrize(
    "text, name",
    [
        ("My name is Priya Sharma!", "Priya Sharma"),
        ("call me Ravi.", "Ravi"),
        ("I am Anjali Devi Rao Kumar", "Anjali Devi Rao"),
        ("Kiran", "Kiran"),
    ],
)
def test_extract_user_name(text, name):
    assert extract_user_name(text) == name


def test_name_is_requested_once():
    assert should_ask_for_name([]) is False
    assert should_ask_for_name([ConversationTurn("assistant", WELCOME)]) is True
    asked = [ConversationTurn("assistant", WELCOME), ConversationTurn("assistant", NAME_REQUEST)]
    assert should_ask_for_name(asked) is False


def test_get_user_name_from_reply():
    history = [ConversationTurn("assistant", NAME_REQUEST), ConversationTurn("user", "it's Meera")]
    assert get_user_name(history) == "Meera"


# --- Event agent ---


@pytest.fixture
def mock_generator():
    gen = MagicMock(spec=AnswerGenerator)
    gen.generate.return_value = "Sunburn Music Festival kicks off at 6 PM at Gachibowli Stadium!"
    return gen


@pytest.fixture
def tracer() -> RecordingTracer:
    return RecordingTracer()


@pytest.fixture
def sourced_history(sample_events) -> list[ConversationTurn]:
    return [
        ConversationTurn("user", "any music festivals?"),
        ConversationTurn("assistant", "Sunburn is on this weekend!", sources=[sample_events[0]]),
    ]


def test_agent_greeting_no_retrieval(clock, mock_generator):
    """'hi there' with no history: greeting, no cards, no storage or model calls."""
    store = MagicMock()
    agent = EventAgent(store, generator=mock_generator, clock=clock)
    resp = agent.answer("hi there", [])
    assert isinstance(resp, AgentResponse)
    assert resp.intent == IntentKind.GREETING
    assert resp.answer.startswith("Hey there! 👋")
    assert resp.sources == []
    store.find_all.assert_not_called()
    store.vector_search.assert_not_called()
    mock_generator.generate.assert_not_called()


def test_agent_asks_for_name_after_welcome(store, clock):
    resp = EventAgent(store, clock=clock).answer("hello", [ConversationTurn("assistant", WELCOME)])
    assert resp.intent == IntentKind.NAME_REQUEST
    assert resp.answer == NAME_REQUEST


def test_agent_signed_in_user_is_not_asked(store, clock):
    agent = EventAgent(store, clock=clock)
    resp = agent.answer("hello", [ConversationTurn("assistant", WELCOME)], identity=UserIdentity("Priya"))
    assert resp.intent == IntentKind.GREETING
    assert resp.answer.startswith("Hey Priya! 👋")


def test_agent_captures_name_then_uses_it(store, clock):
    agent = EventAgent(store, clock=clock)
    history = [
        ConversationTurn("assistant", WELCOME),
        ConversationTurn("user", "hello"),
        ConversationTurn("assistant", NAME_REQUEST),
    ]
    resp = agent.answer("I'm Priya.", history)
    assert resp.intent == IntentKind.NAME_CAPTURE
    assert resp.answer == "Nice to meet you, Priya! 😊 Now, how can I help you with events today?"

    history += [ConversationTurn("user", "I'm Priya."), ConversationTurn("assistant", resp.answer)]
    assert agent.answer("hey", history).answer.startswith("Hey Priya! 👋")


def test_agent_follow_up_answers_from_shown_event(store, clock, mock_generator, sourced_history, tracer):
    """'what time' after an event card: answered from the card, sources carried over, no retrieval."""
    spy = MagicMock(wraps=store)
    retriever = MagicMock()
    agent = EventAgent(spy, generator=mock_generator, retriever=retriever, clock=clock, tracer=tracer)

    resp = agent.answer("what time", sourced_history)

    assert resp.answer == "The event time is 6 PM."
    assert [e.id for e in resp.sources] == ["e1"]
    retriever.retrieve.assert_not_called()
    spy.find_all.assert_not_called()
    spy.vector_search.assert_not_called()
    mock_generator.generate.assert_not_called()
    assert "follow_up_answered" in tracer.names()


def test_agent_accepts_dict_history(store, clock, sample_events):
    history = [
        {"role": "user", "content": "music?"},
        {"role": "ai", "content": "Sunburn!", "sources": [sample_events[0].to_dict()]},
    ]
    resp = EventAgent(store, clock=clock).answer("where is it", history)
    assert resp.answer == "The event is happening at Gachibowli Stadium."
    assert resp.sources[0].id == "e1"


def test_agent_event_query_generates_with_sources(store, clock, mock_generator):
    agent = EventAgent(store, generator=mock_generator, clock=clock)
    resp = agent.answer("music festival tonight", [])

    assert resp.answer == mock_generator.generate.return_value
    assert [e.id for e in resp.sources] == ["e1"]
    prompt, utterance = mock_generator.generate.call_args.args[:2]
    assert "Event 1:" in prompt
    assert "Sunburn Music Festival" in prompt
    assert utterance == "music festival tonight"


def test_agent_generation_failure_names_top_candidate(store, clock, mock_generator, tracer):
    """A failed model call still yields a non-empty reply naming the first event."""
    mock_generator.generate.side_effect = GenerationError("empty reply")
    agent = EventAgent(store, generator=mock_generator, clock=clock, tracer=tracer)

    resp = agent.answer("music festival tonight", [])

    assert "Sunburn Music Festival" in resp.answer
    assert resp.answer.startswith("I found 1 event related to your search! 📅")
    assert [e.id for e in resp.sources] == ["e1"]
    assert "generation_failed" in tracer.names()


def test_agent_unusable_generation_falls_back(store, clock, mock_generator, tracer):
    mock_generator.generate.return_value = "Error: upstream timeout"
    agent = EventAgent(store, generator=mock_generator, clock=clock, tracer=tracer)
    resp = agent.answer("music festival tonight", [])
    assert "Sunburn Music Festival" in resp.answer
    assert "generation_unusable" in tracer.names()


def test_agent_date_bucket_candidates(store, clock, tracer):
    """'today' in a free-form event query lists the today bucket before any search."""
    agent = EventAgent(store, clock=clock, tracer=tracer)
    resp = agent.answer("any concerts today", [])
    assert resp.answer == (
        "I found 1 event related to your search! 📅\n\n"
        "1. Sunburn Music Festival on October 17, 2026 at 6 PM at Gachibowli Stadium"
    )
    assert [e.id for e in resp.sources] == ["e1"]
    assert tracer.find("candidates_selected")[0].fields["source"] == "date_bucket"


def test_agent_no_results(store, clock):
    resp = EventAgent(store, clock=clock).answer("find karaoke nights", [])
    assert resp.answer == NO_EVENTS_MESSAGE
    assert resp.sources == []


def test_agent_general_chat(store, clock, mock_generator):
    """Small talk goes to the model with the no-events marker and returns no cards."""
    mock_generator.generate.return_value = "Doing great, thanks for asking!"
    resp = EventAgent(store, generator=mock_generator, clock=clock).answer("how are you doing", [])
    assert resp.answer == "Doing great, thanks for asking!"
    assert resp.sources == []
    assert NO_EVENTS_MARKER in mock_generator.generate.call_args.args[0]


def test_agent_general_chat_without_model(store, clock):
    resp = EventAgent(store, clock=clock).answer("how are you doing", [])
    assert resp.answer == GENERAL_CHAT_MESSAGE
    assert resp.sources == []


def test_agent_unanswered_follow_up_uses_shown_events(store, clock, mock_generator, sourced_history):
    mock_generator.generate.return_value = "It is about 20 minutes from Hitec City."
    retriever = MagicMock()
    agent = EventAgent(store, generator=mock_generator, retriever=retriever, clock=clock)

    resp = agent.answer("how far is it", sourced_history)

    assert resp.answer == "It is about 20 minutes from Hitec City."
    assert resp.sources == []
    assert "Sunburn Music Festival" in mock_generator.generate.call_args.args[0]
    retriever.retrieve.assert_not_called()


def test_agent_unanswered_follow_up_apologizes_on_failure(store, clock, mock_generator, sourced_history):
    mock_generator.generate.side_effect = GenerationError("empty")
    resp = EventAgent(store, generator=mock_generator, clock=clock).answer("how far is it", sourced_history)
    assert resp.answer == FOLLOW_UP_APOLOGY
    assert resp.sources == []


def test_agent_follow_up_shaped_first_question_keeps_retrieved_events(store, clock, mock_generator):
    """'where is ...' with no shown events is a fresh search: failure names the match and keeps its card."""
    mock_generator.generate.side_effect = GenerationError("empty")
    history = [
        ConversationTurn("assistant", WELCOME),
        ConversationTurn("user", "hello"),
        ConversationTurn("assistant", NAME_REQUEST),
        ConversationTurn("user", "I'm Priya."),
        ConversationTurn("assistant", "Nice to meet you, Priya! 😊 Now, how can I help you with events today?"),
    ]
    agent = EventAgent(store, generator=mock_generator, clock=clock)

    resp = agent.answer("where is the comedy night", history)

    assert resp.answer != FOLLOW_UP_APOLOGY
    assert "Open Mic Comedy Night" in resp.answer
    assert resp.sources[0].id == "e2"

    mock_generator.generate.side_effect = None
    mock_generator.generate.return_value = "Open Mic Comedy Night is at Elements Cafe."
    resp = agent.answer("where is the comedy night", history)
    assert resp.answer == "Open Mic Comedy Night is at Elements Cafe."
    assert resp.sources[0].id == "e2"


def test_agent_new_short_search_after_cards_retrieves_again(store, clock, mock_generator, sample_events):
    history = [
        ConversationTurn("user", "anything colourful?"),
        ConversationTurn("assistant", "Here is one for you!", sources=[sample_events[2]]),
    ]
    agent = EventAgent(store, generator=mock_generator, clock=clock)

    resp = agent.answer("comedy shows", history)

    prompt = mock_generator.generate.call_args.args[0]
    assert "Open Mic Comedy Night" in prompt
    assert "Holi Colour Run" not in prompt
    assert resp.sources[0].id == "e2"


def test_agent_passes_query_embedding(store, clock, sample_events):
    embedder = MagicMock()
    embedder.embed.return_value = [0.1, 0.2]
    retriever = MagicMock()
    retriever.retrieve.return_value = [RetrievalResult(event=sample_events[0], score=60.0, source="vector")]
    agent = EventAgent(store, embedder=embedder, retriever=retriever, clock=clock)

    agent.answer("music festival", [])

    retriever.retrieve.assert_called_once_with("music festival", [0.1, 0.2])


def test_agent_embedding_failure_searches_without_vector(store, clock, tracer):
    embedder = MagicMock()
    embedder.embed.side_effect = RuntimeError("model not loaded")
    retriever = MagicMock()
    retriever.retrieve.return_value = []
    agent = EventAgent(store, embedder=embedder, retriever=retriever, clock=clock, tracer=tracer)

    agent.answer("music festival", [])

    retriever.retrieve.assert_called_once_with("music festival", None)
    assert "embedding_failed" in tracer.names()


def test_agent_unexpected_error_uses_standard_search(store, clock, sample_events, tracer):
    retriever = MagicMock()
    retriever.retrieve.side_effect = RuntimeError("boom")
    retriever.standard_search.return_value = [sample_events[0]]
    agent = EventAgent(store, retriever=retriever, clock=clock, tracer=tracer)

    resp = agent.answer("music festival", [])

    assert resp.answer == 'Found 1 event matching "music festival".'
    assert [e.id for e in resp.sources] == ["e1"]
    assert "orchestrator_failed" in tracer.names()
    assert "standard_search_fallback" in tracer.names()


def test_agent_standard_search_errors_propagate(store, clock):
    retriever = MagicMock()
    retriever.retrieve.side_effect = RuntimeError("boom")
    retriever.standard_search.side_effect = StorageError("down")
    agent = EventAgent(store, retriever=retriever, clock=clock)
    with pytest.raises(StorageError):
        agent.answer("music festival", [])


def test_agent_unexpected_error_keeps_candidates(store, clock, mock_generator):
    """Candidates gathered before an unexpected error are still returned."""
    evaluator = MagicMock()
    evaluator.evaluate.side_effect = RuntimeError("boom")
    agent = EventAgent(store, generator=mock_generator, evaluator=evaluator, clock=clock)

    resp = agent.answer("music festival tonight", [])

    assert resp.answer == "I found 1 event related to your search! Here they are: 👇"
    assert [e.id for e in resp.sources] == ["e1"]


def test_agent_with_memory_stores_turn(store, clock):
    mem = ConversationMemory(max_turns=10)
    agent = EventAgent(store, clock=clock, memory=mem)
    agent.answer("hi there")
    agent.answer("show all events")
    history = mem.get_history()
    assert len(history) == 4
    assert history[1].content.startswith("Hey there!")
    assert len(history[3].sources) == 5
