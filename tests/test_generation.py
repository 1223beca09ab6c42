"""
Tests for answer generation: prompt context, generator, deterministic fallbacks, chat client.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from src.events import EventRecord
from src.generation import (
    NO_EVENTS_MARKER,
    NO_EVENTS_MESSAGE,
    AnswerGenerator,
    GenerationConfig,
    GenerationError,
    build_prompt_context,
    compose_event_summary,
    format_events_context,
    format_history,
)
from src.llm import ChatClient, ProviderError
from src.orchestrator import ConversationTurn


# --- Context builder ---


def test_empty_context_uses_marker():
    assert format_events_context([]) == NO_EVENTS_MARKER


def test_event_block_fields(sample_events):
    ctx = format_events_context(sample_events[:2])
    assert ctx.startswith("Event 1:\n- Name: Sunburn Music Festival")
    assert "- Organizer: Percept Live" in ctx
    assert "- Date: 📅 October 17, 2026 (Numerical date: October 17, 2026)" in ctx
    assert "- Highlights: DJ sets, Food court" in ctx
    assert "- Additional Info: N/A" in ctx
    assert "Event 2:\n- Name: Open Mic Comedy Night" in ctx
    assert "- Organizer: N/A" in ctx


def test_ocr_is_truncated():
    event = EventRecord("x", "Poster Event", raw_ocr=("A" * 500,))
    ctx = format_events_context([event], ocr_chars=300)
    assert "A" * 301 not in ctx
    assert ctx.endswith("A" * 300)


def test_history_block_keeps_last_turns():
    history = [ConversationTurn("user" if i % 2 == 0 else "assistant", f"msg {i}") for i in range(12)]
    block = format_history(history, turns=10)
    assert "=== Previous Conversation ===" in block
    assert "msg 0" not in block and "msg 1\n" not in block
    assert "User: msg 2" in block
    assert "A-Agent: msg 11" in block


def test_history_block_empty():
    assert format_history([]) == ""


def test_prompt_context_fills_template(sample_events):
    prompt = build_prompt_context(
        sample_events[:1],
        [ConversationTurn("user", "any festivals?")],
        "Priya",
        assistant_name="A-Agent",
        city="Hyderabad",
    )
    assert "{events_context}" not in prompt and "{city}" not in prompt
    assert "A-Agent" in prompt
    assert "Hyderabad" in prompt
    assert "Sunburn Music Festival" in prompt
    assert "User: any festivals?" in prompt
    assert "The user's name is Priya." in prompt


def test_prompt_context_without_events_or_name():
    prompt = build_prompt_context([], [])
    assert NO_EVENTS_MARKER in prompt
    assert "The user's name is" not in prompt
    assert "=== Previous Conversation ===" not in prompt


# --- Generator ---


def test_generator_passes_config_to_client():
    client = MagicMock()
    client.chat.return_value = "  Sunburn starts at 6 PM.  "
    gen = AnswerGenerator(client)

    text = gen.generate("SYSTEM", "what time?", GenerationConfig(max_tokens=200, temperature=0.5))

    assert text == "Sunburn starts at 6 PM."
    client.chat.assert_called_once_with("SYSTEM", "what time?", max_tokens=200, temperature=0.5)


def test_generator_raises_on_empty_reply():
    client = MagicMock()
    client.chat.return_value = "   "
    with pytest.raises(GenerationError):
        AnswerGenerator(client).generate("SYSTEM", "hello")


# --- Fallback summary ---


def test_summary_names_top_three_and_counts_rest(sample_events):
    text = compose_event_summary(sample_events, top=3)
    assert text.startswith("I found 5 events related to your search! 📅\n\n")
    assert "1. Sunburn Music Festival on October 17, 2026 at 6 PM at Gachibowli Stadium" in text
    assert "2. Open Mic Comedy Night on 18th October at 8 PM at Elements Cafe" in text
    assert "3. Holi Colour Run on 21 Oct 2026 at Uppal" in text
    assert "Diwali Art Fair" not in text
    assert text.endswith("...and 2 more events!")


def test_summary_singular_rest(sample_events):
    assert compose_event_summary(sample_events[:4], top=3).endswith("...and 1 more event!")


def test_summary_single_event(sample_events):
    text = compose_event_summary(sample_events[:1])
    assert text.startswith("I found 1 event related to your search!")
    assert "more event" not in text


def test_summary_without_events():
    assert compose_event_summary([]) == NO_EVENTS_MESSAGE


# --- Chat client ---


def _completion(text: str) -> SimpleNamespace:
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason="stop")])


def test_chat_client_returns_text():
    api = MagicMock()
    api.chat.completions.create.return_value = _completion(" hi ")
    client = ChatClient(model_name="test-model", client=api, base_url="https://api.openai.com/v1")

    assert client.chat("sys", "user", max_tokens=50) == "hi"
    kwargs = api.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["max_tokens"] == 50
    assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
    assert "extra_body" not in kwargs


def test_chat_client_errors_become_empty():
    api = MagicMock()
    api.chat.completions.create.side_effect = Exception("500 internal error")
    client = ChatClient(client=api, base_url="https://api.openai.com/v1")
    assert client.chat("sys", "user") == ""


def test_chat_client_retries_rate_limits(monkeypatch):
    monkeypatch.setattr("src.llm.client.time.sleep", lambda s: None)
    api = MagicMock()
    api.chat.completions.create.side_effect = [Exception("429 Too Many Requests"), _completion("ok")]
    client = ChatClient(client=api, base_url="https://api.openai.com/v1")
    assert client.chat("sys", "user") == "ok"
    assert api.chat.completions.create.call_count == 2


def test_chat_client_requires_key(monkeypatch):
    monkeypatch.setattr("src.llm.client.LLM_API_KEY", None)
    with pytest.raises(ProviderError):
        ChatClient(api_key=None)
