"""
Event agent: name capture, local intents, follow-ups, retrieval and generation.

Each step can answer on its own; the first one that does wins. Generation
failures fall back to deterministic text built from the candidates, and an
unexpected error falls back to a plain substring search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from src.events import Clock, EventRecord, SystemClock
from src.generation import (
    FOLLOW_UP_APOLOGY,
    GENERAL_CHAT_MESSAGE,
    NO_EVENTS_MESSAGE,
    AnswerGenerator,
    GenerationConfig,
    build_prompt_context,
    compose_event_summary,
    found_events_message,
)
from src.rag.buckets import DateBucketResolver
from src.rag.config import RAGConfig
from src.rag.dense import Embedder
from src.rag.hybrid import HybridRetriever
from src.rag.store import DocumentStore
from src.telemetry import Tracer, default_tracer

from .config import AssistantConfig
from .evaluator import AnswerEvaluator
from .followup import ConversationContextResolver
from .intents import IntentClassifier, IntentKind
from .memory import ConversationMemory, ConversationTurn, latest_sourced_turn, to_turns
from .names import NAME_REQUEST, extract_user_name, get_user_name, is_name_response, should_ask_for_name
from .query_analyzer import QueryAnalysis, QueryAnalyzer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """Signed-in user, as far as the assistant cares."""

    display_name: str = ""


@dataclass
class AgentResponse:
    """Response from the event agent."""

    answer: str
    sources: List[EventRecord] = field(default_factory=list)
    intent: IntentKind = IntentKind.NO_MATCH


HistoryInput = Optional[Sequence[Union[ConversationTurn, Dict[str, Any]]]]
IdentityInput = Optional[Union[UserIdentity, str]]


def _identity(identity: IdentityInput) -> Optional[UserIdentity]:
    if identity is None or isinstance(identity, UserIdentity):
        return identity
    return UserIdentity(display_name=str(identity))


class EventAgent:
    """Answers one utterance given the turns before it."""

    def __init__(
        self,
        store: DocumentStore,
        generator: Optional[AnswerGenerator] = None,
        embedder: Optional[Embedder] = None,
        retriever: Optional[HybridRetriever] = None,
        classifier: Optional[IntentClassifier] = None,
        context_resolver: Optional[ConversationContextResolver] = None,
        query_analyzer: Optional[QueryAnalyzer] = None,
        evaluator: Optional[AnswerEvaluator] = None,
        buckets: Optional[DateBucketResolver] = None,
        clock: Optional[Clock] = None,
        config: Optional[AssistantConfig] = None,
        rag_config: Optional[RAGConfig] = None,
        generation_config: Optional[GenerationConfig] = None,
        memory: Optional[ConversationMemory] = None,
        tracer: Optional[Tracer] = None,
    ):
        self.store = store
        self.generator = generator
        self.embedder = embedder
        self.tracer = tracer or default_tracer()
        self.clock = clock or SystemClock()
        self.config = config or AssistantConfig()
        self.rag_config = rag_config or RAGConfig()
        self.generation_config = generation_config or GenerationConfig(history_turns=self.config.history_window)
        self.retriever = retriever or HybridRetriever(store, config=self.rag_config, tracer=self.tracer)
        self.buckets = buckets or DateBucketResolver(
            store, clock=self.clock, config=self.rag_config, tracer=self.tracer
        )
        self.classifier = classifier or IntentClassifier(
            store,
            buckets=self.buckets,
            clock=self.clock,
            config=self.config,
            rag_config=self.rag_config,
            tracer=self.tracer,
        )
        self.context_resolver = context_resolver or ConversationContextResolver(
            window=self.config.follow_up_window, tracer=self.tracer
        )
        self.query_analyzer = query_analyzer or QueryAnalyzer(self.context_resolver)
        self.evaluator = evaluator or AnswerEvaluator()
        self.memory = memory

    def answer(
        self,
        utterance: str,
        history: HistoryInput = None,
        identity: IdentityInput = None,
    ) -> AgentResponse:
        """
        Answer ``utterance``. ``history`` holds the turns before it, oldest
        first; when omitted, the attached memory supplies it.
        """
        if history is None and self.memory is not None:
            history = self.memory.get_history()
        turns = to_turns(history)
        user = _identity(identity)
        candidates: List[EventRecord] = []
        try:
            resp = self._respond(utterance, turns, user, candidates)
        except Exception as e:
            logger.warning("Agent failed for %r: %s", utterance[:80], e)
            self.tracer.emit("orchestrator_failed", error=str(e), candidates=len(candidates))
            if candidates:
                resp = AgentResponse(answer=found_events_message(len(candidates)), sources=list(candidates))
            else:
                resp = self._standard_search(utterance)
        if self.memory is not None:
            self.memory.add_turn(utterance, resp.answer, resp.sources)
        return resp

    def _respond(
        self,
        utterance: str,
        turns: List[ConversationTurn],
        user: Optional[UserIdentity],
        candidates: List[EventRecord],
    ) -> AgentResponse:
        if user is None and should_ask_for_name(turns):
            self.tracer.emit("name_requested")
            return AgentResponse(answer=NAME_REQUEST, intent=IntentKind.NAME_REQUEST)

        if user is None and is_name_response(turns):
            name = extract_user_name(utterance)
            if name:
                self.tracer.emit("name_captured", name=name)
                return AgentResponse(
                    answer=f"Nice to meet you, {name}! 😊 Now, how can I help you with events today?",
                    intent=IntentKind.NAME_CAPTURE,
                )

        user_name = (user.display_name if user is not None else "") or get_user_name(turns)

        result = self.classifier.classify(utterance, turns)
        if result.intent.kind != IntentKind.NO_MATCH:
            answer = result.answer
            if user_name and not result.sources and "Hey there" in answer:
                answer = answer.replace("Hey there", f"Hey {user_name}")
            return AgentResponse(answer=answer, sources=list(result.sources), intent=result.intent.kind)

        analysis = self.query_analyzer.analyze(utterance, turns)

        if analysis.is_follow_up:
            extracted = self.context_resolver.extract_answer(utterance, turns)
            if extracted:
                sourced = latest_sourced_turn(turns)
                return AgentResponse(answer=extracted, sources=list(sourced.sources) if sourced else [])

        if analysis.is_follow_up and analysis.has_sourced_history:
            sourced = latest_sourced_turn(turns)
            candidates.extend(sourced.sources if sourced else [])
            self.tracer.emit("candidates_selected", source="history", count=len(candidates))
        elif analysis.requires_retrieval:
            candidates.extend(self._retrieve(utterance, analysis))
        else:
            self.tracer.emit("general_conversation", utterance=utterance)

        return self._generate(utterance, turns, user_name, analysis, candidates)

    def _retrieve(self, utterance: str, analysis: QueryAnalysis) -> List[EventRecord]:
        """Date bucket first; hybrid retrieval when the bucket has nothing."""
        if analysis.date_bucket is not None:
            events = self.buckets.events_for(analysis.date_bucket)
            if events:
                self.tracer.emit(
                    "candidates_selected", source="date_bucket", bucket=analysis.date_bucket.value, count=len(events)
                )
                return events
        embedding = self._embed(utterance)
        results = self.retriever.retrieve(utterance, embedding)
        self.tracer.emit("candidates_selected", source="hybrid", count=len(results))
        return [r.event for r in results]

    def _embed(self, utterance: str) -> Optional[List[float]]:
        if self.embedder is None:
            return None
        try:
            return self.embedder.embed(utterance)
        except Exception as e:
            self.tracer.emit("embedding_failed", error=str(e))
            return None

    def _generate(
        self,
        utterance: str,
        turns: List[ConversationTurn],
        user_name: Optional[str],
        analysis: QueryAnalysis,
        candidates: List[EventRecord],
    ) -> AgentResponse:
        sourced_follow_up = analysis.is_follow_up and analysis.has_sourced_history
        show_sources = analysis.requires_retrieval and not sourced_follow_up

        if self.generator is not None:
            prompt = build_prompt_context(
                candidates,
                turns,
                user_name or None,
                assistant_name=self.config.name,
                city=self.config.city,
                history_turns=self.generation_config.history_turns,
                ocr_chars=self.generation_config.ocr_chars,
            )
            try:
                text = self.generator.generate(prompt, utterance, self.generation_config)
            except Exception as e:
                logger.warning("Generation failed: %s", e)
                self.tracer.emit("generation_failed", error=str(e))
            else:
                evaluation = self.evaluator.evaluate(utterance, text)
                if evaluation.is_usable:
                    return AgentResponse(answer=text, sources=list(candidates) if show_sources else [])
                self.tracer.emit("generation_unusable", problems=evaluation.problems)
        else:
            self.tracer.emit("generation_failed", error="no generator configured")

        return self._fallback(analysis, candidates)

    def _fallback(self, analysis: QueryAnalysis, candidates: List[EventRecord]) -> AgentResponse:
        if analysis.is_follow_up and analysis.has_sourced_history:
            self.tracer.emit("fallback_composed", kind="follow_up_apology")
            return AgentResponse(answer=FOLLOW_UP_APOLOGY)
        if candidates:
            self.tracer.emit("fallback_composed", kind="event_summary", count=len(candidates))
            return AgentResponse(
                answer=compose_event_summary(candidates, self.config.summary_size),
                sources=list(candidates),
            )
        kind = "no_events" if analysis.requires_retrieval else "general_chat"
        self.tracer.emit("fallback_composed", kind=kind)
        return AgentResponse(answer=NO_EVENTS_MESSAGE if analysis.requires_retrieval else GENERAL_CHAT_MESSAGE)

    def _standard_search(self, utterance: str) -> AgentResponse:
        """Last resort. Storage errors here propagate to the caller."""
        results = self.retriever.standard_search(utterance)
        self.tracer.emit("standard_search_fallback", hits=len(results))
        phrase = utterance.strip()
        if results:
            answer = f'Found {len(results)} event{"" if len(results) == 1 else "s"} matching "{phrase}".'
        else:
            answer = f'No events found matching "{phrase}".'
        return AgentResponse(answer=answer, sources=results)
