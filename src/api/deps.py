"""
Build the event agent and its collaborators for the API (used in lifespan).
"""

from __future__ import annotations

import logging

from src.events import SystemClock
from src.generation import AnswerGenerator
from src.llm import ProviderError, create_client
from src.orchestrator import AnswerEvaluator, EventAgent
from src.rag import HybridRetriever, InMemoryEventStore, RAGConfig, SentenceTransformerEmbedder, load_events
from src.telemetry import default_tracer

logger = logging.getLogger(__name__)


def build_agent_and_store():
    """
    Load events, embed them, build retriever, LLM client, generator, agent.
    Returns (agent, retriever, store, num_events).
    """
    try:
        events = load_events()
    except FileNotFoundError as e:
        logger.warning("No events loaded: %s", e)
        return None, None, None, 0
    if not events:
        # Return None agent so routes can return 503
        return None, None, None, 0

    config = RAGConfig()
    tracer = default_tracer()
    embedder = None
    if config.use_vector_search:
        embedder = SentenceTransformerEmbedder()
        events = embedder.embed_events(events)
    store = InMemoryEventStore(events)
    retriever = HybridRetriever(store, config=config, tracer=tracer)

    generator = None
    try:
        generator = AnswerGenerator(create_client())
    except ProviderError as e:
        logger.warning("Generation disabled, answers will use local summaries: %s", e)

    agent = EventAgent(
        store,
        generator=generator,
        embedder=embedder,
        retriever=retriever,
        evaluator=AnswerEvaluator(),
        clock=SystemClock(),
        rag_config=config,
        memory=None,
        tracer=tracer,
    )
    return agent, retriever, store, len(events)
