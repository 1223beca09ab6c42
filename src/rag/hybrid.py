"""
Hybrid retriever combining vector search and keyword substring search.

Vector hits come first, keyword hits after; the merged list is deduplicated
and filtered by event quality with a threshold that relaxes step by step so
that a broad query never ends up with nothing to show.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from src.events import EventQualityScorer, EventRecord, is_noise_name
from src.telemetry import Tracer, default_tracer

from .config import RAGConfig
from .store import (
    STANDARD_SEARCH_FIELDS,
    DocumentStore,
    EventFilter,
    SortOrder,
)
from .utils import extract_keywords, is_general_listing, strip_punctuation


@dataclass
class RetrievalResult:
    """One ranked candidate event; source is "vector" or "keyword"."""

    event: EventRecord
    score: float
    source: str


def dedupe_events(candidates: Sequence[Tuple[EventRecord, str]]) -> List[Tuple[EventRecord, str]]:
    """
    Drop repeated ids, noise names and repeated normalized names.

    First occurrence wins, so merge order decides which copy survives.
    """
    seen_ids: Set[str] = set()
    seen_names: Set[str] = set()
    unique: List[Tuple[EventRecord, str]] = []
    for event, source in candidates:
        if event.id in seen_ids:
            continue
        if is_noise_name(event.name):
            continue
        key = event.normalized_name
        if key and key in seen_names:
            continue
        seen_ids.add(event.id)
        if key:
            seen_names.add(key)
        unique.append((event, source))
    return unique


@dataclass
class HybridRetriever:
    """Vector + keyword retrieval over a document store."""

    store: DocumentStore
    config: RAGConfig = field(default_factory=RAGConfig)
    scorer: EventQualityScorer = field(default_factory=EventQualityScorer)
    tracer: Tracer = field(default_factory=default_tracer)

    def retrieve(
        self,
        query: str,
        embedding: Optional[Sequence[float]] = None,
        limit: int | None = None,
    ) -> List[RetrievalResult]:
        """Ranked, deduplicated events for the query; vector hits first when an embedding is given."""
        if limit is None:
            limit = self.config.top_k
        candidate_k = limit * self.config.candidate_multiplier

        vector_hits = self._vector_search(embedding, candidate_k)
        keyword_hits = self._keyword_search(query, candidate_k)

        merged = [(e, "vector") for e in vector_hits] + [(e, "keyword") for e in keyword_hits]
        unique = dedupe_events(merged)
        scored = [(event, self.scorer.score(event), source) for event, source in unique]

        threshold = (
            self.config.large_pool_threshold
            if len(unique) >= self.config.large_pool_size
            else self.config.strict_threshold
        )
        kept = [item for item in scored if item[1] >= threshold]

        if not kept and scored:
            self.tracer.emit(
                "retrieval_threshold_relaxed",
                query=query,
                from_threshold=threshold,
                to_threshold=self.config.relaxed_threshold,
                pool=len(scored),
            )
            kept = [item for item in scored if item[1] >= self.config.relaxed_threshold]

        if not kept and scored:
            self.tracer.emit("retrieval_unfiltered_fallback", query=query, pool=len(scored))
            kept = scored

        # sorted() is stable: merge order breaks score ties.
        kept = sorted(kept, key=lambda item: item[1], reverse=True)[:limit]
        self.tracer.emit(
            "retrieval_completed",
            query=query,
            vector=len(vector_hits),
            keyword=len(keyword_hits),
            unique=len(unique),
            threshold=threshold,
            returned=len(kept),
        )
        return [RetrievalResult(event=e, score=float(s), source=src) for e, s, src in kept]

    def _vector_search(self, embedding: Optional[Sequence[float]], candidate_k: int) -> List[EventRecord]:
        if embedding is None or not self.config.use_vector_search:
            return []
        try:
            return self.store.vector_search(
                embedding,
                num_candidates=self.config.vector_num_candidates,
                limit=candidate_k,
            )
        except Exception as e:
            self.tracer.emit("vector_search_failed", error=str(e))
            return []

    def _keyword_search(self, query: str, candidate_k: int) -> List[EventRecord]:
        if not query or not query.strip():
            return []
        try:
            keywords = extract_keywords(query)
            if keywords:
                hits = self.store.find_all(EventFilter(terms=tuple(keywords)), limit=candidate_k)
                self.tracer.emit("keyword_search", keywords=keywords, hits=len(hits))
                if not hits:
                    broad = strip_punctuation(query)
                    if broad:
                        hits = self.store.find_all(EventFilter(terms=(broad,)), limit=candidate_k)
                    self.tracer.emit("keyword_search_broadened", phrase=broad, hits=len(hits))
                return hits
            if is_general_listing(query):
                hits = self.store.find_all(sort=SortOrder.RECENT, limit=candidate_k)
                self.tracer.emit("keyword_search_general_listing", hits=len(hits))
                return hits
            hits = self.store.find_all(EventFilter(terms=(query.strip(),)), limit=candidate_k)
            self.tracer.emit("keyword_search_phrase", phrase=query.strip(), hits=len(hits))
            return hits
        except Exception as e:
            self.tracer.emit("keyword_search_failed", error=str(e))
            return []

    def standard_search(self, query: str, limit: int | None = None) -> List[EventRecord]:
        """Plain whole-phrase substring search; the last-resort path when everything else failed."""
        if limit is None:
            limit = self.config.standard_search_limit
        phrase = query.strip()
        results = self.store.find_all(
            EventFilter(terms=(phrase,), fields=STANDARD_SEARCH_FIELDS),
            limit=limit,
        )
        self.tracer.emit("standard_search", phrase=phrase, hits=len(results))
        return results
