"""
Query and event embeddings using sentence-transformers.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Protocol, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from src.events import EventRecord

from .index import EVENTS_PATH

logger = logging.getLogger(__name__)

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2")
EMBEDDING_CACHE_PATH = EVENTS_PATH.with_name("event_embeddings_cache.npz")


class Embedder(Protocol):
    def embed(self, text: str) -> Optional[List[float]]:
        ...


def event_text(event: EventRecord) -> str:
    """Text used to embed an event."""
    parts = [
        event.name,
        event.organizer,
        event.date_raw,
        event.location,
        event.entry_type,
        " ".join(event.highlights),
        event.full_text or event.ocr_text,
    ]
    return " | ".join(p for p in parts if p)


def _load_cached_embeddings(events: Sequence[EventRecord]) -> np.ndarray | None:
    """Try to load cached embeddings matching the given event IDs."""
    if not EMBEDDING_CACHE_PATH.exists():
        return None
    try:
        data = np.load(EMBEDDING_CACHE_PATH, allow_pickle=True)
        cached_ids = data["event_ids"].tolist()
        current_ids = [e.id for e in events]
        if cached_ids == current_ids:
            return data["embeddings"]
    except Exception as e:
        logger.warning("Failed to load embedding cache: %s", e)
        return None
    return None


def _save_cached_embeddings(embeddings: np.ndarray, events: Sequence[EventRecord]) -> None:
    """Persist embeddings to disk for faster subsequent startups."""
    try:
        EMBEDDING_CACHE_PATH.parent.mkdir(parents=True, exist_ok=True)
        event_ids = np.array([e.id for e in events], dtype=object)
        np.savez(EMBEDDING_CACHE_PATH, embeddings=embeddings, event_ids=event_ids)
    except Exception as e:
        logger.warning("Failed to save embedding cache: %s", e)


class SentenceTransformerEmbedder:
    """Embedding provider. Any failure yields ``None`` so retrieval can go on without vectors."""

    def __init__(self, model_name: str = EMBEDDING_MODEL, model: SentenceTransformer | None = None):
        self.model_name = model_name
        self._model = model
        self._load_failed = False

    def _get_model(self) -> SentenceTransformer | None:
        if self._model is None and not self._load_failed:
            try:
                self._model = SentenceTransformer(self.model_name)
            except Exception as e:
                logger.warning("Embedding model %s unavailable: %s", self.model_name, e)
                self._load_failed = True
        return self._model

    def embed(self, text: str) -> Optional[List[float]]:
        model = self._get_model()
        if model is None or not text.strip():
            return None
        try:
            vec = model.encode(
                [text],
                convert_to_numpy=True,
                normalize_embeddings=True,
            )[0]
        except Exception as e:
            logger.warning("Could not embed query: %s", e)
            return None
        return [float(x) for x in vec]

    def embed_events(self, events: List[EventRecord]) -> List[EventRecord]:
        """
        Attach embeddings to records that lack one.

        Records that already carry an embedding are left as they are. Returns
        the input unchanged when the model cannot be loaded.
        """
        missing = [e for e in events if not e.embedding]
        if not missing:
            return events
        emb = _load_cached_embeddings(missing)
        if emb is None:
            model = self._get_model()
            if model is None:
                return events
            emb = model.encode(
                [event_text(e) for e in missing],
                batch_size=64,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
            _save_cached_embeddings(emb, missing)
        by_id = {e.id: e.with_embedding(list(vec)) for e, vec in zip(missing, emb)}
        return [by_id.get(e.id, e) if not e.embedding else e for e in events]
