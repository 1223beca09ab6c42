"""
RAG (Retrieval-Augmented Generation) module.

Provides retrieval components for hybrid search over event documents:
- Document store interface and in-memory store
- Vector retrieval via sentence-transformers embeddings
- Keyword substring retrieval with stop-word stripping
- Quality-filtered hybrid merge with threshold relaxation
- Date-bucket listing (today, tomorrow, this week, upcoming)
"""

from .buckets import DateBucket, DateBucketResolver
from .config import RAGConfig
from .dense import Embedder, SentenceTransformerEmbedder
from .hybrid import HybridRetriever, RetrievalResult, dedupe_events
from .index import load_events
from .store import (
    DocumentStore,
    EventFilter,
    InMemoryEventStore,
    SortOrder,
    StorageError,
)
from .utils import extract_keywords

__all__ = [
    "DateBucket",
    "DateBucketResolver",
    "DocumentStore",
    "Embedder",
    "EventFilter",
    "HybridRetriever",
    "InMemoryEventStore",
    "RAGConfig",
    "RetrievalResult",
    "SentenceTransformerEmbedder",
    "SortOrder",
    "StorageError",
    "dedupe_events",
    "extract_keywords",
    "load_events",
]
