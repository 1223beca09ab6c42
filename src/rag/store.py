"""
Document store interface and an in-memory implementation.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from src.events import EventRecord

logger = logging.getLogger(__name__)

SEARCH_FIELDS: Tuple[str, ...] = (
    "name",
    "organizer",
    "location",
    "date_raw",
    "entry_type",
    "highlights",
    "raw_ocr",
)

STANDARD_SEARCH_FIELDS: Tuple[str, ...] = (
    "name",
    "organizer",
    "location",
    "highlights",
    "raw_ocr",
)


class StorageError(RuntimeError):
    """A document store call failed."""


class SortOrder(str, enum.Enum):
    INSERTION = "insertion"
    RECENT = "recent"


@dataclass(frozen=True)
class EventFilter:
    """
    Case-insensitive substring filter with any-of semantics.

    A record matches when any term occurs in any of the fields. No terms
    matches every record.
    """

    terms: Tuple[str, ...] = ()
    fields: Tuple[str, ...] = SEARCH_FIELDS

    def matches(self, event: EventRecord) -> bool:
        if not self.terms:
            return True
        haystack = [v.lower() for f in self.fields for v in event.field_values(f)]
        for term in self.terms:
            t = term.lower()
            if any(t in v for v in haystack):
                return True
        return False


class DocumentStore(Protocol):
    """What the pipeline needs from event storage."""

    def find_all(
        self,
        filter: Optional[EventFilter] = None,
        sort: Optional[SortOrder] = None,
        limit: int = 100,
    ) -> List[EventRecord]:
        ...

    def vector_search(
        self,
        embedding: Sequence[float],
        num_candidates: int,
        limit: int,
    ) -> List[EventRecord]:
        ...

    def count(self, filter: Optional[EventFilter] = None) -> int:
        ...


class InMemoryEventStore:
    """Event store over a list loaded at startup. Later records are newer."""

    def __init__(self, events: Iterable[EventRecord]):
        self._events: List[EventRecord] = list(events)

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> List[EventRecord]:
        return list(self._events)

    def find_all(
        self,
        filter: Optional[EventFilter] = None,
        sort: Optional[SortOrder] = None,
        limit: int = 100,
    ) -> List[EventRecord]:
        matched = [ev for ev in self._events if filter is None or filter.matches(ev)]
        if sort == SortOrder.RECENT:
            matched.reverse()
        return matched[:limit]

    def count(self, filter: Optional[EventFilter] = None) -> int:
        if filter is None:
            return len(self._events)
        return sum(1 for ev in self._events if filter.matches(ev))

    def vector_search(
        self,
        embedding: Sequence[float],
        num_candidates: int,
        limit: int,
    ) -> List[EventRecord]:
        """Cosine-similarity nearest neighbours over records that carry embeddings."""
        indexed = [ev for ev in self._events if ev.embedding]
        if not indexed:
            raise StorageError("vector index unavailable: no stored embeddings")
        matrix = np.asarray([ev.embedding for ev in indexed], dtype=np.float32)
        query = np.asarray(embedding, dtype=np.float32)
        if matrix.shape[1] != query.shape[0]:
            raise StorageError(
                f"embedding dimension mismatch: index={matrix.shape[1]} query={query.shape[0]}"
            )
        norms = np.linalg.norm(matrix, axis=1) * (np.linalg.norm(query) or 1.0)
        norms[norms == 0] = 1.0
        sims = matrix @ query / norms
        idxs = np.argsort(-sims, kind="stable")[: max(1, num_candidates)]
        return [indexed[int(i)] for i in idxs[:limit]]
