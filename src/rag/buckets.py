"""
Date-bucket listing: events happening today, tomorrow, this week or later.
"""

from __future__ import annotations

import datetime as dt
import enum
from typing import List, Optional, Tuple

from src.events import Clock, DateExpressionParser, EventRecord, SystemClock
from src.events.clock import today as clock_today
from src.telemetry import Tracer, default_tracer

from .config import RAGConfig
from .store import DocumentStore


class DateBucket(str, enum.Enum):
    TODAY = "today"
    TOMORROW = "tomorrow"
    WEEK = "week"
    FUTURE = "future"


def bucket_contains(bucket: DateBucket, day: dt.date, today: dt.date) -> bool:
    if bucket == DateBucket.TODAY:
        return day == today
    if bucket == DateBucket.TOMORROW:
        return day == today + dt.timedelta(days=1)
    if bucket == DateBucket.WEEK:
        return today <= day <= today + dt.timedelta(days=7)
    return day >= today


class DateBucketResolver:
    """Filter stored events by the bucket their parsed date falls in."""

    def __init__(
        self,
        store: DocumentStore,
        parser: Optional[DateExpressionParser] = None,
        clock: Optional[Clock] = None,
        config: Optional[RAGConfig] = None,
        tracer: Optional[Tracer] = None,
    ):
        self.store = store
        self.clock = clock or (parser.clock if parser is not None else SystemClock())
        self.tracer = tracer or default_tracer()
        self.parser = parser or DateExpressionParser(clock=self.clock, tracer=self.tracer)
        self.config = config or RAGConfig()

    def events_for(self, bucket: DateBucket | str) -> List[EventRecord]:
        """Events in the bucket, earliest first. Storage errors yield an empty list."""
        bucket = DateBucket(bucket)
        try:
            candidates = self.store.find_all(limit=self.config.bucket_scan_limit)
        except Exception as e:
            self.tracer.emit("date_bucket_failed", bucket=bucket.value, error=str(e))
            return []

        today = clock_today(self.clock)
        dated: List[Tuple[dt.date, EventRecord]] = []
        failed = 0
        for event in candidates:
            day = self.parser.parse(event.date_raw, event)
            if day is None:
                failed += 1
                continue
            if bucket_contains(bucket, day, today):
                dated.append((day, event))

        dated.sort(key=lambda pair: pair[0])
        self.tracer.emit(
            "date_bucket_resolved",
            bucket=bucket.value,
            today=today.isoformat(),
            scanned=len(candidates),
            unparsed=failed,
            matched=len(dated),
        )
        return [event for _, event in dated[: self.config.bucket_max_results]]
