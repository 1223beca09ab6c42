"""
Inspect the loaded event data: counts, a sample record, date parsing and a test search.

Usage:
  python -m scripts.check_events
  python -m scripts.check_events --path data/events.jsonl --query "music festival"
"""

from __future__ import annotations

import argparse
import json
import logging
from collections import Counter
from pathlib import Path

from src.events import DateExpressionParser, EventQualityScorer, display_date, display_location
from src.rag import HybridRetriever, InMemoryEventStore, RAGConfig, load_events
from src.rag.buckets import DateBucket, DateBucketResolver
from src.telemetry import RecordingTracer


def run(*, path: Path | None = None, query: str | None = None, sample: int = 1) -> None:
    events = load_events(path)
    store = InMemoryEventStore(events)
    print(f"events={len(events)}")
    print(f"with_embedding={sum(1 for e in events if e.embedding)}")

    for event in events[:sample]:
        print("\nsample event:")
        print(json.dumps(event.to_dict(), indent=2, ensure_ascii=False))
        print(f"  display date: {display_date(event)}")
        print(f"  display location: {display_location(event) or 'N/A'}")

    tracer = RecordingTracer()
    parser = DateExpressionParser(tracer=tracer)
    parsed = sum(1 for e in events if parser.parse(e.date_raw, e) is not None)
    print(f"\ndates parsed={parsed} failed={len(events) - parsed}")
    reasons = Counter(ev.fields.get("reason", "") for ev in tracer.find("date_parse_failed"))
    for reason, n in reasons.most_common():
        print(f"- {reason or 'no match'}: {n}")

    scorer = EventQualityScorer()
    scores = [scorer.score(e) for e in events]
    if scores:
        print(f"\nquality min={min(scores)} max={max(scores)} mean={sum(scores) / len(scores):.1f}")

    buckets = DateBucketResolver(store, parser=parser)
    for bucket in DateBucket:
        print(f"bucket {bucket.value}={len(buckets.events_for(bucket))}")

    if query:
        retriever = HybridRetriever(store, config=RAGConfig(use_vector_search=False))
        results = retriever.retrieve(query)
        print(f"\nsearch {query!r}: {len(results)} results")
        for r in results[:10]:
            print(f"- [{r.score:.0f} {r.source}] {r.event.name} ({display_date(r.event)})")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Inspect event data loaded from EVENTS_PATH or --path.",
    )
    parser.add_argument("--path", type=Path, default=None, help="Events file (.jsonl or .json)")
    parser.add_argument("--query", type=str, default=None, help="Optional test search query")
    parser.add_argument("--sample", type=int, default=1, help="Number of sample records to print")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline trace events")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    run(path=args.path, query=args.query, sample=args.sample)


if __name__ == "__main__":
    main()
