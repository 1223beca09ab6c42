"""
Loading event documents from disk.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List

from src.events import EventRecord

ROOT = Path(__file__).resolve().parents[2]
EVENTS_PATH = Path(os.getenv("EVENTS_PATH", str(ROOT / "data" / "events.jsonl")))


def load_events(path: Path | None = None) -> List[EventRecord]:
    """
    Load events from a JSONL file (one document per line) or a JSON array.

    Documents may use the nested scraper shape or flat field names; see
    ``EventRecord.from_document``.
    """
    if path is None:
        path = EVENTS_PATH
    if not path.exists():
        raise FileNotFoundError(f"events file not found at {path}")

    if path.suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            docs = json.load(f)
        return [EventRecord.from_document(d) for d in docs]

    events: List[EventRecord] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            events.append(EventRecord.from_document(json.loads(line)))
    return events
