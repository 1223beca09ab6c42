"""
Event records as scraped from posters and listings.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Dict, List, Optional, Tuple

MISSING = "N/A"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def has_value(value: Optional[str]) -> bool:
    """True for a non-blank field that is not the ``N/A`` placeholder."""
    if value is None:
        return False
    v = value.strip()
    return bool(v) and v != MISSING


def normalize_name(name: str) -> str:
    """Dedup key for event names: lowercase with non-alphanumerics stripped."""
    return _NON_ALNUM_RE.sub("", (name or "").lower().strip())


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    return [str(v) for v in value if v is not None]


@dataclasses.dataclass(frozen=True)
class EventRecord:
    """One event from the document store. Read-only for the whole pipeline."""

    id: str
    name: str = ""
    organizer: str = ""
    date_raw: str = ""
    time: str = ""
    location: str = ""
    entry_type: str = ""
    website: str = ""
    highlights: Tuple[str, ...] = ()
    raw_ocr: Tuple[str, ...] = ()
    full_text: str = ""
    embedding: Optional[Tuple[float, ...]] = None
    timestamp: str = ""

    @property
    def ocr_text(self) -> str:
        return " ".join(self.raw_ocr)

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    def field_values(self, field_name: str) -> List[str]:
        """Values of a searchable field as a flat list of strings."""
        value = getattr(self, field_name)
        if isinstance(value, tuple):
            return list(value)
        return [value] if value else []

    def with_embedding(self, embedding: List[float]) -> "EventRecord":
        return dataclasses.replace(self, embedding=tuple(float(x) for x in embedding))

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "EventRecord":
        """
        Build a record from a stored document.

        Accepts the nested scraper shape (``{"_id", "event_details": {...},
        "raw_ocr", "full_text"}``) as well as a flat dict using this class's
        field names.
        """
        details = doc.get("event_details")
        if isinstance(details, dict):
            flat = {
                "name": details.get("event_name"),
                "organizer": details.get("organizer"),
                "date_raw": details.get("event_date"),
                "time": details.get("event_time"),
                "location": details.get("location"),
                "entry_type": details.get("entry_type"),
                "website": details.get("website"),
                "highlights": details.get("highlights"),
            }
        else:
            flat = {
                "name": doc.get("name"),
                "organizer": doc.get("organizer"),
                "date_raw": doc.get("date_raw", doc.get("date")),
                "time": doc.get("time"),
                "location": doc.get("location"),
                "entry_type": doc.get("entry_type"),
                "website": doc.get("website"),
                "highlights": doc.get("highlights"),
            }
        embedding = doc.get("embedding")
        return cls(
            id=_text(doc.get("id", doc.get("_id"))),
            name=_text(flat["name"]).strip(),
            organizer=_text(flat["organizer"]),
            date_raw=_text(flat["date_raw"]),
            time=_text(flat["time"]),
            location=_text(flat["location"]),
            entry_type=_text(flat["entry_type"]),
            website=_text(flat["website"]),
            highlights=tuple(_string_list(flat["highlights"])),
            raw_ocr=tuple(_string_list(doc.get("raw_ocr"))),
            full_text=_text(doc.get("full_text")),
            embedding=tuple(float(x) for x in embedding) if embedding else None,
            timestamp=_text(doc.get("timestamp")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view without the embedding."""
        return {
            "id": self.id,
            "name": self.name,
            "organizer": self.organizer,
            "date": self.date_raw,
            "time": self.time,
            "location": self.location,
            "entry_type": self.entry_type,
            "website": self.website,
            "highlights": list(self.highlights),
        }
