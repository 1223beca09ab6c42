"""
Named trace events for the query pipeline.

Components emit discrete events (``date_parse_failed``,
``retrieval_threshold_relaxed``, ...) through an injected tracer instead of
writing free-text log lines. The default tracer forwards them to ``logging``
as one JSON line each.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

logger = logging.getLogger("src.telemetry")


@dataclass
class TraceEvent:
    """A single named pipeline event."""

    name: str
    fields: Dict[str, Any] = field(default_factory=dict)


class Tracer(Protocol):
    """Sink for named pipeline events."""

    def emit(self, name: str, **fields: Any) -> None:
        ...


class LoggingTracer:
    """Write each event to the standard logger as ``name {json}``."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.DEBUG):
        self.log = log or logger
        self.level = level

    def emit(self, name: str, **fields: Any) -> None:
        if not self.log.isEnabledFor(self.level):
            return
        payload = json.dumps(fields, default=str, ensure_ascii=False)
        self.log.log(self.level, "%s %s", name, payload)


class RecordingTracer:
    """Keep events in memory; used by tests and debugging sessions."""

    def __init__(self) -> None:
        self.events: List[TraceEvent] = []

    def emit(self, name: str, **fields: Any) -> None:
        self.events.append(TraceEvent(name=name, fields=dict(fields)))

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def find(self, name: str) -> List[TraceEvent]:
        return [e for e in self.events if e.name == name]

    def clear(self) -> None:
        self.events.clear()


_DEFAULT = LoggingTracer()


def default_tracer() -> Tracer:
    return _DEFAULT
