"""
Structured trace events emitted by the query pipeline.
"""

from .tracer import LoggingTracer, RecordingTracer, TraceEvent, Tracer, default_tracer

__all__ = [
    "LoggingTracer",
    "RecordingTracer",
    "TraceEvent",
    "Tracer",
    "default_tracer",
]
