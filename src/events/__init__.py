"""
Event records and the pure functions that read them.

- EventRecord data model
- Noisy date parsing (DateExpressionParser)
- Date and location recovery from OCR text
- Completeness scoring (EventQualityScorer)
"""

from .cleaners import clean_date_string, clean_location, display_date, display_location
from .clock import Clock, FixedClock, SystemClock
from .dates import DateExpressionParser
from .models import MISSING, EventRecord, has_value, normalize_name
from .months import format_ordinal
from .quality import EventQualityScorer, is_noise_name

__all__ = [
    "Clock",
    "DateExpressionParser",
    "EventQualityScorer",
    "EventRecord",
    "FixedClock",
    "MISSING",
    "SystemClock",
    "clean_date_string",
    "clean_location",
    "display_date",
    "display_location",
    "format_ordinal",
    "has_value",
    "is_noise_name",
    "normalize_name",
]
