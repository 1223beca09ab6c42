"""
Read-only "now" providers for date parsing and date buckets.
"""

from __future__ import annotations

import datetime as dt
import os
from typing import Protocol
from zoneinfo import ZoneInfo

ASSISTANT_TIMEZONE = os.getenv("ASSISTANT_TIMEZONE", "Asia/Kolkata")


class Clock(Protocol):
    def now(self) -> dt.datetime:
        ...


class SystemClock:
    """Wall clock in the assistant's local timezone."""

    def __init__(self, timezone: str = ASSISTANT_TIMEZONE):
        self.tz = ZoneInfo(timezone)

    def now(self) -> dt.datetime:
        return dt.datetime.now(self.tz)


class FixedClock:
    """Always returns the same instant."""

    def __init__(self, instant: dt.datetime | dt.date):
        if not isinstance(instant, dt.datetime):
            instant = dt.datetime(instant.year, instant.month, instant.day, 12, 0)
        self.instant = instant

    def now(self) -> dt.datetime:
        return self.instant


def today(clock: Clock) -> dt.date:
    return clock.now().date()
