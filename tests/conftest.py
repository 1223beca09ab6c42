"""
Shared fixtures: a fixed clock and a small set of sample events.
"""

from __future__ import annotations

import datetime as dt

import pytest

from src.events import EventRecord, FixedClock
from src.rag import InMemoryEventStore

TODAY = dt.date(2026, 10, 17)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def sample_events() -> list[EventRecord]:
    return [
        EventRecord(
            "e1",
            "Sunburn Music Festival",
            organizer="Percept Live",
            date_raw="October 17, 2026",
            time="6 PM",
            location="Gachibowli Stadium",
            entry_type="Paid",
            website="sunburn.in",
            highlights=("DJ sets", "Food court"),
        ),
        EventRecord(
            "e2",
            "Open Mic Comedy Night",
            date_raw="18th October",
            time="8 PM",
            location="Elements Cafe",
            entry_type="Free entry",
        ),
        EventRecord(
            "e3",
            "Holi Colour Run",
            date_raw="21 Oct 2026",
            location="Uppal",
            entry_type="Free",
        ),
        EventRecord(
            "e4",
            "Diwali Art Fair",
            date_raw="November 12",
            location="Shilparamam",
            entry_type="Paid",
        ),
        EventRecord("e5", "Old Jazz Evening", date_raw="1st March 2026", location="Taj Deccan"),
    ]


@pytest.fixture
def store(sample_events) -> InMemoryEventStore:
    return InMemoryEventStore(sample_events)
