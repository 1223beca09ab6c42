"""
Conversation turns and the in-memory per-session history.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from src.events import EventRecord

USER = "user"
ASSISTANT = "assistant"

_ROLE_ALIASES = {"ai": ASSISTANT, "bot": ASSISTANT, "assistant": ASSISTANT, "user": USER, "human": USER}


def normalize_role(role: str) -> str:
    return _ROLE_ALIASES.get((role or "").lower(), (role or "").lower())


@dataclass
class ConversationTurn:
    """Single message in a conversation."""

    role: str
    content: str
    sources: List[EventRecord] = field(default_factory=list)
    timestamp: Optional[dt.datetime] = None

    def __post_init__(self) -> None:
        self.role = normalize_role(self.role)

    @property
    def is_user(self) -> bool:
        return self.role == USER

    @property
    def is_assistant(self) -> bool:
        return self.role == ASSISTANT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        sources = [
            s if isinstance(s, EventRecord) else EventRecord.from_document(s)
            for s in data.get("sources") or []
        ]
        return cls(
            role=data.get("role", USER),
            content=data.get("content", ""),
            sources=sources,
            timestamp=data.get("timestamp"),
        )


def latest_sourced_turn(history: Sequence[ConversationTurn]) -> Optional[ConversationTurn]:
    """Most recent assistant turn that surfaced events."""
    for turn in reversed(history):
        if turn.is_assistant and turn.sources:
            return turn
    return None


def to_turns(history: Iterable[ConversationTurn | Dict[str, Any]] | None) -> List[ConversationTurn]:
    if not history:
        return []
    return [t if isinstance(t, ConversationTurn) else ConversationTurn.from_dict(t) for t in history]


class ConversationMemory:
    """In-memory list of turns; the last N are passed to the agent as history."""

    def __init__(self, max_turns: int = 20):
        self._turns: List[ConversationTurn] = []
        self.max_turns = max_turns

    def __len__(self) -> int:
        return len(self._turns)

    def add_turn(
        self,
        query: str,
        answer: str,
        sources: Optional[List[EventRecord]] = None,
    ) -> None:
        now = dt.datetime.now(dt.timezone.utc)
        self._turns.append(ConversationTurn(role=USER, content=query, timestamp=now))
        self._turns.append(
            ConversationTurn(role=ASSISTANT, content=answer, sources=list(sources or []), timestamp=now)
        )
        if len(self._turns) > self.max_turns:
            self._turns = self._turns[-self.max_turns :]

    def get_history(self, last_n: Optional[int] = None) -> List[ConversationTurn]:
        if last_n is None:
            return list(self._turns)
        return list(self._turns[-last_n:])

    def clear(self) -> None:
        self._turns.clear()
