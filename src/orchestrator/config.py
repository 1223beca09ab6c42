"""
Assistant persona and conversational settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass
class AssistantConfig:
    """Who the assistant says it is and how much history it looks at."""

    name: str = "A-Agent"
    aliases: Tuple[str, ...] = ("a-agent", "aagent", "a agent", "h-bot", "hbot", "h bot")
    city: str = "Hyderabad"
    history_window: int = 10
    follow_up_window: int = 6
    summary_size: int = 3
