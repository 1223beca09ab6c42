"""Configuration for answer generation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class GenerationConfig:
    """Settings for the chat completion call and the prompt context."""

    max_tokens: int = 1500
    temperature: float = 0.2
    history_turns: int = 10
    ocr_chars: int = 300
