"""
Answer generator: sends the prompt context and utterance to the chat model.
"""

from __future__ import annotations

import logging
from typing import Optional

from src.llm.client import ChatClient

from .config import GenerationConfig

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """The model returned nothing usable."""


class AnswerGenerator:
    """Generate a reply from a prebuilt system prompt and the user's utterance."""

    def __init__(self, client: ChatClient):
        self.client = client

    def generate(
        self,
        prompt_context: str,
        utterance: str,
        config: Optional[GenerationConfig] = None,
    ) -> str:
        """Return the model's reply. Raises GenerationError when it is empty."""
        config = config or GenerationConfig()
        text = self.client.chat(
            prompt_context,
            utterance,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
        text = (text or "").strip()
        if not text:
            logger.warning("Model returned an empty reply for %r", utterance[:80])
            raise GenerationError("empty reply from generation provider")
        return text
