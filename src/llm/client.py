"""
Chat client for OpenAI-compatible APIs (OpenAI, Z.AI/GLM, DeepSeek, Gemini gateways, etc.).
"""

from __future__ import annotations

import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from openai import OpenAI

# Load .env file if it exists
project_root = Path(__file__).resolve().parents[2]
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.openai.com/v1")
LLM_API_KEY = os.getenv("LLM_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """The generation provider is not configured or cannot be reached."""


def _is_rate_limited(error: Exception) -> bool:
    text = str(error)
    return "429" in text or "concurrency" in text.lower() or "rate limit" in text.lower()


class ChatClient:
    """System prompt + user message in, reply text out. Failures come back as ""."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[OpenAI] = None,
    ):
        self.model_name = model_name or LLM_MODEL
        self.base_url = base_url or LLM_BASE_URL
        if client is not None:
            self.client = client
            return
        key = api_key or LLM_API_KEY
        if not key:
            raise ProviderError("API key required. Set LLM_API_KEY (and LLM_BASE_URL for non-OpenAI hosts).")
        self.client = OpenAI(base_url=self.base_url, api_key=key)

    def chat(
        self,
        system: str,
        user: str,
        max_tokens: int = 1500,
        temperature: float = 0.2,
        max_retries: int = 3,
    ) -> str:
        """Single chat completion. Rate limits are retried with backoff; other errors give ""."""
        create_kw: dict = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        # Z.AI: disable thinking so the model returns directly in content
        if "z.ai" in self.base_url.lower():
            create_kw["extra_body"] = {"thinking": {"type": "disabled"}}

        for attempt in range(1, max_retries + 1):
            try:
                response = self.client.chat.completions.create(**create_kw)
            except Exception as e:
                if _is_rate_limited(e) and attempt < max_retries:
                    backoff = (2 ** attempt) + random.uniform(0, 1.0)
                    logger.warning(
                        "Rate limit hit. Retrying in %s s (attempt %s/%s)",
                        round(backoff, 1),
                        attempt,
                        max_retries,
                    )
                    time.sleep(backoff)
                    continue
                logger.error("Error calling chat API: %s", e)
                return ""

            if not response.choices:
                logger.warning("Empty response from chat API")
                return ""
            choice = response.choices[0]
            text = (choice.message.content or "").strip()
            if not text:
                logger.warning(
                    "Empty content in chat response (finish_reason=%s)",
                    getattr(choice, "finish_reason", "?"),
                )
            return text
        return ""


def create_client(
    model_name: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> ChatClient:
    """Create a chat client from args or the LLM_* environment variables."""
    return ChatClient(model_name=model_name, api_key=api_key, base_url=base_url)
