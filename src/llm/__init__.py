"""
LLM client module for OpenAI-compatible chat APIs.
"""

from .client import ChatClient, ProviderError, create_client

__all__ = ["ChatClient", "ProviderError", "create_client"]
