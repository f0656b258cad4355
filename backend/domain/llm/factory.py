"""
Factory for creating LLM clients
"""

import os
from typing import Optional

from domain.llm.base import BaseLLMClient
from domain.llm.groq_client import GroqClient
from core.config import settings
from core.exceptions import LLMError


def create_llm_client(provider: Optional[str] = None, api_key: Optional[str] = None) -> BaseLLMClient:
    """
    Create an LLM client based on configuration.

    Args:
        provider: LLM provider name (overrides settings)
        api_key: API key (overrides environment variable)

    Returns:
        BaseLLMClient instance

    Raises:
        LLMError: If provider is not supported or client creation fails
    """
    provider = (provider or settings.llm_provider).lower()

    if provider == "groq":
        return GroqClient(
            api_key=api_key or os.getenv("GROQ_API_KEY"),
            timeout=settings.llm_timeout,
        )
    raise LLMError(f"Unknown LLM provider: {provider}")
