"""
LLM Provider implementations.

A provider wraps one generative-text backend behind the LLMProvider interface.
"""

from .base import (
    LLMProvider,
    LLMResponse,
    ProviderCapabilities,
    ProviderType,
    TokenUsage,
)
from .gemini import GeminiProvider
from .factory import create_llm_provider, create_provider_from_config, get_default_model

__all__ = [
    # Base
    "LLMProvider",
    "LLMResponse",
    "ProviderType",
    "ProviderCapabilities",
    "TokenUsage",
    # Providers
    "GeminiProvider",
    # Factory
    "create_llm_provider",
    "create_provider_from_config",
    "get_default_model",
]
