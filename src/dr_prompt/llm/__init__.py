"""
LLM Integration Module for Dr. Prompt.

This module provides the interface to the generative-text service:
- Provider abstraction with a Google Gemini implementation
- Schema-constrained (structured) JSON output
- Structured output parsing with Pydantic validation
- Cost tracking and token counting

Usage:
    from dr_prompt.llm import create_llm_provider, ProviderType

    provider = create_llm_provider(ProviderType.GEMINI)
    async with provider:
        response = await provider.complete(
            "Hello, world!",
            system="Answer briefly.",
        )
        print(response.content)
"""

from .providers import (
    GeminiProvider,
    LLMProvider,
    LLMResponse,
    ProviderCapabilities,
    ProviderType,
    TokenUsage,
    create_llm_provider,
    create_provider_from_config,
    get_default_model,
)
from .providers.base import CostTracker
from .config import LLMConfig, RetryConfig
from .parser import (
    ParseError,
    extract_json,
    parse_bullet_points,
    parse_json,
    parse_model,
)

__all__ = [
    # Provider system
    "LLMProvider",
    "ProviderType",
    "ProviderCapabilities",
    "GeminiProvider",
    "create_llm_provider",
    "create_provider_from_config",
    "get_default_model",
    # Response types
    "LLMResponse",
    "TokenUsage",
    "CostTracker",
    # Config
    "LLMConfig",
    "RetryConfig",
    # Parser
    "ParseError",
    "extract_json",
    "parse_json",
    "parse_model",
    "parse_bullet_points",
]
