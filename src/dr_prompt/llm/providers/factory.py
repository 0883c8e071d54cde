"""Factory for creating LLM providers."""

import logging
from typing import TYPE_CHECKING, Any, Optional

from .base import LLMProvider, ProviderType

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)


def create_llm_provider(
    provider: ProviderType | str,
    api_key: Optional[str] = None,
    default_model: Optional[str] = None,
    **kwargs: Any,
) -> LLMProvider:
    """
    Create an LLM provider instance.

    Args:
        provider: The provider type (ProviderType enum or string)
        api_key: Optional API key (falls back to environment variables)
        default_model: Optional default model name
        **kwargs: Additional provider-specific arguments

    Returns:
        An LLMProvider instance

    Raises:
        ValueError: If the provider type is unknown

    Example:
        provider = create_llm_provider("gemini", default_model="gemini-2.5-flash")
        async with provider:
            response = await provider.complete("Hello!")
    """
    if isinstance(provider, str):
        try:
            provider = ProviderType(provider.lower())
        except ValueError:
            raise ValueError(
                f"Unknown provider: {provider}. "
                f"Supported providers: {[p.value for p in ProviderType]}"
            )

    logger.debug(f"Creating {provider.value} provider (model={default_model})")

    if provider == ProviderType.GEMINI:
        from .gemini import GeminiProvider

        return GeminiProvider(
            api_key=api_key,
            default_model=default_model or get_default_model(provider),
            **kwargs,
        )

    raise ValueError(
        f"Unknown provider: {provider}. "
        f"Supported providers: {[p.value for p in ProviderType]}"
    )


def create_provider_from_config(config: "LLMConfig") -> LLMProvider:
    """Create a provider from an LLMConfig."""
    return create_llm_provider(
        provider=config.provider,
        api_key=config.get_api_key_value(),
        default_model=config.model,
        timeout_seconds=config.timeout_seconds,
        max_retries=config.retry.max_retries,
        requests_per_minute=config.requests_per_minute,
        track_costs=config.track_costs,
        log_requests=config.log_requests,
        log_responses=config.log_responses,
    )


def get_default_model(provider: ProviderType | str) -> str:
    """Get the default model for a provider."""
    if isinstance(provider, str):
        provider = ProviderType(provider.lower())

    defaults = {
        ProviderType.GEMINI: "gemini-2.5-flash",
    }

    if provider not in defaults:
        raise ValueError(f"Unknown provider: {provider}")

    return defaults[provider]
