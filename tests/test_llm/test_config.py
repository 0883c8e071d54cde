"""Tests for LLM configuration models."""

import pytest
from pydantic import SecretStr, ValidationError

from dr_prompt.llm.config import LLMConfig, RetryConfig
from dr_prompt.llm.providers import GeminiProvider, ProviderType, create_provider_from_config
from dr_prompt.llm.providers.factory import create_llm_provider, get_default_model


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_single_attempt_by_default(self):
        """No automatic retries by default."""
        assert RetryConfig().max_retries == 0

    def test_bounds(self):
        """Negative retries are rejected."""
        with pytest.raises(ValidationError):
            RetryConfig(max_retries=-1)


class TestLLMConfig:
    """Tests for LLMConfig."""

    def test_defaults(self):
        """Test default configuration."""
        config = LLMConfig()
        assert config.provider == ProviderType.GEMINI
        assert config.model == "gemini-2.5-flash"
        assert config.timeout_seconds == 60.0
        assert config.requests_per_minute is None

    def test_timeout_bounds(self):
        """Timeouts must be positive and bounded."""
        with pytest.raises(ValidationError):
            LLMConfig(timeout_seconds=0)
        with pytest.raises(ValidationError):
            LLMConfig(timeout_seconds=601)

    def test_api_key_value(self):
        """Secret key is exposed only through get_api_key_value."""
        config = LLMConfig(api_key=SecretStr("secret"))
        assert "secret" not in repr(config)
        assert config.get_api_key_value() == "secret"

    def test_rate_limit_bounds(self):
        """Rate limits must be positive."""
        with pytest.raises(ValidationError):
            LLMConfig(requests_per_minute=0)

    def test_api_key_missing(self):
        """No key configured yields None."""
        assert LLMConfig().get_api_key_value() is None


class TestFactory:
    """Tests for provider creation."""

    def test_create_from_string(self):
        """Provider names are case-insensitive strings."""
        provider = create_llm_provider("GEMINI")
        assert isinstance(provider, GeminiProvider)
        assert provider.default_model == get_default_model(ProviderType.GEMINI)

    def test_unknown_provider(self):
        """Unknown providers raise ValueError."""
        with pytest.raises(ValueError, match="Unknown provider"):
            create_llm_provider("openai")

    def test_create_from_config(self):
        """Config values flow into the provider."""
        config = LLMConfig(
            api_key=SecretStr("k"),
            model="gemini-2.5-pro",
            timeout_seconds=15,
            log_requests=True,
        )
        provider = create_provider_from_config(config)
        assert isinstance(provider, GeminiProvider)
        assert provider.default_model == "gemini-2.5-pro"
        assert provider.timeout_seconds == 15
        assert provider.max_retries == 0
        assert provider.log_requests is True
        assert provider._get_api_key() == "k"
