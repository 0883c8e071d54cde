"""Configuration models for LLM integration."""

from typing import Optional

from pydantic import BaseModel, Field, SecretStr

from .providers.base import ProviderType


class RetryConfig(BaseModel):
    """Configuration for retry behavior."""

    # Single attempt by default
    max_retries: int = Field(default=0, ge=0, le=10)


class LLMConfig(BaseModel):
    """Main configuration for LLM integration."""

    # Provider selection
    provider: ProviderType = Field(
        default=ProviderType.GEMINI,
        description="LLM provider to use",
    )

    # API Configuration
    api_key: Optional[SecretStr] = Field(
        default=None,
        description="API key. If not set, reads from environment variable",
    )
    model: str = Field(
        default="gemini-2.5-flash",
        description="Model identifier sent with every request",
    )
    timeout_seconds: float = Field(default=60.0, ge=1.0, le=600.0)

    # Retry configuration
    retry: RetryConfig = Field(default_factory=RetryConfig)

    # Rate limiting
    requests_per_minute: Optional[int] = Field(default=None, ge=1)

    # Cost tracking
    track_costs: bool = True

    # Logging
    log_requests: bool = False
    log_responses: bool = False

    def get_api_key_value(self) -> Optional[str]:
        """Get the API key value as a plain string."""
        if self.api_key:
            return self.api_key.get_secret_value()
        return None
