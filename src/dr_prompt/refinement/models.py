"""Data models for prompt refinement."""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from dr_prompt.llm import LLMConfig, ProviderType, RetryConfig, parse_bullet_points
from dr_prompt.models.targets import TargetModel

GENERIC_ERROR_MESSAGE = "Failed to refine prompt. Please try again or check your connection."

# Output schema sent with every request; the service constrains decoding to it
REFINED_RESULT_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "refinedPrompt": {
            "type": "STRING",
            "description": "The rewritten, optimized prompt.",
        },
        "explanation": {
            "type": "STRING",
            "description": "Brief explanation of the optimization techniques used.",
        },
    },
    "required": ["refinedPrompt", "explanation"],
}


class RefinementError(Exception):
    """
    A refinement request failed.

    ``kind`` records why (transport, timeout, empty, malformed, schema) for
    logging only; callers treat every kind the same way.
    """

    def __init__(self, message: str, kind: str = "transport"):
        super().__init__(message)
        self.kind = kind


class RefinedResult(BaseModel):
    """A rewritten prompt and the rationale behind it."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    refined_prompt: str = Field(
        alias="refinedPrompt",
        min_length=1,
        description="The rewritten, optimized prompt",
    )
    explanation: str = Field(
        description="Free-text or bullet-style explanation of the techniques used",
    )

    def explanation_points(self) -> list[str]:
        """Split the explanation into bullet items."""
        return parse_bullet_points(self.explanation)


def new_entry_id() -> str:
    """Generate an opaque history entry id."""
    return uuid.uuid4().hex


class HistoryEntry(BaseModel):
    """One past successful refinement."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_entry_id)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    original_prompt: str = Field(alias="originalPrompt")
    target_model: TargetModel = Field(alias="targetModel")
    result: RefinedResult

    def to_summary(self) -> str:
        """Get a one-line summary of this entry."""
        prompt = self.original_prompt.strip().replace("\n", " ")
        if len(prompt) > 50:
            prompt = prompt[:50] + "..."
        return f"[{self.timestamp.strftime('%Y-%m-%d %H:%M')}] {self.target_model.value}: \"{prompt}\""


class RefinementConfig(BaseModel):
    """Configuration for the refinement client and history."""

    # Provider settings
    provider: ProviderType = Field(
        default=ProviderType.GEMINI,
        description="LLM provider to use",
    )
    model: str = Field(
        default="gemini-2.5-flash",
        description="Model to use for refinements",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key. If not set, reads GOOGLE_API_KEY / GEMINI_API_KEY",
    )

    # Generation settings
    max_tokens: int = Field(
        default=8192,
        ge=1,
        description="Maximum tokens for LLM responses",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )

    # Request policy: one attempt, bounded wait
    timeout_seconds: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        description="Timeout for a refinement request",
    )
    requests_per_minute: Optional[int] = Field(
        default=None,
        ge=1,
        description="Rate limit for LLM requests",
    )

    # History settings
    max_history: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum history entries to keep",
    )
    history_dir: Path = Field(
        default_factory=lambda: Path.home() / ".dr_prompt",
        description="Directory holding the persisted history",
    )

    # Logging
    log_requests: bool = False
    log_responses: bool = False

    def to_llm_config(self) -> LLMConfig:
        """Build the provider configuration for this refinement setup."""
        return LLMConfig(
            provider=self.provider,
            api_key=self.api_key,
            model=self.model,
            timeout_seconds=self.timeout_seconds,
            retry=RetryConfig(max_retries=0),
            requests_per_minute=self.requests_per_minute,
            log_requests=self.log_requests,
            log_responses=self.log_responses,
        )
