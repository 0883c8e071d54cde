"""Refinement client: one structured-output request per refinement."""

import asyncio
import logging
from typing import Any, Optional

from dr_prompt.llm import (
    LLMProvider,
    ParseError,
    create_provider_from_config,
    parse_model,
)
from dr_prompt.models.targets import TargetModel

from .models import (
    REFINED_RESULT_SCHEMA,
    RefinedResult,
    RefinementConfig,
    RefinementError,
)
from .prompts import build_instruction

logger = logging.getLogger(__name__)


class PromptRefiner:
    """
    Rewrites raw prompts for a target model through the generative-text service.

    Each call to ``refine`` issues exactly one request with the target's system
    instruction and a strict two-field output schema. Any failure surfaces as
    ``RefinementError``; there are no retries.

    Usage:
        config = RefinementConfig()
        async with PromptRefiner(config) as refiner:
            result = await refiner.refine("write a poem", TargetModel.CLAUDE)
            print(result.refined_prompt)
    """

    def __init__(
        self,
        config: Optional[RefinementConfig] = None,
        provider: Optional[LLMProvider] = None,
    ):
        self.config = config or RefinementConfig()
        self._client: Optional[LLMProvider] = provider
        self._owns_client = provider is None

    async def __aenter__(self) -> "PromptRefiner":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.stop()

    async def start(self) -> None:
        """Initialize the provider unless one was injected."""
        if self._client is None:
            self._client = create_provider_from_config(self.config.to_llm_config())
            await self._client.start()
            self._owns_client = True
            logger.info(
                f"PromptRefiner initialized with {self.config.provider.value} "
                f"provider ({self.config.model})"
            )

    async def stop(self) -> None:
        """Clean up resources."""
        if self._client and self._owns_client:
            await self._client.stop()
            self._client = None
        logger.info("PromptRefiner stopped")

    def get_cost_summary(self) -> dict[str, Any]:
        """Get token and cost totals for requests made so far."""
        if self._client is None:
            return {}
        return self._client.get_cost_summary()

    def _ensure_client(self) -> LLMProvider:
        """Ensure LLM client is available."""
        if self._client is None:
            raise RuntimeError(
                "Refiner not started. Use 'async with PromptRefiner()' or call start()."
            )
        return self._client

    async def refine(self, original_prompt: str, target: TargetModel) -> RefinedResult:
        """
        Refine a prompt for the target model.

        Args:
            original_prompt: The raw prompt, sent as-is
            target: The model the refined prompt is written for

        Returns:
            RefinedResult with both fields populated

        Raises:
            RefinementError: On transport, timeout or decoding failure
        """
        client = self._ensure_client()
        instruction = build_instruction(target)

        try:
            response = await asyncio.wait_for(
                client.complete(
                    original_prompt,
                    system=instruction,
                    max_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                    response_mime_type="application/json",
                    response_schema=REFINED_RESULT_SCHEMA,
                    model=self.config.model,
                ),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Refinement request timed out after {self.config.timeout_seconds}s")
            raise RefinementError("Refinement request timed out", kind="timeout") from e
        except Exception as e:
            logger.error(f"Refinement request failed: {e}")
            raise RefinementError(f"Refinement request failed: {e}", kind="transport") from e

        return self.decode(response.content)

    def decode(self, content: Optional[str]) -> RefinedResult:
        """
        Decode a structured-output payload into a RefinedResult.

        Raises:
            RefinementError: If the payload is empty, not JSON, or off-schema
        """
        if not content or not content.strip():
            logger.warning("Decoding failed (empty): service returned no content")
            raise RefinementError("Empty response from service", kind="empty")

        try:
            result = parse_model(content, RefinedResult, strict=True)
        except ParseError as e:
            # Validation errors are pydantic error dicts; JSON errors are strings
            kind = "schema" if e.errors and isinstance(e.errors[0], dict) else "malformed"
            logger.warning(f"Decoding failed ({kind}): {e} | payload={content[:200]!r}")
            raise RefinementError(f"Could not decode refinement: {e}", kind=kind) from e

        logger.debug(f"Decoded refinement ({len(result.refined_prompt)} chars)")
        return result
