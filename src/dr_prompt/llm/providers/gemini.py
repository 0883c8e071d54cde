"""Google Gemini LLM provider implementation."""

import asyncio
import logging
import os
import time
from typing import Any, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .base import (
    LLMProvider,
    LLMResponse,
    ProviderCapabilities,
    ProviderType,
    TokenUsage,
)

logger = logging.getLogger(__name__)


# Gemini model pricing per million tokens (as of 2025)
GEMINI_PRICING = {
    "gemini-2.5-pro": {"input": 1.25, "output": 10.00},
    "gemini-2.5-flash": {"input": 0.30, "output": 2.50},
    "gemini-2.5-flash-lite": {"input": 0.10, "output": 0.40},
    "gemini-2.0-flash": {"input": 0.10, "output": 0.40},
    "gemini-2.0-flash-lite": {"input": 0.075, "output": 0.30},
    "gemini-flash-latest": {"input": 0.30, "output": 2.50},
}

# Default pricing for unknown models
DEFAULT_GEMINI_PRICING = {"input": 0.30, "output": 2.50}


class GeminiProvider(LLMProvider):
    """
    Google Gemini LLM provider.

    Supports schema-constrained JSON output through ``response_mime_type`` and
    ``response_schema``. Each request runs the synchronous SDK call in a worker
    thread and is bounded by ``timeout_seconds``.

    Usage:
        provider = GeminiProvider(
            api_key="...",
            default_model="gemini-2.5-flash",
        )
        async with provider:
            response = await provider.complete("Hello!")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = "gemini-2.5-flash",
        timeout_seconds: float = 60.0,
        max_retries: int = 0,
        requests_per_minute: Optional[int] = None,
        track_costs: bool = True,
        log_requests: bool = False,
        log_responses: bool = False,
    ):
        super().__init__()
        self._api_key = api_key
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.requests_per_minute = requests_per_minute
        self.track_costs = track_costs
        self.log_requests = log_requests
        self.log_responses = log_responses

        self._genai_module: Optional[Any] = None
        self._rate_limit_lock = asyncio.Lock()
        self._last_request_time: float = 0.0

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GEMINI

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_system_prompt=True,  # Via system_instruction
            supports_structured_output=True,
            max_context_window=1_000_000,
        )

    def _get_api_key(self) -> str:
        """Get API key from config or environment."""
        if self._api_key:
            return self._api_key

        for env_var in ["GOOGLE_API_KEY", "GEMINI_API_KEY"]:
            api_key = os.environ.get(env_var)
            if api_key:
                return api_key

        raise ValueError(
            "Google API key not found. Set GOOGLE_API_KEY or GEMINI_API_KEY "
            "environment variable or pass api_key parameter."
        )

    async def start(self) -> None:
        """Initialize the Gemini client."""
        import google.generativeai as genai

        api_key = self._get_api_key()
        genai.configure(api_key=api_key)
        self._genai_module = genai
        self._started = True
        logger.info("Gemini provider initialized")

    async def stop(self) -> None:
        """Clean up resources."""
        self._genai_module = None
        self._started = False
        logger.info("Gemini provider closed")

    def _get_model(self, model_name: str, system_instruction: Optional[str] = None) -> Any:
        """Create a GenerativeModel instance."""
        if self._genai_module is None:
            raise RuntimeError(
                "Provider not initialized. Use 'async with provider' or call start()."
            )

        # SDK adds the "models/" prefix itself
        if model_name.startswith("models/"):
            model_name = model_name[7:]

        if system_instruction:
            return self._genai_module.GenerativeModel(
                model_name,
                system_instruction=system_instruction,
            )
        return self._genai_module.GenerativeModel(model_name)

    async def _apply_rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        if self.requests_per_minute:
            min_interval = 60.0 / self.requests_per_minute
            async with self._rate_limit_lock:
                elapsed = time.time() - self._last_request_time
                if elapsed < min_interval:
                    await asyncio.sleep(min_interval - elapsed)
                self._last_request_time = time.time()

    def build_generation_config(
        self,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        top_p: float = 1.0,
        top_k: Optional[int] = None,
        response_mime_type: Optional[str] = None,
        response_schema: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Build the generation_config mapping passed to generate_content."""
        generation_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
            "top_p": top_p,
        }

        if top_k is not None:
            generation_config["top_k"] = top_k

        if response_mime_type:
            generation_config["response_mime_type"] = response_mime_type

        if response_schema:
            generation_config["response_schema"] = response_schema

        return generation_config

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        top_p: float = 1.0,
        top_k: Optional[int] = None,
        response_mime_type: Optional[str] = None,
        response_schema: Optional[dict[str, Any]] = None,
        model: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Send a completion request to Gemini.

        Args:
            prompt: The user content
            system: Optional system instruction
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            top_p: Nucleus sampling parameter
            top_k: Top-k sampling
            response_mime_type: Output MIME type, "application/json" for JSON mode
            response_schema: OpenAPI-style schema the output must match
            model: Model to use (defaults to default_model)
            **kwargs: Additional arguments (ignored)

        Returns:
            LLMResponse with content, usage, and metadata

        Raises:
            asyncio.TimeoutError: If the request exceeds timeout_seconds
            Exception: Whatever the SDK raises once retries are exhausted
        """
        model_name = model or self.default_model
        generation_config = self.build_generation_config(
            max_tokens=max_tokens,
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            response_mime_type=response_mime_type,
            response_schema=response_schema,
        )

        await self._apply_rate_limit()

        genai_model = self._get_model(model_name, system_instruction=system)

        if self.log_requests:
            logger.debug(f"Gemini Request: model={model_name}, prompt={prompt[:200]}...")

        start_time = time.time()

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1.0, max=30.0),
            retry=retry_if_exception_type(Exception),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying Gemini request (attempt {attempt.retry_state.attempt_number})"
                    )
                response = await asyncio.wait_for(
                    asyncio.to_thread(
                        genai_model.generate_content,
                        prompt,
                        generation_config=generation_config,
                        request_options={"timeout": self.timeout_seconds},
                    ),
                    timeout=self.timeout_seconds,
                )

        latency_ms = (time.time() - start_time) * 1000

        content = ""
        try:
            content = response.text or ""
        except ValueError:
            # Blocked or candidate-less responses raise on .text
            if getattr(response, "prompt_feedback", None):
                logger.warning(f"Gemini response blocked: {response.prompt_feedback}")
            content = ""

        usage = TokenUsage()
        if getattr(response, "usage_metadata", None):
            usage.input_tokens = getattr(response.usage_metadata, "prompt_token_count", 0) or 0
            usage.output_tokens = getattr(response.usage_metadata, "candidates_token_count", 0) or 0

        cost_usd = self.calculate_cost(usage, model_name)

        stop_reason = None
        candidates = getattr(response, "candidates", None)
        if candidates:
            stop_reason = str(getattr(candidates[0], "finish_reason", "")) or None

        llm_response = LLMResponse(
            content=content,
            model=model_name,
            usage=usage,
            stop_reason=stop_reason,
            latency_ms=latency_ms,
            raw_response=response if self.log_responses else None,
            provider=ProviderType.GEMINI,
            cost_usd=cost_usd,
        )

        if self.track_costs:
            self.cost_tracker.add(llm_response, cost_usd)

        if self.log_responses:
            logger.debug(f"Gemini Response: {content[:200]}...")

        return llm_response

    def calculate_cost(self, usage: TokenUsage, model: str) -> float:
        """Calculate cost in USD for token usage."""
        pricing = GEMINI_PRICING.get(model, DEFAULT_GEMINI_PRICING)
        input_cost = (usage.input_tokens / 1_000_000) * pricing["input"]
        output_cost = (usage.output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost
