"""Anthropic Claude provider implementation."""

import logging
from typing import Any

import anthropic
from pydantic import BaseModel

from community_search.errors import ProviderPermanentError, ProviderTransientError
from community_search.llm.base import EmbeddingResult, LLMProvider, ResponseResult, error_for_status

logger = logging.getLogger(__name__)


class AnthropicConfig(BaseModel):
    """Configuration for Anthropic provider."""

    api_key: str
    model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 1000
    temperature: float = 0.3
    timeout: float = 15.0


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider. Understanding only; no embeddings."""

    name = "anthropic"
    supports_embeddings = False

    def __init__(self, config: AnthropicConfig | None = None, **kwargs: Any) -> None:
        """Initialize Anthropic provider.

        Args:
            config: Anthropic configuration
            **kwargs: Additional configuration options
        """
        self.config = config or AnthropicConfig(**kwargs)
        self.client = anthropic.AsyncAnthropic(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=0,
        )

    @property
    def embedding_model(self) -> None:
        return None

    def _translate_error(self, e: anthropic.AnthropicError) -> ProviderTransientError | ProviderPermanentError:
        if isinstance(e, (anthropic.APITimeoutError, anthropic.APIConnectionError)):
            return ProviderTransientError(f"Anthropic connection failed: {e}", self.name)
        if isinstance(e, anthropic.APIStatusError):
            return error_for_status(self.name, e.status_code, f"Anthropic API error: {e}")
        return ProviderTransientError(f"Anthropic request failed: {e}", self.name)

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Anthropic does not provide embeddings.

        Raises:
            ProviderPermanentError: Always
        """
        raise ProviderPermanentError("Anthropic doesn't provide embeddings", self.name)

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        json_output: bool = False,
    ) -> ResponseResult:
        """Generate response using Anthropic's Claude model.

        Args:
            prompt: User prompt or instruction
            context: Optional context information
            json_output: Instruct the model to answer with JSON only

        Returns:
            ResponseResult with generated response
        """
        request: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        system = context or ""
        if json_output:
            system = f"{system}\n\nRespond with a single valid JSON object and nothing else.".strip()
        if system:
            request["system"] = system

        try:
            response = await self.client.messages.create(**request)
        except anthropic.AnthropicError as e:
            logger.error(f"Anthropic response request failed: {e}")
            raise self._translate_error(e) from e

        # Anthropic returns content as a list of blocks
        content = "".join(block.text for block in response.content if block.type == "text")

        return ResponseResult(
            content=content,
            model=self.config.model,
            provider=self.name,
            token_count=response.usage.output_tokens + response.usage.input_tokens,
            finish_reason=response.stop_reason,
        )

    async def health_check(self) -> bool:
        """Check if Anthropic service is accessible."""
        try:
            await self.client.models.list(limit=1)
            return True
        except Exception as e:
            logger.warning(f"Anthropic health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.close()
