"""OpenAI provider implementation."""

import logging
from typing import Any

import openai
from pydantic import BaseModel

from community_search.errors import ProviderPermanentError, ProviderTransientError
from community_search.llm.base import EmbeddingResult, LLMProvider, ResponseResult, error_for_status

logger = logging.getLogger(__name__)


class OpenAIConfig(BaseModel):
    """Configuration for OpenAI provider."""

    api_key: str
    model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 768
    max_tokens: int = 1000
    temperature: float = 0.3
    timeout: float = 15.0


class OpenAIProvider(LLMProvider):
    """OpenAI provider implementation."""

    name = "openai"

    def __init__(self, config: OpenAIConfig | None = None, **kwargs: Any) -> None:
        """Initialize OpenAI provider.

        Args:
            config: OpenAI configuration
            **kwargs: Additional configuration options
        """
        self.config = config or OpenAIConfig(**kwargs)
        # Retries are owned by the gateway, not by the SDK
        self.client = openai.AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=0,
        )

    @property
    def embedding_model(self) -> str:
        return self.config.embedding_model

    def _translate_error(self, e: openai.OpenAIError) -> ProviderTransientError | ProviderPermanentError:
        if isinstance(e, (openai.APITimeoutError, openai.APIConnectionError)):
            return ProviderTransientError(f"OpenAI connection failed: {e}", self.name)
        if isinstance(e, openai.APIStatusError):
            return error_for_status(self.name, e.status_code, f"OpenAI API error: {e}")
        return ProviderTransientError(f"OpenAI request failed: {e}", self.name)

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding using OpenAI's embedding model.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector
        """
        try:
            response = await self.client.embeddings.create(
                model=self.config.embedding_model,
                input=text,
                dimensions=self.config.embedding_dimensions,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise self._translate_error(e) from e

        if not response.data:
            raise ProviderTransientError("OpenAI returned no embedding data", self.name)

        return EmbeddingResult(
            embedding=response.data[0].embedding,
            model=self.config.embedding_model,
            provider=self.name,
            token_count=response.usage.total_tokens if response.usage else None,
        )

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        json_output: bool = False,
    ) -> ResponseResult:
        """Generate response using OpenAI's chat model.

        Args:
            prompt: User prompt or instruction
            context: Optional context information
            json_output: Request a JSON object response

        Returns:
            ResponseResult with generated response
        """
        messages = []

        if context:
            messages.append(
                {
                    "role": "system",
                    "content": f"Use the following context to interpret the user's request: {context}",
                }
            )

        messages.append({"role": "user", "content": prompt})

        request: dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if json_output:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**request)
        except openai.OpenAIError as e:
            logger.error(f"OpenAI response request failed: {e}")
            raise self._translate_error(e) from e

        choice = response.choices[0]

        return ResponseResult(
            content=choice.message.content or "",
            model=self.config.model,
            provider=self.name,
            token_count=response.usage.total_tokens if response.usage else None,
            finish_reason=choice.finish_reason,
        )

    async def health_check(self) -> bool:
        """Check if OpenAI service is accessible."""
        try:
            await self.client.models.list()
            return True
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.close()
