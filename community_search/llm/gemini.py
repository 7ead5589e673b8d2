"""Google Gemini provider implementation."""

import logging
from typing import Any

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel

from community_search.errors import ProviderPermanentError, ProviderTransientError
from community_search.llm.base import EmbeddingResult, LLMProvider, ResponseResult

logger = logging.getLogger(__name__)

_TRANSIENT_GOOGLE_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.DeadlineExceeded,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.TooManyRequests,
    google_exceptions.GatewayTimeout,
)


class GeminiConfig(BaseModel):
    """Configuration for Gemini provider."""

    api_key: str
    model: str = "gemini-2.0-flash"
    embedding_model: str = "models/text-embedding-004"
    max_tokens: int = 1000
    temperature: float = 0.3
    timeout: float = 15.0


class GeminiProvider(LLMProvider):
    """Google Gemini provider implementation."""

    name = "gemini"

    def __init__(self, config: GeminiConfig | None = None, **kwargs: Any) -> None:
        """Initialize Gemini provider.

        Args:
            config: Gemini configuration
            **kwargs: Additional configuration options
        """
        self.config = config or GeminiConfig(**kwargs)
        genai.configure(api_key=self.config.api_key)
        self.model = genai.GenerativeModel(self.config.model)

    @property
    def embedding_model(self) -> str:
        return self.config.embedding_model

    def _translate_error(self, e: Exception) -> ProviderTransientError | ProviderPermanentError:
        status = getattr(e, "code", None)
        status_code = status if isinstance(status, int) else None
        if isinstance(e, _TRANSIENT_GOOGLE_ERRORS):
            return ProviderTransientError(f"Gemini unavailable: {e}", self.name, status_code)
        if isinstance(e, google_exceptions.GoogleAPICallError):
            return ProviderPermanentError(f"Gemini rejected request: {e}", self.name, status_code)
        return ProviderTransientError(f"Gemini request failed: {e}", self.name)

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding using Gemini's embedding model.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector
        """
        try:
            result = await genai.embed_content_async(
                model=self.config.embedding_model,
                content=text,
                task_type="retrieval_query",
                request_options={"timeout": self.config.timeout},
            )
        except Exception as e:
            logger.error(f"Gemini embedding request failed: {e}")
            raise self._translate_error(e) from e

        embedding = result.get("embedding") if isinstance(result, dict) else None
        if not embedding:
            raise ProviderTransientError("Invalid response format from Gemini embedding API", self.name)

        return EmbeddingResult(
            embedding=embedding,
            model=self.config.embedding_model,
            provider=self.name,
            token_count=None,  # Gemini doesn't return token count for embeddings
        )

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        json_output: bool = False,
    ) -> ResponseResult:
        """Generate response using Gemini's chat model.

        Args:
            prompt: User prompt or instruction
            context: Optional context information
            json_output: Request an ``application/json`` response

        Returns:
            ResponseResult with generated response
        """
        # Gemini has no system role; context is prepended to the prompt
        full_prompt = prompt
        if context:
            full_prompt = f"Context: {context}\n\n{prompt}"

        generation_config = genai.types.GenerationConfig(
            max_output_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            response_mime_type="application/json" if json_output else None,
        )

        try:
            response = await self.model.generate_content_async(
                full_prompt,
                generation_config=generation_config,
                request_options={"timeout": self.config.timeout},
            )
            text = response.text
        except ValueError as e:
            # Raised by response.text when the candidate was blocked or empty
            raise ProviderTransientError(f"Gemini returned no usable candidate: {e}", self.name) from e
        except Exception as e:
            logger.error(f"Gemini response request failed: {e}")
            raise self._translate_error(e) from e

        return ResponseResult(
            content=text,
            model=self.config.model,
            provider=self.name,
            token_count=response.usage_metadata.total_token_count
            if response.usage_metadata
            else None,
            finish_reason=response.candidates[0].finish_reason.name
            if response.candidates
            else None,
        )

    async def health_check(self) -> bool:
        """Check if Gemini service is accessible."""
        try:
            await genai.embed_content_async(
                model=self.config.embedding_model,
                content="health check",
            )
            return True
        except Exception as e:
            logger.warning(f"Gemini health check failed: {e}")
            return False
