"""Base inference provider interface and factory pattern."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from community_search.errors import ProviderPermanentError, ProviderTransientError

# Status codes worth retrying: request timeout, rate limiting and server-side failures
TRANSIENT_STATUS_CODES = frozenset({408, 429})


class EmbeddingResult(BaseModel):
    """Result from embedding generation."""

    embedding: list[float]
    model: str
    provider: str
    token_count: int | None = None


class ResponseResult(BaseModel):
    """Result from response generation."""

    content: str
    model: str
    provider: str
    token_count: int | None = None
    finish_reason: str | None = None


class LLMProvider(ABC):
    """Abstract base class for inference providers.

    Implementations raise ``ProviderTransientError`` for failures worth
    retrying (timeouts, rate limits, 5xx, malformed payloads) and
    ``ProviderPermanentError`` when the provider rejects the request itself.
    """

    name: str = "base"
    supports_embeddings: bool = True

    @property
    @abstractmethod
    def embedding_model(self) -> str | None:
        """Identifier of the model used for embeddings, if any."""

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for the given text.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector and metadata
        """

    @abstractmethod
    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        json_output: bool = False,
    ) -> ResponseResult:
        """Generate response given a prompt and optional context.

        Args:
            prompt: User prompt or instruction
            context: Optional context information
            json_output: Ask the model for a JSON-only answer where supported

        Returns:
            ResponseResult with generated response and metadata
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is healthy and accessible.

        Returns:
            True if healthy, False otherwise
        """

    async def aclose(self) -> None:
        """Release network resources held by the provider."""


def error_for_status(
    provider: str,
    status_code: int | None,
    message: str,
) -> ProviderTransientError | ProviderPermanentError:
    """Map an HTTP status code onto the transient/permanent error taxonomy."""
    if status_code is None or status_code >= 500 or status_code in TRANSIENT_STATUS_CODES:
        return ProviderTransientError(message, provider, status_code)
    return ProviderPermanentError(message, provider, status_code)


class LLMProviderFactory:
    """Factory for creating inference providers."""

    _providers: dict[str, type[LLMProvider]] = {}

    @classmethod
    def register(cls, name: str, provider_class: type[LLMProvider]) -> None:
        """Register a provider class.

        Args:
            name: Provider name (e.g., "gemini", "deepinfra")
            provider_class: Provider class to register
        """
        cls._providers[name] = provider_class

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> LLMProvider:
        """Create a provider instance.

        Args:
            name: Provider name
            **kwargs: Provider-specific configuration

        Returns:
            LLMProvider instance

        Raises:
            ValueError: If provider name is not registered
        """
        if name not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(f"Unknown provider '{name}'. Available: {available}")

        return cls._providers[name](**kwargs)

    @classmethod
    def list_providers(cls) -> list[str]:
        """List all registered provider names."""
        return list(cls._providers.keys())
