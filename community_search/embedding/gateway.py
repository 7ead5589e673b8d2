"""Embedding generation with provider failover, validation and caching."""

import asyncio
import logging
import math

from community_search.config import EmbeddingConfig
from community_search.embedding.cache import EmbeddingCache
from community_search.embedding.models import EmbeddingVector
from community_search.errors import InputError, ProviderTransientError
from community_search.gateway.resilient import ResilientGateway
from community_search.llm.base import LLMProvider
from community_search.query.models import normalize_query

logger = logging.getLogger(__name__)


class EmbeddingGateway:
    """Turns text into a validated, model-tagged EmbeddingVector."""

    def __init__(
        self,
        gateway: ResilientGateway,
        config: EmbeddingConfig | None = None,
        cache: EmbeddingCache | None = None,
    ) -> None:
        """Initialize embedding gateway.

        Args:
            gateway: Resilient chain of embedding-capable providers
            config: Expected dimension and cache policy
            cache: Query vector cache, built from ``config`` if not provided
        """
        self.gateway = gateway
        self.config = config or EmbeddingConfig()
        self.cache = cache or EmbeddingCache(
            ttl=self.config.cache_ttl,
            max_size=self.config.cache_max_size,
        )

    @property
    def preferred_model(self) -> str:
        """Embedding model of the primary provider."""
        return self.gateway.providers[0].embedding_model or self.gateway.providers[0].name

    @property
    def fallback_models(self) -> list[str]:
        """Embedding models of the fallback providers, in failover order."""
        preferred = self.preferred_model
        models = []
        for provider in self.gateway.providers[1:]:
            model = provider.embedding_model or provider.name
            if model != preferred and model not in models:
                models.append(model)
        return models

    async def embed(self, text: str, use_cache: bool = True) -> EmbeddingVector:
        """Embed a single text.

        Args:
            text: Text to embed; query text is normalized before embedding
            use_cache: Reuse a vector computed for the same text within the TTL

        Returns:
            EmbeddingVector tagged with its provider and model

        Raises:
            InputError: If the text is empty
            GatewayError: If no provider produced a valid vector
        """
        normalized = normalize_query(text)
        if not normalized:
            raise InputError("Cannot embed empty text")

        if not use_cache:
            return await self._generate(normalized)
        return await self.cache.get_or_compute(
            normalized,
            self.preferred_model,
            lambda: self._generate(normalized),
            fallback_models=self.fallback_models,
        )

    async def embed_many(
        self,
        texts: list[str],
        return_exceptions: bool = False,
    ) -> list[EmbeddingVector | BaseException]:
        """Embed a batch of documents concurrently, bypassing the cache.

        Args:
            texts: Texts to embed
            return_exceptions: Return failures in place instead of raising the first

        Returns:
            Vectors (or exceptions) in input order
        """
        return await asyncio.gather(
            *(self._generate(text) for text in texts),
            return_exceptions=return_exceptions,
        )

    async def _generate(self, text: str) -> EmbeddingVector:
        async def operation(provider: LLMProvider) -> EmbeddingVector:
            result = await provider.generate_embedding(text)
            return self._validate(result.embedding, provider.name, result.model)

        vector = await self.gateway.call(operation)
        logger.debug(f"Embedded {len(text)} chars with {vector.provider}/{vector.model}")
        return vector

    def _validate(self, values: list[float], provider: str, model: str) -> EmbeddingVector:
        if len(values) != self.config.dimensions:
            raise ProviderTransientError(
                f"{provider} returned {len(values)} dimensions, expected {self.config.dimensions}",
                provider,
            )
        if not all(math.isfinite(v) for v in values):
            raise ProviderTransientError(f"{provider} returned non-finite values", provider)
        return EmbeddingVector(values=values, provider=provider, model=model)
