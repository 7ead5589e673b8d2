"""Factory for creating inference providers from configuration."""

import logging

from community_search.config import LLMProvider as LLMProviderEnum
from community_search.config import Settings, get_settings
from community_search.llm.base import LLMProvider, LLMProviderFactory

logger = logging.getLogger(__name__)


def create_llm_provider(
    provider_name: str | LLMProviderEnum,
    settings: Settings | None = None,
) -> LLMProvider:
    """Create a single provider from configuration.

    Args:
        provider_name: Provider to build
        settings: Settings to read keys and models from, defaults to global settings

    Returns:
        Configured LLM provider instance

    Raises:
        ValueError: If provider configuration is invalid
    """
    settings = settings or get_settings()
    timeout = settings.provider_timeout

    if provider_name == LLMProviderEnum.DEEPINFRA:
        from community_search.llm.deepinfra import DeepInfraConfig

        if not settings.deepinfra_api_key:
            raise ValueError("DeepInfra API key is required")

        config = DeepInfraConfig(
            api_key=settings.deepinfra_api_key,
            model=settings.deepinfra_model,
            embedding_model=settings.deepinfra_embedding_model,
            timeout=timeout,
        )
        return LLMProviderFactory.create("deepinfra", config=config)

    elif provider_name == LLMProviderEnum.GEMINI:
        from community_search.llm.gemini import GeminiConfig

        if not settings.gemini_api_key:
            raise ValueError("Gemini API key is required")

        config = GeminiConfig(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            embedding_model=settings.gemini_embedding_model,
            timeout=timeout,
        )
        return LLMProviderFactory.create("gemini", config=config)

    elif provider_name == LLMProviderEnum.OPENAI:
        from community_search.llm.openai import OpenAIConfig

        if not settings.openai_api_key:
            raise ValueError("OpenAI API key is required")

        config = OpenAIConfig(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            embedding_model=settings.openai_embedding_model,
            embedding_dimensions=settings.embedding_dimensions,
            timeout=timeout,
        )
        return LLMProviderFactory.create("openai", config=config)

    elif provider_name == LLMProviderEnum.OLLAMA:
        from community_search.llm.ollama import OllamaConfig

        config = OllamaConfig(
            host=settings.ollama_host,
            model=settings.ollama_model,
            embedding_model=settings.ollama_embedding_model,
            timeout=timeout,
        )
        return LLMProviderFactory.create("ollama", config=config)

    elif provider_name == LLMProviderEnum.ANTHROPIC:
        from community_search.llm.anthropic import AnthropicConfig

        if not settings.anthropic_api_key:
            raise ValueError("Anthropic API key is required")

        config = AnthropicConfig(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            timeout=timeout,
        )
        return LLMProviderFactory.create("anthropic", config=config)

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")


def create_understanding_providers(settings: Settings | None = None) -> list[LLMProvider]:
    """Create the ordered provider chain used for query understanding.

    Args:
        settings: Settings to read provider order from

    Returns:
        Providers, primary first
    """
    settings = settings or get_settings()
    providers = [create_llm_provider(name, settings) for name in settings.understanding_provider_order]
    logger.info(f"Understanding providers: {[p.name for p in providers]}")
    return providers


def create_embedding_providers(settings: Settings | None = None) -> list[LLMProvider]:
    """Create the ordered provider chain used for embeddings.

    Providers without embedding support are rejected rather than silently skipped.

    Args:
        settings: Settings to read provider order from

    Returns:
        Providers, primary first

    Raises:
        ValueError: If a configured provider cannot produce embeddings
    """
    settings = settings or get_settings()
    providers = []
    for name in settings.embedding_provider_order:
        provider = create_llm_provider(name, settings)
        if not provider.supports_embeddings:
            raise ValueError(f"Provider '{provider.name}' does not support embeddings")
        providers.append(provider)
    logger.info(f"Embedding providers: {[p.name for p in providers]}")
    return providers
