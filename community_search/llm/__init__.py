"""Inference providers module."""

from community_search.llm.anthropic import AnthropicConfig, AnthropicProvider
from community_search.llm.base import EmbeddingResult, LLMProvider, LLMProviderFactory, ResponseResult
from community_search.llm.deepinfra import DeepInfraConfig, DeepInfraProvider
from community_search.llm.factory import (
    create_embedding_providers,
    create_llm_provider,
    create_understanding_providers,
)
from community_search.llm.gemini import GeminiConfig, GeminiProvider
from community_search.llm.ollama import OllamaConfig, OllamaProvider
from community_search.llm.openai import OpenAIConfig, OpenAIProvider

# Register all providers
LLMProviderFactory.register("deepinfra", DeepInfraProvider)
LLMProviderFactory.register("gemini", GeminiProvider)
LLMProviderFactory.register("openai", OpenAIProvider)
LLMProviderFactory.register("ollama", OllamaProvider)
LLMProviderFactory.register("anthropic", AnthropicProvider)

__all__ = [
    "AnthropicConfig",
    "AnthropicProvider",
    "DeepInfraConfig",
    "DeepInfraProvider",
    "EmbeddingResult",
    "GeminiConfig",
    "GeminiProvider",
    "LLMProvider",
    "LLMProviderFactory",
    "OllamaConfig",
    "OllamaProvider",
    "OpenAIConfig",
    "OpenAIProvider",
    "ResponseResult",
    "create_embedding_providers",
    "create_llm_provider",
    "create_understanding_providers",
]
