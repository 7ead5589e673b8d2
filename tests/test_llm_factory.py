"""Tests for LLM factory functions."""

from unittest.mock import patch

import pytest

from community_search.config import LLMProvider as LLMProviderEnum
from community_search.config import Settings
from community_search.llm.deepinfra import DeepInfraProvider
from community_search.llm.factory import (
    create_embedding_providers,
    create_llm_provider,
    create_understanding_providers,
)
from community_search.llm.gemini import GeminiProvider
from community_search.llm.ollama import OllamaProvider
from community_search.llm.openai import OpenAIProvider


class TestLLMFactory:
    """Test LLM factory functions."""

    @patch("community_search.llm.factory.get_settings")
    def test_create_ollama_provider(self, mock_get_settings):
        """Test creating Ollama provider from global settings."""
        mock_get_settings.return_value = Settings(ollama_host="http://test:11434", ollama_model="llama3.2")

        provider = create_llm_provider(LLMProviderEnum.OLLAMA)
        assert isinstance(provider, OllamaProvider)
        assert provider.config.host == "http://test:11434"
        assert provider.config.model == "llama3.2"

    def test_create_openai_provider(self):
        """Test creating OpenAI provider."""
        settings = Settings(openai_api_key="test-key", provider_timeout=7.0)

        provider = create_llm_provider(LLMProviderEnum.OPENAI, settings)
        assert isinstance(provider, OpenAIProvider)
        assert provider.config.api_key == "test-key"
        assert provider.config.timeout == 7.0

    def test_create_openai_provider_missing_key(self):
        """Test creating OpenAI provider without API key."""
        settings = Settings(openai_api_key=None)

        with pytest.raises(ValueError, match="OpenAI API key is required"):
            create_llm_provider(LLMProviderEnum.OPENAI, settings)

    def test_create_deepinfra_provider(self):
        """Test creating DeepInfra provider with its embedding model."""
        settings = Settings(deepinfra_api_key="test-key")

        provider = create_llm_provider(LLMProviderEnum.DEEPINFRA, settings)
        assert isinstance(provider, DeepInfraProvider)
        assert provider.embedding_model == "BAAI/bge-base-en-v1.5"

    def test_understanding_chain_keeps_order(self):
        """Test the understanding chain follows configured order."""
        settings = Settings(
            understanding_providers="openai,ollama",
            openai_api_key="test-key",
        )

        providers = create_understanding_providers(settings)
        assert [p.name for p in providers] == ["openai", "ollama"]

    def test_embedding_chain_rejects_anthropic(self):
        """Test providers without embeddings cannot join the embedding chain."""
        settings = Settings(embedding_providers="ollama,anthropic", anthropic_api_key="test-key")

        with pytest.raises(ValueError, match="does not support embeddings"):
            create_embedding_providers(settings)

    def test_create_gemini_provider(self):
        """Test creating Gemini provider with its embedding model."""
        settings = Settings(gemini_api_key="test-key")

        provider = create_llm_provider(LLMProviderEnum.GEMINI, settings)
        assert isinstance(provider, GeminiProvider)
        assert provider.embedding_model == "models/text-embedding-004"
