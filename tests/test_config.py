"""Tests for configuration module."""

import pytest

from community_search.config import ConversationConfig, Environment, LLMProvider, SearchConfig, Settings


def test_default_settings():
    """Test that default settings are loaded correctly."""
    settings = Settings()

    assert settings.understanding_provider_order == [LLMProvider.DEEPINFRA, LLMProvider.GEMINI]
    assert settings.embedding_provider_order == [LLMProvider.GEMINI, LLMProvider.DEEPINFRA]
    assert settings.environment == Environment.DEVELOPMENT
    assert settings.chroma_host == "localhost"
    assert settings.chroma_port == 8000


def test_chroma_url():
    """Test ChromaDB URL construction."""
    settings = Settings(chroma_host="chromadb", chroma_port=8080)

    assert settings.chroma_url == "http://chromadb:8080"


def test_provider_order_parsing():
    """Test provider lists are normalised and de-duplicated."""
    settings = Settings(understanding_providers=" OpenAI, ollama,openai,")

    assert settings.understanding_provider_order == [LLMProvider.OPENAI, LLMProvider.OLLAMA]


def test_unknown_provider():
    """Test unknown provider names are rejected."""
    settings = Settings(understanding_providers="ollama,mystery")

    with pytest.raises(ValueError, match="Unknown LLM provider: mystery"):
        settings.understanding_provider_order


def test_validate_openai_config():
    """Test OpenAI configuration validation."""
    settings = Settings(
        understanding_providers="openai",
        embedding_providers="ollama",
        openai_api_key=None,
    )

    with pytest.raises(ValueError, match="OpenAI API key is required"):
        settings.validate_provider_config()


def test_valid_openai_config():
    """Test valid OpenAI configuration."""
    settings = Settings(
        understanding_providers="openai",
        embedding_providers="openai,ollama",
        openai_api_key="sk-test-key",
    )

    # Should not raise
    settings.validate_provider_config()


def test_anthropic_cannot_embed():
    """Test Anthropic is rejected in the embedding chain."""
    settings = Settings(
        understanding_providers="anthropic",
        embedding_providers="anthropic",
        anthropic_api_key="test-key",
    )

    with pytest.raises(ValueError, match="Anthropic does not provide embeddings"):
        settings.validate_provider_config()


def test_empty_provider_chain():
    """Test an empty provider chain is rejected."""
    settings = Settings(understanding_providers=" , ", embedding_providers="ollama")

    with pytest.raises(ValueError, match="At least one understanding provider"):
        settings.validate_provider_config()


def test_component_configs():
    """Test component configs are built from flat settings."""
    settings = Settings(
        provider_timeout=5.0,
        provider_max_retries=1,
        circuit_failure_threshold=2,
        semantic_weight=0.6,
        lexical_weight=0.4,
        clarification_threshold=0.5,
        embedding_cache_ttl=60.0,
        conversation_max_history=3,
    )

    gateway = settings.gateway_config()
    assert gateway.timeout == 5.0
    assert gateway.max_retries == 1
    assert gateway.failure_threshold == 2

    search = settings.search_config()
    assert search.semantic_weight == 0.6
    assert search.lexical_weight == 0.4
    assert search.clarification_threshold == 0.5
    assert search.max_page_size == 50

    assert settings.embedding_config().cache_ttl == 60.0
    assert settings.conversation_config().max_history == 3


def test_history_must_keep_at_least_one_turn():
    """Test that a zero history limit is refused rather than read as unbounded."""
    with pytest.raises(ValueError):
        ConversationConfig(max_history=0)

    with pytest.raises(ValueError):
        Settings(conversation_max_history=0)


def test_retrieval_budget_leaves_room_for_ranking():
    """Test that each retrieval path finishes before the request deadline."""
    config = SearchConfig(request_deadline=10.0)

    assert config.retrieval_deadline == pytest.approx(6.0)
    assert Settings(retrieval_share=0.5).search_config().retrieval_deadline == pytest.approx(5.0)
