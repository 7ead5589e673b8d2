"""Configuration management using pydantic-settings."""

from enum import Enum

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Supported inference providers."""

    DEEPINFRA = "deepinfra"
    GEMINI = "gemini"
    OPENAI = "openai"
    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class GatewayConfig(BaseModel):
    """Retry, timeout and circuit-breaker policy shared by provider gateways."""

    timeout: float = 15.0
    max_retries: int = 3
    retry_delay: float = 1.0
    exponential_backoff: bool = True
    failure_threshold: int = 5
    reset_timeout: float = 60.0


class EmbeddingConfig(BaseModel):
    """Embedding generation and query-vector cache settings."""

    dimensions: int = 768
    cache_ttl: float = 300.0
    cache_max_size: int = 1000


class SearchConfig(BaseModel):
    """Hybrid ranking weights and response thresholds."""

    semantic_weight: float = 0.7
    lexical_weight: float = 0.3
    exact_match_boost: float = 1.0
    clarification_threshold: float = 0.3
    candidate_multiplier: int = 2
    min_candidates: int = 20
    default_page_size: int = 10
    max_page_size: int = 50
    request_deadline: float = 10.0
    # Share of the request deadline each retrieval path may use, leaving
    # time for profile fetch and ranking after a path is cut
    retrieval_share: float = Field(default=0.6, gt=0.0, lt=1.0)
    max_query_length: int = 500

    @property
    def retrieval_deadline(self) -> float:
        return self.request_deadline * self.retrieval_share


class ConversationConfig(BaseModel):
    """In-memory conversation session limits."""

    max_history: int = Field(default=5, ge=1)
    session_timeout: float = 30 * 60
    eviction_interval: float = 10 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Provider order (first entry is the primary, the rest are fallbacks)
    understanding_providers: str = Field(
        default="deepinfra,gemini",
        description="Comma-separated provider order for query understanding",
    )
    embedding_providers: str = Field(
        default="gemini,deepinfra",
        description="Comma-separated provider order for embeddings",
    )

    # DeepInfra Configuration
    deepinfra_api_key: str | None = Field(default=None, description="DeepInfra API key")
    deepinfra_model: str = Field(
        default="meta-llama/Meta-Llama-3.1-8B-Instruct",
        description="DeepInfra inference model",
    )
    deepinfra_embedding_model: str = Field(
        default="BAAI/bge-base-en-v1.5",
        description="DeepInfra embedding model",
    )

    # Google Gemini Configuration
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash", description="Gemini model to use")
    gemini_embedding_model: str = Field(
        default="models/text-embedding-004",
        description="Gemini embedding model",
    )

    # OpenAI Configuration
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI chat model")
    openai_embedding_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model",
    )

    # Ollama Configuration
    ollama_host: str = Field(default="http://localhost:11434", description="Ollama API host URL")
    ollama_model: str = Field(default="llama3.2", description="Ollama model to use")
    ollama_embedding_model: str = Field(
        default="nomic-embed-text",
        description="Ollama embedding model to use",
    )

    # Anthropic Configuration
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Anthropic model to use",
    )

    # Gateway resilience
    provider_timeout: float = Field(default=15.0, description="Per-call provider timeout in seconds")
    provider_max_retries: int = Field(default=3, description="Retries per provider before failover")
    provider_retry_delay: float = Field(default=1.0, description="Base retry delay in seconds")
    provider_exponential_backoff: bool = Field(
        default=True,
        description="Use exponential instead of fixed retry delay",
    )
    circuit_failure_threshold: int = Field(
        default=5,
        description="Consecutive failures that open a provider circuit",
    )
    circuit_reset_timeout: float = Field(
        default=60.0,
        description="Seconds an open circuit waits before a trial call",
    )

    # Embeddings
    embedding_dimensions: int = Field(default=768, description="Expected embedding dimension")
    embedding_cache_ttl: float = Field(default=300.0, description="Query embedding cache TTL in seconds")
    embedding_cache_size: int = Field(default=1000, description="Maximum cached query embeddings")

    # Search
    semantic_weight: float = Field(default=0.7, description="Weight of the semantic score")
    lexical_weight: float = Field(default=0.3, description="Weight of the lexical score")
    clarification_threshold: float = Field(
        default=0.3,
        description="Confidence below which a clarification is requested",
    )
    request_deadline: float = Field(default=10.0, description="Overall search deadline in seconds")
    retrieval_share: float = Field(
        default=0.6,
        gt=0.0,
        lt=1.0,
        description="Share of the request deadline each retrieval path may use",
    )
    max_query_length: int = Field(default=500, description="Maximum accepted query length")

    # Conversation
    conversation_max_history: int = Field(default=5, ge=1, description="Turns kept per session")
    conversation_session_timeout: float = Field(
        default=1800.0,
        description="Idle seconds before a session expires",
    )
    conversation_eviction_interval: float = Field(
        default=600.0,
        description="Seconds between sweeps of expired sessions",
    )

    # ChromaDB Configuration
    chroma_host: str = Field(default="localhost", description="ChromaDB host")
    chroma_port: int = Field(default=8000, description="ChromaDB port")
    chroma_collection: str = Field(
        default="member_profiles",
        description="Collection holding membership profiles",
    )

    # Application Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )

    @property
    def chroma_url(self) -> str:
        """Get the full ChromaDB URL."""
        return f"http://{self.chroma_host}:{self.chroma_port}"

    @property
    def understanding_provider_order(self) -> list[LLMProvider]:
        """Parsed provider order for query understanding."""
        return _parse_provider_list(self.understanding_providers)

    @property
    def embedding_provider_order(self) -> list[LLMProvider]:
        """Parsed provider order for embeddings."""
        return _parse_provider_list(self.embedding_providers)

    def gateway_config(self) -> GatewayConfig:
        return GatewayConfig(
            timeout=self.provider_timeout,
            max_retries=self.provider_max_retries,
            retry_delay=self.provider_retry_delay,
            exponential_backoff=self.provider_exponential_backoff,
            failure_threshold=self.circuit_failure_threshold,
            reset_timeout=self.circuit_reset_timeout,
        )

    def embedding_config(self) -> EmbeddingConfig:
        return EmbeddingConfig(
            dimensions=self.embedding_dimensions,
            cache_ttl=self.embedding_cache_ttl,
            cache_max_size=self.embedding_cache_size,
        )

    def search_config(self) -> SearchConfig:
        return SearchConfig(
            semantic_weight=self.semantic_weight,
            lexical_weight=self.lexical_weight,
            clarification_threshold=self.clarification_threshold,
            request_deadline=self.request_deadline,
            retrieval_share=self.retrieval_share,
            max_query_length=self.max_query_length,
        )

    def conversation_config(self) -> ConversationConfig:
        return ConversationConfig(
            max_history=self.conversation_max_history,
            session_timeout=self.conversation_session_timeout,
            eviction_interval=self.conversation_eviction_interval,
        )

    def validate_provider_config(self) -> None:
        """Validate that required API keys are set for every configured provider."""
        configured = set(self.understanding_provider_order) | set(self.embedding_provider_order)
        if not self.understanding_provider_order:
            raise ValueError("At least one understanding provider must be configured")
        if not self.embedding_provider_order:
            raise ValueError("At least one embedding provider must be configured")
        if LLMProvider.ANTHROPIC in self.embedding_provider_order:
            raise ValueError("Anthropic does not provide embeddings")

        if LLMProvider.DEEPINFRA in configured and not self.deepinfra_api_key:
            raise ValueError("DeepInfra API key is required when using DeepInfra provider")
        if LLMProvider.GEMINI in configured and not self.gemini_api_key:
            raise ValueError("Gemini API key is required when using Gemini provider")
        if LLMProvider.OPENAI in configured and not self.openai_api_key:
            raise ValueError("OpenAI API key is required when using OpenAI provider")
        if LLMProvider.ANTHROPIC in configured and not self.anthropic_api_key:
            raise ValueError("Anthropic API key is required when using Anthropic provider")


def _parse_provider_list(raw: str) -> list[LLMProvider]:
    providers: list[LLMProvider] = []
    for name in raw.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            provider = LLMProvider(name)
        except ValueError:
            raise ValueError(f"Unknown LLM provider: {name}")
        if provider not in providers:
            providers.append(provider)
    return providers


# Global settings instance - lazy loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
