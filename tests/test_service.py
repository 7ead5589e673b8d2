"""End-to-end tests for the search service."""

import asyncio
import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from community_search.config import ConversationConfig, EmbeddingConfig, GatewayConfig, SearchConfig, Settings
from community_search.embedding.gateway import EmbeddingGateway
from community_search.errors import InputError, ProviderTransientError, SearchUnavailableError
from community_search.gateway.resilient import ResilientGateway
from community_search.gateway.understanding import LanguageUnderstandingGateway
from community_search.llm.ollama import OllamaProvider
from community_search.query.conversation import InMemoryConversationStore
from community_search.query.extractor import EntityExtractor
from community_search.query.models import ExtractedEntities, Intent, Query, UnderstandingResult
from community_search.query.orchestrator import QueryUnderstandingOrchestrator
from community_search.response.composer import CLARIFICATION_EXAMPLES, ResponseComposer
from community_search.search.engine import HybridRelevanceEngine
from community_search.service import LOG_FORMAT, CommunitySearchService, build_search_service, configure_logging
from tests.conftest import FakeProvider

FAST = GatewayConfig(timeout=1.0, max_retries=0, retry_delay=0.0)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class SlowEmbedder(FakeProvider):
    """Embedding provider that stalls before answering."""

    def __init__(self, name: str, delay: float) -> None:
        super().__init__(name)
        self.delay = delay

    async def generate_embedding(self, text: str):
        await asyncio.sleep(self.delay)
        return await super().generate_embedding(text)


def build_service(
    store,
    llm: FakeProvider,
    embedder: FakeProvider | None = None,
    conversations: InMemoryConversationStore | None = None,
    **kwargs,
) -> CommunitySearchService:
    understanding = ResilientGateway("understanding", [llm], FAST)
    embeddings = ResilientGateway("embedding", [embedder or FakeProvider("embed")], FAST)
    config = SearchConfig()
    return CommunitySearchService(
        orchestrator=QueryUnderstandingOrchestrator(
            EntityExtractor(current_year=2025), LanguageUnderstandingGateway(understanding)
        ),
        engine=HybridRelevanceEngine(store, EmbeddingGateway(embeddings, EmbeddingConfig()), config),
        composer=ResponseComposer(config),
        conversations=conversations or InMemoryConversationStore(),
        gateways=[understanding, embeddings],
        **kwargs,
    )


class TestSearchScenarios:
    """Test the full pipeline from query text to response payload."""

    @pytest.mark.asyncio
    async def test_structured_query_uses_fast_path(self, store):
        llm = FakeProvider("llm")
        service = build_service(store, llm)

        payload = await service.search("machine learning 2018 passout Bangalore", identity="+919800000001")

        assert llm.response_calls == []
        assert payload.source == "regex"
        assert payload.needs_clarification is False
        assert [r.membership_id for r in payload.results] == ["m-001"]
        assert payload.pagination.total_results == 1
        assert len(payload.suggestions) == 3

    @pytest.mark.asyncio
    async def test_conversational_query_uses_llm(self, store):
        answer = json.dumps(
            {
                "intent": "find_service",
                "entities": {"skills": ["security", "networking"]},
                "confidence": 0.9,
                "normalized_query": "security networking",
            }
        )
        llm = FakeProvider("llm", responses=[answer])
        service = build_service(store, llm)

        payload = await service.search(
            "can you find me someone who does either security or networking", identity="+919800000002"
        )

        assert len(llm.response_calls) == 1
        assert payload.source == "llm"
        assert payload.intent == Intent.FIND_SERVICE
        assert payload.results[0].membership_id == "m-002"

    @pytest.mark.asyncio
    async def test_low_confidence_returns_clarification_and_records_turn(self, store):
        orchestrator = MagicMock()
        orchestrator.understand = AsyncMock(
            return_value=UnderstandingResult(
                intent=Intent.OTHER,
                entities=ExtractedEntities(),
                confidence=0.2,
                normalized_query="hmm stuff",
                source="llm",
            )
        )
        engine = MagicMock()
        engine.config = SearchConfig()
        engine.search = AsyncMock()
        conversations = InMemoryConversationStore()
        service = CommunitySearchService(orchestrator, engine, ResponseComposer(), conversations)

        payload = await service.handle(Query.create("hmm stuff", identity="caller"))

        engine.search.assert_not_awaited()
        assert payload.needs_clarification is True
        assert payload.results == []
        assert payload.suggestions == CLARIFICATION_EXAMPLES

        context = await conversations.build_context("caller")
        assert len(context.turns) == 1
        assert context.last_turn.query == "hmm stuff"
        assert context.last_turn.result_count == 0

    @pytest.mark.asyncio
    async def test_follow_up_receives_previous_turn(self, store):
        follow_up = json.dumps(
            {
                "intent": "find_member",
                "entities": {"skills": ["machine learning"], "location": "Mumbai"},
                "confidence": 0.85,
                "normalized_query": "machine learning mumbai",
            }
        )
        llm = FakeProvider("llm", responses=[follow_up])
        service = build_service(store, llm)

        await service.search("machine learning 2018 passout Bangalore", identity="caller")
        payload = await service.search("what about Mumbai?", identity="caller")

        context = llm.response_calls[0]["context"]
        assert "machine learning 2018 passout Bangalore" in context
        assert [r.membership_id for r in payload.results] == ["m-004"]

    @pytest.mark.asyncio
    async def test_llm_outage_degrades_to_regex(self, store):
        llm = FakeProvider("llm", responses=[ProviderTransientError("down", "llm", 503)])
        service = build_service(store, llm)

        payload = await service.search("please find machine learning people in Bangalore", identity="caller")

        assert payload.source == "regex"
        assert payload.degraded is True
        assert payload.results

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self, store):
        service = build_service(store, FakeProvider("llm"))

        with pytest.raises(InputError):
            await service.search("   ", identity="caller")

    @pytest.mark.asyncio
    async def test_request_deadline(self, store):
        async def slow_search(*args, **kwargs):
            await asyncio.sleep(1)

        service = build_service(store, FakeProvider("llm"))
        service.engine.config = SearchConfig(request_deadline=0.05)
        service.engine.search = slow_search

        with pytest.raises(SearchUnavailableError):
            await service.search("machine learning 2018 passout Bangalore", identity="caller")

    @pytest.mark.asyncio
    async def test_hung_embedding_provider_yields_lexical_results(self, store):
        service = build_service(store, FakeProvider("llm"), embedder=SlowEmbedder("embed", delay=0.5))
        service.engine.config = SearchConfig(request_deadline=0.2)

        payload = await service.search("machine learning 2018 passout Bangalore", identity="caller")

        assert [r.membership_id for r in payload.results] == ["m-001"]
        assert payload.degraded is True
        assert "semantic retrieval unavailable" in payload.degraded_reasons

    @pytest.mark.asyncio
    async def test_idle_sessions_are_swept(self, store):
        clock = FakeClock()
        conversations = InMemoryConversationStore(ConversationConfig(session_timeout=60), clock=clock)
        service = build_service(
            store, FakeProvider("llm"), conversations=conversations, eviction_interval=600, clock=clock
        )
        await service.search("machine learning 2018 passout Bangalore", identity="first")

        clock.now += 300
        await service.search("machine learning 2018 passout Bangalore", identity="second")
        assert conversations.active_session_count() == 2

        clock.now += 400
        await service.search("machine learning 2018 passout Bangalore", identity="third")
        assert conversations.active_session_count() == 1

    @pytest.mark.asyncio
    async def test_health_check_and_close(self, store):
        llm = FakeProvider("llm")
        service = build_service(store, llm)

        health = await service.health_check()
        await service.aclose()

        assert health["store"] is True
        assert health["understanding:llm"] is True
        assert health["overall"] is True
        assert llm.closed is True


class TestBuildSearchService:
    """Test wiring from settings."""

    @pytest.mark.asyncio
    async def test_builds_from_settings(self, store):
        settings = Settings(understanding_providers="ollama", embedding_providers="ollama")

        service = build_search_service(settings, store=store)

        assert service.engine.store is store
        assert isinstance(service.gateways[0].providers[0], OllamaProvider)
        assert service.engine.config.semantic_weight == 0.7
        await service.aclose()

    def test_missing_key_is_rejected(self, store):
        settings = Settings(understanding_providers="openai", embedding_providers="ollama", openai_api_key=None)

        with pytest.raises(ValueError, match="OpenAI API key is required"):
            build_search_service(settings, store=store)


class TestConfigureLogging:
    """Test logging setup."""

    def test_uses_standard_format(self):
        with patch("community_search.service.logging.basicConfig") as mock_basic_config:
            configure_logging("debug")

        mock_basic_config.assert_called_once_with(level=logging.DEBUG, format=LOG_FORMAT)
