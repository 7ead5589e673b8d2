"""Search service: wires understanding, ranking, composition and conversation history."""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from community_search.config import Settings, get_settings
from community_search.embedding.chroma_store import ChromaRelevanceStore
from community_search.embedding.gateway import EmbeddingGateway
from community_search.embedding.store import RelevanceStore
from community_search.errors import SearchUnavailableError
from community_search.gateway.resilient import ResilientGateway
from community_search.gateway.understanding import LanguageUnderstandingGateway
from community_search.llm.factory import create_embedding_providers, create_understanding_providers
from community_search.query.conversation import ConversationStore, InMemoryConversationStore
from community_search.query.extractor import EntityExtractor
from community_search.query.models import ConversationTurn, Query, QueryOptions
from community_search.query.orchestrator import QueryUnderstandingOrchestrator
from community_search.response.composer import ResponseComposer
from community_search.response.models import ResponsePayload
from community_search.search.engine import HybridRelevanceEngine
from community_search.search.models import Pagination

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the service's standard format."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class CommunitySearchService:
    """Handles one natural-language directory query end to end."""

    def __init__(
        self,
        orchestrator: QueryUnderstandingOrchestrator,
        engine: HybridRelevanceEngine,
        composer: ResponseComposer,
        conversations: ConversationStore,
        gateways: list[ResilientGateway] | None = None,
        eviction_interval: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize search service.

        Args:
            orchestrator: Query understanding orchestrator
            engine: Hybrid relevance engine
            composer: Response composer
            conversations: Conversation history store
            gateways: Provider gateways owned by the service, closed on shutdown
            eviction_interval: Minimum seconds between sweeps of expired sessions
            clock: Time source for the eviction schedule
        """
        self.orchestrator = orchestrator
        self.engine = engine
        self.composer = composer
        self.conversations = conversations
        self.gateways = gateways or []
        self.eviction_interval = eviction_interval
        self._clock = clock
        self._last_eviction = clock()

    async def search(
        self,
        text: str,
        identity: str,
        options: QueryOptions | None = None,
    ) -> ResponsePayload:
        """Validate raw input and handle it as a query."""
        query = Query.create(text, identity, options, max_length=self.engine.config.max_query_length)
        return await self.handle(query)

    async def handle(self, query: Query) -> ResponsePayload:
        """Understand, rank and compose a response for ``query``.

        Args:
            query: Validated query

        Returns:
            ResponsePayload, a clarification when confidence is too low

        Raises:
            SearchUnavailableError: If no retrieval path could run within the deadline
            StoreUnavailableError: If member profiles could not be fetched
        """
        start_time = time.time()
        logger.info(f"Processing query from {query.identity}: {query.text[:100]}...")

        await self._evict_idle_sessions()
        context = await self.conversations.build_context(query.identity)
        understanding = await self.orchestrator.understand(query.text, context)
        logger.info(
            f"Understood as {understanding.intent.value} "
            f"(source: {understanding.source}, confidence: {understanding.confidence:.2f})"
        )

        relevance = None
        if not self.composer.needs_clarification(understanding):
            config = self.engine.config
            pagination = Pagination(
                page=query.options.page,
                page_size=min(query.options.max_results, config.max_page_size),
            )
            try:
                relevance = await asyncio.wait_for(
                    self.engine.search(understanding, pagination=pagination),
                    timeout=config.request_deadline,
                )
            except asyncio.TimeoutError:
                logger.error(f"Search exceeded the {config.request_deadline}s request deadline")
                raise SearchUnavailableError(
                    f"Search did not complete within {config.request_deadline}s"
                )

        payload = self.composer.compose(
            query.text,
            understanding,
            relevance,
            query.options,
            processing_time=round(time.time() - start_time, 3),
        )

        # Clarifications are recorded too, so the follow-up has context
        await self.conversations.append(
            query.identity,
            ConversationTurn(
                query=query.text,
                intent=understanding.intent,
                entities=understanding.entities,
                result_count=relevance.total_count if relevance else 0,
                timestamp=datetime.now(timezone.utc),
            ),
        )

        logger.info(
            f"Query processed in {payload.processing_time:.2f}s - "
            f"{len(payload.results)} results, clarification: {payload.needs_clarification}"
        )
        return payload

    async def _evict_idle_sessions(self) -> None:
        now = self._clock()
        if now - self._last_eviction < self.eviction_interval:
            return
        self._last_eviction = now
        evicted = await self.conversations.evict_idle()
        logger.debug(f"Session sweep removed {evicted}, {self.conversations.active_session_count()} active")

    async def health_check(self) -> dict[str, Any]:
        """Check health of the store and every provider."""
        health: dict[str, Any] = {"store": await self.engine.store.health_check()}
        for gateway in self.gateways:
            for provider in gateway.providers:
                try:
                    health[f"{gateway.name}:{provider.name}"] = await provider.health_check()
                except Exception as e:
                    logger.error(f"Health check failed for {provider.name}: {e}")
                    health[f"{gateway.name}:{provider.name}"] = False
            health[f"{gateway.name}_circuits"] = gateway.status()
        health["active_sessions"] = self.conversations.active_session_count()
        health["overall"] = health["store"] and any(
            v for k, v in health.items() if ":" in k
        )
        return health

    async def aclose(self) -> None:
        for gateway in self.gateways:
            await gateway.aclose()


def build_search_service(
    settings: Settings | None = None,
    store: RelevanceStore | None = None,
) -> CommunitySearchService:
    """Build a fully wired search service from settings.

    Args:
        settings: Application settings, defaults to global settings
        store: Relevance Store, defaults to the configured ChromaDB collection

    Returns:
        CommunitySearchService

    Raises:
        ValueError: If provider configuration is invalid
    """
    settings = settings or get_settings()
    settings.validate_provider_config()

    gateway_config = settings.gateway_config()
    understanding_gateway = ResilientGateway(
        "understanding", create_understanding_providers(settings), gateway_config
    )
    embedding_gateway = ResilientGateway(
        "embedding", create_embedding_providers(settings), gateway_config
    )

    store = store or ChromaRelevanceStore(settings=settings)
    search_config = settings.search_config()

    service = CommunitySearchService(
        orchestrator=QueryUnderstandingOrchestrator(
            EntityExtractor(),
            LanguageUnderstandingGateway(understanding_gateway),
        ),
        engine=HybridRelevanceEngine(
            store,
            EmbeddingGateway(embedding_gateway, settings.embedding_config()),
            search_config,
        ),
        composer=ResponseComposer(search_config),
        conversations=InMemoryConversationStore(settings.conversation_config()),
        gateways=[understanding_gateway, embedding_gateway],
        eviction_interval=settings.conversation_config().eviction_interval,
    )
    logger.info(f"Search service ready ({settings.environment.value} mode)")
    return service
