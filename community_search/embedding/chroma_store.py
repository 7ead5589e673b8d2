"""Relevance Store backed by ChromaDB (vectors) and BM25 (lexical)."""

import asyncio
import logging
from typing import Any

import chromadb
from chromadb.config import Settings as ChromaSettings
from rank_bm25 import BM25Okapi

from community_search.config import Settings, get_settings
from community_search.embedding.models import EmbeddingVector, LexicalHit, MemberProfile, VectorHit
from community_search.embedding.store import RelevanceStore, tokenize
from community_search.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class ChromaRelevanceStore(RelevanceStore):
    """ChromaDB collection of member profiles with an in-process BM25 index.

    Chroma has no ranked full-text search, so the lexical index is built from
    the collection's documents on first use and rebuilt after every upsert.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        collection_name: str | None = None,
        client: Any | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host (optional, uses config if not provided)
            port: ChromaDB port (optional, uses config if not provided)
            collection_name: Collection holding member profiles
            client: Pre-built Chroma client, e.g. ``chromadb.EphemeralClient()``
            settings: Settings to fall back on
        """
        if client is None or collection_name is None:
            settings = settings or get_settings()
            host = host or settings.chroma_host
            port = port or settings.chroma_port
            collection_name = collection_name or settings.chroma_collection

        self.collection_name = collection_name

        if client is None:
            try:
                client = chromadb.HttpClient(
                    host=host,
                    port=port,
                    settings=ChromaSettings(anonymized_telemetry=False),
                )
                logger.info(f"Connected to ChromaDB at http://{host}:{port}")
            except Exception as e:
                logger.error(f"Failed to connect to ChromaDB at http://{host}:{port}: {e}")
                raise StoreUnavailableError(f"ChromaDB unreachable: {e}") from e

        self.client = client
        self._collection = None
        self._bm25: BM25Okapi | None = None
        self._bm25_ids: list[str] = []
        self._bm25_terms: list[set[str]] = []
        self._index_lock = asyncio.Lock()

    def _get_collection(self):
        if self._collection is None:
            self._collection = self.client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,  # embeddings are always supplied by the caller
            )
        return self._collection

    async def _run(self, operation: str, func, *args, **kwargs):
        """Run a blocking Chroma call off the event loop, mapping failures."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except Exception as e:
            logger.error(f"ChromaDB {operation} failed on {self.collection_name}: {e}")
            raise StoreUnavailableError(f"ChromaDB {operation} failed: {e}") from e

    async def vector_search(self, vector: EmbeddingVector, top_k: int) -> list[VectorHit]:
        """Search for nearest profiles in ChromaDB."""
        collection = await self._run("open collection", self._get_collection)
        results = await self._run(
            "query",
            collection.query,
            query_embeddings=[vector.values],
            n_results=top_k,
            include=["metadatas", "distances"],
        )

        hits = []
        if results["ids"] and results["ids"][0]:
            metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(results["ids"][0])
            for membership_id, distance, metadata in zip(
                results["ids"][0], results["distances"][0], metadatas
            ):
                hits.append(
                    VectorHit(
                        membership_id=membership_id,
                        distance=float(distance),
                        embedding_model=(metadata or {}).get("embedding_model"),
                    )
                )

        logger.debug(f"Vector search returned {len(hits)} hits from {self.collection_name}")
        return hits

    async def _ensure_lexical_index(self) -> None:
        async with self._index_lock:
            if self._bm25 is not None or self._bm25_ids:
                return

            collection = await self._run("open collection", self._get_collection)
            data = await self._run("get", collection.get, include=["documents"])
            ids = data["ids"] or []
            documents = data["documents"] or []
            corpus = [tokenize(doc or "") for doc in documents]

            self._bm25_ids = ids
            self._bm25_terms = [set(tokens) for tokens in corpus]
            # BM25Okapi cannot be built over an empty corpus
            self._bm25 = BM25Okapi(corpus) if any(corpus) else None
            logger.info(f"Built BM25 index over {len(ids)} profiles")

    async def lexical_search(self, tokens: list[str], top_k: int) -> list[LexicalHit]:
        """Rank profiles with BM25 over their documents."""
        await self._ensure_lexical_index()
        if self._bm25 is None or not tokens:
            return []

        query_terms = set(tokens)
        scores = self._bm25.get_scores(tokens)
        # Only documents sharing a term with the query count as lexical hits;
        # BM25 idf can be zero or negative on small collections.
        ranked = sorted(
            (
                (max(float(score), 0.0), membership_id)
                for membership_id, score, terms in zip(self._bm25_ids, scores, self._bm25_terms)
                if terms & query_terms
            ),
            key=lambda pair: (-pair[0], pair[1]),
        )
        return [LexicalHit(membership_id=mid, rank=score) for score, mid in ranked[:top_k]]

    async def fetch_profiles(self, membership_ids: list[str]) -> dict[str, MemberProfile]:
        """Fetch profile metadata for the given ids."""
        if not membership_ids:
            return {}

        collection = await self._run("open collection", self._get_collection)
        data = await self._run("get", collection.get, ids=list(membership_ids), include=["metadatas"])

        profiles = {}
        for membership_id, metadata in zip(data["ids"], data["metadatas"] or []):
            try:
                profiles[membership_id] = MemberProfile.from_metadata(membership_id, metadata or {})
            except ValueError as e:
                logger.warning(f"Skipping malformed profile {membership_id}: {e}")
        return profiles

    async def upsert_profiles(
        self,
        profiles: list[MemberProfile],
        vectors: list[EmbeddingVector],
    ) -> int:
        """Write profiles with their embeddings and invalidate the lexical index."""
        if len(profiles) != len(vectors):
            raise ValueError("profiles and vectors must have the same length")
        if not profiles:
            logger.warning("No profiles provided to upsert")
            return 0

        metadatas = []
        for profile, vector in zip(profiles, vectors):
            metadata = profile.to_metadata()
            metadata["embedding_model"] = vector.model
            metadatas.append(metadata)

        collection = await self._run("open collection", self._get_collection)
        await self._run(
            "upsert",
            collection.upsert,
            ids=[p.membership_id for p in profiles],
            embeddings=[v.values for v in vectors],
            documents=[p.document() for p in profiles],
            metadatas=metadatas,
        )

        async with self._index_lock:
            self._bm25 = None
            self._bm25_ids = []
            self._bm25_terms = []

        logger.info(f"Upserted {len(profiles)} profiles into {self.collection_name}")
        return len(profiles)

    async def count(self) -> int:
        collection = await self._run("open collection", self._get_collection)
        return await self._run("count", collection.count)

    async def health_check(self) -> bool:
        """Check if ChromaDB is healthy and accessible."""
        try:
            await asyncio.to_thread(self.client.heartbeat)
            return True
        except Exception as e:
            logger.warning(f"ChromaDB health check failed: {e}")
            return False
