"""TTL + LRU cache for query embeddings."""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from community_search.embedding.models import EmbeddingVector
from community_search.query.models import normalize_query

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str]


@dataclass
class _Entry:
    vector: EmbeddingVector
    expires_at: float


class EmbeddingCache:
    """Caches vectors by (normalized text, model id).

    Entries expire after ``ttl`` seconds; when ``max_size`` is reached the
    least recently used entry is evicted. Concurrent misses for the same key
    share one computation.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[CacheKey, _Entry] = OrderedDict()
        self._inflight: dict[CacheKey, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(text: str, model: str) -> CacheKey:
        return normalize_query(text), model

    def _lookup(self, key: CacheKey) -> EmbeddingVector | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.vector

    def _store(self, key: CacheKey, vector: EmbeddingVector) -> None:
        self._entries[key] = _Entry(vector=vector, expires_at=self._clock() + self.ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cached embedding for {evicted[0][:40]!r}")

    async def get(self, text: str, model: str) -> EmbeddingVector | None:
        async with self._lock:
            return self._lookup(self.key(text, model))

    async def put(self, text: str, model: str, vector: EmbeddingVector) -> None:
        async with self._lock:
            self._store(self.key(text, model), vector)

    async def get_or_compute(
        self,
        text: str,
        model: str,
        compute: Callable[[], Awaitable[EmbeddingVector]],
        fallback_models: Sequence[str] = (),
    ) -> EmbeddingVector:
        """Return a cached vector or compute, store and return a new one.

        The result is stored under the model that actually produced it. A miss
        for the preferred model also checks ``fallback_models`` in order, so
        repeats of a query keep hitting the cache while the primary is down.
        The returned vector keeps its own model tag.

        Args:
            text: Text the vector represents
            model: Preferred model id used for the lookup
            compute: Coroutine function producing the vector on a miss
            fallback_models: Other acceptable model ids, in preference order

        Returns:
            EmbeddingVector
        """
        key = self.key(text, model)

        async with self._lock:
            cached = self._lookup(key)
            for fallback in fallback_models:
                if cached is not None:
                    break
                cached = self._lookup((key[0], fallback))
            if cached is not None:
                self.hits += 1
                return cached

            self.misses += 1
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(self._compute(key, compute))
                self._inflight[key] = task

        # Shielded so one cancelled waiter does not cancel the shared computation
        return await asyncio.shield(task)

    async def _compute(
        self,
        key: CacheKey,
        compute: Callable[[], Awaitable[EmbeddingVector]],
    ) -> EmbeddingVector:
        try:
            vector = await compute()
            async with self._lock:
                self._store((key[0], vector.model), vector)
            return vector
        finally:
            self._inflight.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}
