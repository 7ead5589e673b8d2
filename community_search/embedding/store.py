"""Relevance Store interface."""

import re
from abc import ABC, abstractmethod

from community_search.embedding.models import EmbeddingVector, LexicalHit, MemberProfile, VectorHit

STOPWORDS = {
    "a", "an", "and", "the", "is", "in", "to", "of", "for", "with", "on", "at",
    "who", "can", "me", "find", "any", "anyone", "someone", "from", "or",
}

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:[.@+/-][a-z0-9]+)*")


def tokenize(text: str) -> list[str]:
    """Lowercased word tokens for lexical search, stopwords removed."""
    return [t for t in _TOKEN_PATTERN.findall(text.lower()) if t not in STOPWORDS]


class RelevanceStore(ABC):
    """Vector and lexical indexes over member profiles.

    Implementations raise ``StoreUnavailableError`` when the backing store
    cannot be reached.
    """

    @abstractmethod
    async def vector_search(self, vector: EmbeddingVector, top_k: int) -> list[VectorHit]:
        """Nearest neighbours by cosine distance, closest first."""

    @abstractmethod
    async def lexical_search(self, tokens: list[str], top_k: int) -> list[LexicalHit]:
        """Full-text matches, best rank first."""

    @abstractmethod
    async def fetch_profiles(self, membership_ids: list[str]) -> dict[str, MemberProfile]:
        """Profiles for the given ids; unknown ids are omitted."""

    @abstractmethod
    async def upsert_profiles(
        self,
        profiles: list[MemberProfile],
        vectors: list[EmbeddingVector],
    ) -> int:
        """Insert or replace profiles with their embeddings; returns rows written."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is reachable."""
