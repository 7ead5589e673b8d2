"""Embedding generation, caching and the Relevance Store."""

from .cache import EmbeddingCache
from .chroma_store import ChromaRelevanceStore
from .gateway import EmbeddingGateway
from .indexer import ProfileIndexer
from .models import EmbeddingVector, LexicalHit, MemberProfile, VectorHit
from .store import RelevanceStore, tokenize

__all__ = [
    "ChromaRelevanceStore",
    "EmbeddingCache",
    "EmbeddingGateway",
    "EmbeddingVector",
    "LexicalHit",
    "MemberProfile",
    "ProfileIndexer",
    "RelevanceStore",
    "VectorHit",
    "tokenize",
]
