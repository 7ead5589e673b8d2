"""Hybrid relevance search."""

from .engine import HybridRelevanceEngine, entities_to_filters, is_exact_match
from .models import Pagination, RelevanceResult, ScoredCandidate, SearchFilters

__all__ = [
    "HybridRelevanceEngine",
    "Pagination",
    "RelevanceResult",
    "ScoredCandidate",
    "SearchFilters",
    "entities_to_filters",
    "is_exact_match",
]
