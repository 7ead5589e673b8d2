"""Rule-based intent classification for the deterministic path."""

import re

from community_search.query.models import ExtractedEntities, Intent
from community_search.query.vocabulary import COMPARISON_PATTERN, MEMBER_KEYWORDS, SERVICE_KEYWORDS

_SERVICE_PATTERN = re.compile(rf"\b(?:{'|'.join(SERVICE_KEYWORDS)})\b", re.IGNORECASE)
_MEMBER_PATTERN = re.compile(rf"\b(?:{'|'.join(MEMBER_KEYWORDS)})\b", re.IGNORECASE)


def classify_intent(query: str, entities: ExtractedEntities) -> Intent:
    """Classify a query without calling a model.

    Comparison language wins, then service/company language (or extracted
    services), then anything that names member attributes. Queries with no
    entities and no member-search wording fall through to ``OTHER``.

    Args:
        query: Raw query text
        entities: Entities the extractor found in the same query

    Returns:
        Intent
    """
    if COMPARISON_PATTERN.search(query):
        return Intent.COMPARE
    if entities.services or _SERVICE_PATTERN.search(query):
        return Intent.FIND_SERVICE
    if not entities.is_empty() or _MEMBER_PATTERN.search(query):
        return Intent.FIND_MEMBER
    return Intent.OTHER
