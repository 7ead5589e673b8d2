"""Query understanding: deterministic fast path with LLM escalation."""

import logging

from community_search.errors import GatewayError
from community_search.gateway.understanding import LanguageUnderstandingGateway
from community_search.query.conversation import ConversationContext
from community_search.query.extractor import EntityExtractor
from community_search.query.intent import classify_intent
from community_search.query.models import (
    ExtractedEntities,
    ExtractionResult,
    UnderstandingResult,
    normalize_query,
)

logger = logging.getLogger(__name__)

REGEX_WEIGHT = 0.4
LLM_WEIGHT = 0.6


def _union(first: list[str] | None, second: list[str] | None) -> list[str] | None:
    merged: list[str] = []
    for term in (first or []) + (second or []):
        if term.lower() not in (m.lower() for m in merged):
            merged.append(term)
    return merged or None


def merge_entities(regex: ExtractedEntities, llm: ExtractedEntities) -> ExtractedEntities:
    """Combine both extractions.

    Structured fields (years, location, degree) come from the regex result
    when it has them; skills and services are unioned; name and organization
    only ever come from the model.
    """
    return ExtractedEntities(
        graduation_years=regex.graduation_years or llm.graduation_years,
        location=regex.location or llm.location,
        degree=regex.degree or llm.degree,
        skills=_union(regex.skills, llm.skills),
        services=_union(regex.services, llm.services),
        name=llm.name,
        organization=llm.organization,
    )


class QueryUnderstandingOrchestrator:
    """Decides per query whether the extractor suffices or the LLM is needed."""

    def __init__(
        self,
        extractor: EntityExtractor,
        understanding: LanguageUnderstandingGateway | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            extractor: Deterministic entity extractor
            understanding: LLM gateway; without one every query uses the regex path
        """
        self.extractor = extractor
        self.understanding = understanding

    async def understand(
        self,
        query: str,
        context: ConversationContext | None = None,
    ) -> UnderstandingResult:
        """Produce the canonical understanding of ``query``.

        Args:
            query: Raw query text
            context: Prior conversation turns for follow-up resolution

        Returns:
            UnderstandingResult
        """
        extraction = self.extractor.extract(query)

        if not extraction.needs_deeper_understanding:
            logger.info(f"Fast path: regex confidence {extraction.confidence:.2f} is sufficient")
            return self._from_extraction(query, extraction)

        if self.understanding is None:
            logger.warning(
                f"Degraded: no understanding gateway configured "
                f"(needed because of {extraction.fallback_reason})"
            )
            return self._from_extraction(query, extraction, degraded=True, reason="no understanding gateway")

        logger.info(f"Escalating to LLM: {extraction.fallback_reason}")
        try:
            llm_result = await self.understanding.understand(query, context)
        except GatewayError as e:
            logger.warning(f"Degraded: LLM understanding unavailable, using regex result ({e})")
            return self._from_extraction(query, extraction, degraded=True, reason=str(e))

        return self._merge(extraction, llm_result)

    def _from_extraction(
        self,
        query: str,
        extraction: ExtractionResult,
        degraded: bool = False,
        reason: str | None = None,
    ) -> UnderstandingResult:
        return UnderstandingResult(
            intent=classify_intent(query, extraction.entities),
            entities=extraction.entities,
            confidence=extraction.confidence,
            normalized_query=normalize_query(query),
            source="regex",
            degraded=degraded,
            fallback_reason=reason if degraded else None,
        )

    @staticmethod
    def _merge(extraction: ExtractionResult, llm_result: UnderstandingResult) -> UnderstandingResult:
        confidence = REGEX_WEIGHT * extraction.confidence + LLM_WEIGHT * llm_result.confidence
        return UnderstandingResult(
            intent=llm_result.intent,
            entities=merge_entities(extraction.entities, llm_result.entities),
            confidence=round(min(1.0, confidence), 4),
            normalized_query=llm_result.normalized_query,
            source="llm",
            fallback_reason=extraction.fallback_reason,
        )
