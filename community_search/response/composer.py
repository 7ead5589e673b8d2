"""Response composition: clarification decision and final payload assembly."""

import logging

from community_search.config import SearchConfig
from community_search.query.models import Intent, QueryOptions, UnderstandingResult
from community_search.response.formatter import ResponseFormatter
from community_search.response.models import MemberResult, PaginationInfo, ResponsePayload
from community_search.response.suggestions import SuggestionEngine
from community_search.search.models import RelevanceResult

logger = logging.getLogger(__name__)

CLARIFICATION_MESSAGE = (
    "I'm not sure what you're looking for. Could you rephrase your search "
    "with a skill, service, location or graduation year?"
)

CLARIFICATION_EXAMPLES = [
    "Find members in Bangalore",
    "Who graduated in 2015?",
    "Looking for web developers in Chennai",
]


class ResponseComposer:
    """Decides between answering and asking for clarification."""

    def __init__(
        self,
        config: SearchConfig | None = None,
        formatter: ResponseFormatter | None = None,
        suggestions: SuggestionEngine | None = None,
    ) -> None:
        self.config = config or SearchConfig()
        self.formatter = formatter or ResponseFormatter()
        self.suggestions = suggestions or SuggestionEngine()

    def needs_clarification(self, understanding: UnderstandingResult) -> bool:
        """Whether the understanding is too uncertain to present search results."""
        return (
            understanding.confidence < self.config.clarification_threshold
            or understanding.intent == Intent.CLARIFY_NEEDED
        )

    def compose(
        self,
        query: str,
        understanding: UnderstandingResult,
        relevance: RelevanceResult | None,
        options: QueryOptions | None = None,
        processing_time: float = 0.0,
    ) -> ResponsePayload:
        """Assemble the response for one query.

        Args:
            query: Original query text
            understanding: Canonical understanding
            relevance: Ranked page from the relevance engine; ignored when clarifying
            options: Per-request options controlling text and suggestions
            processing_time: Seconds spent handling the query

        Returns:
            ResponsePayload
        """
        options = options or QueryOptions()
        degraded_reasons = []
        if understanding.degraded and understanding.fallback_reason:
            degraded_reasons.append(f"understanding: {understanding.fallback_reason}")

        if self.needs_clarification(understanding) or relevance is None:
            logger.info(f"Requesting clarification (confidence {understanding.confidence:.2f})")
            return ResponsePayload(
                query=query,
                intent=understanding.intent,
                confidence=understanding.confidence,
                message=CLARIFICATION_MESSAGE,
                suggestions=list(CLARIFICATION_EXAMPLES),
                needs_clarification=True,
                source=understanding.source,
                degraded=understanding.degraded,
                degraded_reasons=degraded_reasons,
                processing_time=processing_time,
            )

        degraded_reasons.extend(f"{path} retrieval unavailable" for path in relevance.degraded_paths)
        results = [MemberResult.from_candidate(c) for c in relevance.candidates]
        pagination = PaginationInfo.build(
            page=relevance.pagination.page,
            page_size=relevance.pagination.page_size,
            total_results=relevance.total_count,
        )

        message = None
        if options.include_response:
            message = self.formatter.format(
                results, understanding.intent, understanding.entities, relevance.total_count
            )

        suggestions = []
        if options.include_suggestions:
            suggestions = self.suggestions.suggest(results, understanding.intent, understanding.entities)

        return ResponsePayload(
            query=query,
            intent=understanding.intent,
            confidence=understanding.confidence,
            results=results,
            pagination=pagination,
            message=message,
            suggestions=suggestions,
            source=understanding.source,
            degraded=bool(degraded_reasons),
            degraded_reasons=degraded_reasons,
            processing_time=processing_time,
        )
