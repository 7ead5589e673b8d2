"""Tests for response composition, formatting and suggestions."""

import pytest

from community_search.config import SearchConfig
from community_search.query.models import ExtractedEntities, Intent, QueryOptions, UnderstandingResult
from community_search.response.composer import CLARIFICATION_EXAMPLES, ResponseComposer
from community_search.response.formatter import ResponseFormatter
from community_search.response.models import MemberResult, PaginationInfo
from community_search.response.suggestions import SuggestionEngine
from community_search.search.models import Pagination, RelevanceResult, ScoredCandidate
from tests.conftest import SAMPLE_PROFILES


def understanding(confidence: float = 0.8, intent: Intent = Intent.FIND_MEMBER, **entities) -> UnderstandingResult:
    return UnderstandingResult(
        intent=intent,
        entities=ExtractedEntities(**entities),
        confidence=confidence,
        normalized_query="query",
        source="regex",
    )


def relevance(profiles=SAMPLE_PROFILES, total: int | None = None, page: int = 1, page_size: int = 10, degraded=None):
    candidates = [
        ScoredCandidate(
            membership_id=p.membership_id,
            semantic_score=0.8,
            lexical_score=0.5,
            combined_score=0.71,
            profile=p,
            matched_fields=["skills"],
        )
        for p in profiles
    ]
    return RelevanceResult(
        candidates=candidates,
        total_count=len(profiles) if total is None else total,
        pagination=Pagination(page=page, page_size=page_size),
        degraded_paths=degraded or [],
    )


class TestPaginationInfo:
    """Test pagination metadata."""

    def test_middle_page(self):
        info = PaginationInfo.build(page=2, page_size=10, total_results=25)

        assert info.total_pages == 3
        assert info.has_next is True
        assert info.has_previous is True

    def test_last_page(self):
        info = PaginationInfo.build(page=3, page_size=10, total_results=25)
        assert info.has_next is False

    def test_no_results(self):
        info = PaginationInfo.build(page=1, page_size=10, total_results=0)

        assert info.total_pages == 0
        assert info.has_next is False
        assert info.has_previous is False


class TestResponseComposer:
    """Test the clarification decision and payload assembly."""

    def test_low_confidence_requests_clarification(self):
        composer = ResponseComposer()

        payload = composer.compose("hmm", understanding(confidence=0.2), relevance())

        assert payload.needs_clarification is True
        assert payload.results == []
        assert payload.pagination is None
        assert payload.message
        assert payload.suggestions == CLARIFICATION_EXAMPLES

    def test_threshold_is_exclusive(self):
        composer = ResponseComposer()
        assert composer.needs_clarification(understanding(confidence=0.29))
        assert not composer.needs_clarification(understanding(confidence=0.3))

    def test_threshold_is_configurable(self):
        composer = ResponseComposer(SearchConfig(clarification_threshold=0.6))
        assert composer.needs_clarification(understanding(confidence=0.5))

    def test_clarify_intent_requests_clarification(self):
        composer = ResponseComposer()
        assert composer.needs_clarification(understanding(confidence=0.9, intent=Intent.CLARIFY_NEEDED))

    def test_results_and_pagination(self):
        composer = ResponseComposer()

        payload = composer.compose(
            "machine learning", understanding(), relevance(total=25, page=2, page_size=4)
        )

        assert payload.needs_clarification is False
        assert [r.membership_id for r in payload.results] == ["m-001", "m-002", "m-003", "m-004"]
        assert payload.results[0].name == "Priya Raman"
        assert payload.results[0].relevance_score == pytest.approx(0.71)
        assert payload.pagination.total_results == 25
        assert payload.pagination.total_pages == 7
        assert payload.pagination.has_previous is True
        assert payload.message
        assert len(payload.suggestions) == 3

    def test_options_suppress_text_and_suggestions(self):
        composer = ResponseComposer()
        options = QueryOptions(include_response=False, include_suggestions=False)

        payload = composer.compose("machine learning", understanding(), relevance(), options)

        assert payload.message is None
        assert payload.suggestions == []
        assert len(payload.results) == 4

    def test_degraded_paths_are_reported(self):
        composer = ResponseComposer()

        payload = composer.compose("machine learning", understanding(), relevance(degraded=["semantic"]))

        assert payload.degraded is True
        assert payload.degraded_reasons == ["semantic retrieval unavailable"]

    def test_to_dict(self):
        payload = ResponseComposer().compose("machine learning", understanding(), relevance())

        data = payload.to_dict()

        assert data["intent"] == "find_member"
        assert data["results"][0]["membership_id"] == "m-001"
        assert data["pagination"]["total_results"] == 4


class TestResponseFormatter:
    """Test intent-specific templates."""

    def results(self):
        return [MemberResult.from_candidate(c) for c in relevance().candidates]

    def test_service_template(self):
        text = ResponseFormatter().format(
            self.results()[1:2], Intent.FIND_SERVICE, ExtractedEntities(services=["security audits"], location="Chennai"), 1
        )

        assert text.startswith("Found *security audits* providers in *Chennai* (1 result):")
        assert "SecureNet" in text
        assert "📞 9840011111" in text

    def test_peer_template(self):
        text = ResponseFormatter().format(
            self.results()[:1], Intent.FIND_MEMBER, ExtractedEntities(graduation_years=[2018]), 1
        )

        assert text.startswith("*2018 batch* alumni (1 result):")
        assert "'18" in text
        assert "Data Scientist at Acme Analytics" in text

    def test_person_template(self):
        text = ResponseFormatter().format(
            self.results(), Intent.FIND_MEMBER, ExtractedEntities(name="Priya"), 12
        )

        assert text.startswith("Found matches for *Priya*:")
        assert "_Showing top 5 of 12 matches_" in text

    def test_generic_template(self):
        text = ResponseFormatter().format(self.results(), Intent.COMPARE, ExtractedEntities(), 4)

        assert text.splitlines()[0] == "Found 4 members:"
        assert "1. Priya Raman, priya@example.com" in text

    def test_empty_results_mention_criteria(self):
        text = ResponseFormatter().format(
            [], Intent.FIND_MEMBER, ExtractedEntities(location="Pune", skills=["devops"]), 0
        )

        assert "devops" in text
        assert "Pune" in text


class TestSuggestionEngine:
    """Test rule-based follow-up suggestions."""

    def results(self):
        return [MemberResult.from_candidate(c) for c in relevance().candidates]

    def test_always_three_unique(self):
        engine = SuggestionEngine(current_year=2025)

        for intent in Intent:
            suggestions = engine.suggest(self.results(), intent, ExtractedEntities())
            assert len(suggestions) == 3
            assert len(set(suggestions)) == 3

    def test_peer_suggestions_offer_nearby_batch(self):
        suggestions = SuggestionEngine(current_year=2025).suggest(
            self.results(), Intent.FIND_MEMBER, ExtractedEntities(graduation_years=[2018])
        )

        assert suggestions[0] == "Show 2017 batch instead"

    def test_person_suggestions_follow_top_result(self):
        suggestions = SuggestionEngine(current_year=2025).suggest(
            self.results(), Intent.FIND_MEMBER, ExtractedEntities(name="Priya")
        )

        assert suggestions == [
            "Find other 2018 alumni",
            "Find others at Acme Analytics",
            "Find other Data Scientists",
        ]

    def test_empty_results_relax_filters(self):
        suggestions = SuggestionEngine(current_year=2025).suggest(
            [], Intent.FIND_SERVICE, ExtractedEntities(location="Pune", services=["catering"])
        )

        assert suggestions == [
            "Search without location filter",
            "Try related services",
            "Browse all service providers",
        ]
