"""Tests for the deterministic entity extractor and intent rules."""

import pytest

from community_search.query.extractor import EntityExtractor, normalize_two_digit_year
from community_search.query.intent import classify_intent
from community_search.query.models import ExtractedEntities, Intent


@pytest.fixture
def extractor():
    return EntityExtractor(current_year=2025)


class TestYearExtraction:
    """Test graduation year recognition."""

    def test_four_digit_year_with_keyword(self, extractor):
        assert extractor.extract_years("2018 passout") == [2018]
        assert extractor.extract_years("batch of 1995") == [1995]
        assert extractor.extract_years("graduated in 2010") == [2010]

    def test_two_digit_years(self, extractor):
        assert extractor.extract_years("95 passout members") == [1995]
        assert extractor.extract_years("batch of 05") == [2005]

    def test_two_digit_year_in_gap_is_rejected(self, extractor):
        assert extractor.extract_years("40 batch") == []

    def test_range_is_expanded_inclusively(self, extractor):
        assert extractor.extract_years("alumni 2005-2009") == [2005, 2006, 2007, 2008, 2009]
        assert extractor.extract_years("graduates from 2005 to 2007") == [2005, 2006, 2007]

    def test_bare_year_in_range(self, extractor):
        assert extractor.extract_years("members from 2012") == [2012]

    def test_future_year_is_rejected(self, extractor):
        assert extractor.extract_years("2030 batch") == []

    def test_years_are_sorted_and_unique(self, extractor):
        assert extractor.extract_years("2018 passout or 2015 batch, 2018 graduates") == [2015, 2018]

    @pytest.mark.parametrize(
        "value,expected",
        [(0, 2000), (5, 2005), (30, 2030), (31, None), (49, None), (50, 1950), (99, 1999)],
    )
    def test_two_digit_normalization(self, value, expected):
        assert normalize_two_digit_year(value) == expected


class TestLocationExtraction:
    """Test gazetteer location matching."""

    def test_alias_collapses_to_canonical(self, extractor):
        assert extractor.extract_location("developers in Bengaluru") == "Bangalore"
        assert extractor.extract_location("people based in madras") == "Chennai"
        assert extractor.extract_location("anyone from New Delhi") == "Delhi"

    def test_prepositional_tier_wins(self, extractor):
        assert extractor.extract_location("Chennai people working in Mumbai") == "Mumbai"

    def test_suffix_tier(self, extractor):
        assert extractor.extract_location("Pune based designers") == "Pune"

    def test_bare_mention(self, extractor):
        assert extractor.extract_location("hyderabad software") == "Hyderabad"

    def test_unknown_place(self, extractor):
        assert extractor.extract_location("designers in Springfield") is None


class TestDegreeExtraction:
    """Test degree and branch matching."""

    def test_abbreviation_checked_first(self, extractor):
        assert extractor.extract_degree("ECE graduates in mechanical firms") == (
            "Electronics and Communication Engineering"
        )

    def test_dotted_form(self, extractor):
        assert extractor.extract_degree("B.Tech alumni") == "Bachelor of Technology"
        assert extractor.extract_degree("M.E holders") == "Master of Engineering"

    def test_full_phrase(self, extractor):
        assert extractor.extract_degree("computer science batch") == "Computer Science Engineering"

    def test_lowercase_pronoun_is_not_a_degree(self, extractor):
        assert extractor.extract_degree("is it possible") is None


class TestSkillAndServiceExtraction:
    """Test open-vocabulary skill and service spans."""

    def test_vocabulary_keyword(self, extractor):
        assert "machine learning" in extractor.extract_skills("machine learning people")

    def test_company_type_phrase_maps_to_vocabulary(self, extractor):
        assert "software" in extractor.extract_skills("software companies in Pune")

    def test_free_text_service(self, extractor):
        assert "tax filing" in extractor.extract_services("who provides tax filing services in Chennai")


class TestConfidenceAndRouting:
    """Test confidence scoring and the deeper-understanding decision."""

    def test_scenario_machine_learning_bangalore(self, extractor):
        result = extractor.extract("machine learning 2018 passout Bangalore")

        assert result.entities.skills == ["machine learning"]
        assert result.entities.graduation_years == [2018]
        assert result.entities.location == "Bangalore"
        assert result.confidence == pytest.approx(0.9)
        assert result.needs_deeper_understanding is False
        assert result.fallback_reason is None

    def test_scenario_conversational_boolean_query(self, extractor):
        result = extractor.extract("can you find me someone who does either security or networking")

        assert result.needs_deeper_understanding is True
        assert set(result.entities.skills) >= {"security", "networking"}

    def test_confidence_is_deterministic(self, extractor):
        query = "ECE 2015 batch in Chennai"
        assert extractor.extract(query).confidence == extractor.extract(query).confidence

    def test_short_query_penalties(self, extractor):
        result = extractor.extract("ECE")

        # 0.25 + 0.1 degree bonus - 0.1 short text - 0.1 few tokens
        assert result.confidence == pytest.approx(0.15)
        assert result.needs_deeper_understanding is True

    def test_no_entities(self, extractor):
        result = extractor.extract("hello there my friend")

        assert result.entities.is_empty()
        assert result.matched_patterns == []
        assert result.confidence == 0.0
        assert result.needs_deeper_understanding is True

    def test_conversational_marker_forces_escalation(self, extractor):
        result = extractor.extract("please find machine learning 2018 passout in Chennai")

        assert result.confidence >= 0.5
        assert result.needs_deeper_understanding is True
        assert result.fallback_reason == "conversational marker 'please'"

    def test_comparison_forces_escalation(self, extractor):
        result = extractor.extract("machine learning 2018 passout Chennai vs Mumbai")

        assert result.needs_deeper_understanding is True
        assert result.fallback_reason == "comparison language"

    def test_unmatched_fields_are_absent(self, extractor):
        result = extractor.extract("machine learning 2018 passout Bangalore")

        assert "degree" not in result.entities.as_dict()
        assert "services" not in result.entities.as_dict()


class TestIntentRules:
    """Test rule-based intent classification."""

    def test_comparison(self):
        assert classify_intent("compare Chennai vs Mumbai", ExtractedEntities()) == Intent.COMPARE

    def test_service_language(self):
        entities = ExtractedEntities(skills=["software"])
        assert classify_intent("software companies", entities) == Intent.FIND_SERVICE

    def test_extracted_services(self):
        entities = ExtractedEntities(services=["catering"])
        assert classify_intent("catering", entities) == Intent.FIND_SERVICE

    def test_member_attributes(self):
        entities = ExtractedEntities(graduation_years=[2018])
        assert classify_intent("2018 passout", entities) == Intent.FIND_MEMBER

    def test_nothing_recognised(self):
        assert classify_intent("hello there", ExtractedEntities()) == Intent.OTHER
