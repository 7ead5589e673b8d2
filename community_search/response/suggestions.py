"""Rule-based follow-up query suggestions."""

import logging
from collections import Counter
from datetime import date

from community_search.query.models import ExtractedEntities, Intent
from community_search.response.models import MemberResult

logger = logging.getLogger(__name__)

SUGGESTION_COUNT = 3


def _most_common(values: list, limit: int) -> list:
    counts = Counter(v for v in values if v)
    return [value for value, _ in counts.most_common(limit)]


class SuggestionEngine:
    """Produces exactly three follow-up suggestions from the current results."""

    def __init__(self, current_year: int | None = None) -> None:
        self.current_year = current_year or date.today().year

    def suggest(self, results: list[MemberResult], intent: Intent, entities: ExtractedEntities) -> list[str]:
        if not results:
            suggestions = self._for_empty(intent, entities)
        elif intent == Intent.FIND_SERVICE:
            suggestions = self._for_services(results, entities)
        elif intent == Intent.FIND_MEMBER and entities.name:
            suggestions = self._for_person(results)
        elif intent == Intent.FIND_MEMBER:
            suggestions = self._for_peers(results, entities)
        else:
            suggestions = self._generic(results)

        suggestions = self._pad(suggestions)
        logger.debug(f"Generated suggestions for {intent.value}: {suggestions}")
        return suggestions

    def _for_services(self, results: list[MemberResult], entities: ExtractedEntities) -> list[str]:
        suggestions = []

        cities = _most_common([r.city for r in results], 3)
        if cities and not entities.location:
            suggestions.append(f"Show only in {cities[0]}")
        elif entities.location:
            other = next((c for c in cities if c.lower() != entities.location.lower()), None)
            if other:
                suggestions.append(f"Show in {other} instead")

        asked = [s.lower() for s in entities.services or []]
        offered = _most_common([r.services[0] for r in results if r.services], 5)
        new_service = next((s for s in offered if not any(a in s.lower() for a in asked)), None)
        if new_service:
            suggestions.append(f"Find {new_service} providers")

        if not entities.graduation_years:
            suggestions.append(f"Show only alumni from {self.current_year - 5}")

        designations = _most_common([r.designation for r in results], 3)
        if designations:
            suggestions.append(f"Find only {designations[0]}s")

        return suggestions

    def _for_peers(self, results: list[MemberResult], entities: ExtractedEntities) -> list[str]:
        suggestions = []

        if entities.graduation_years:
            year = entities.graduation_years[0]
            nearby = [y for y in (year - 1, year + 1) if 2000 <= y <= self.current_year]
            if nearby:
                suggestions.append(f"Show {nearby[0]} batch instead")
        else:
            years = _most_common([r.graduation_year for r in results], 1)
            if years:
                suggestions.append(f"Show only {years[0]} batch")

        branches = _most_common([r.branch for r in results], 3)
        if branches and not entities.degree:
            suggestions.append(f"Show only {branches[0]} branch")

        if entities.graduation_years:
            suggestions.append(f"Find {entities.graduation_years[0]} alumni offering services")
        else:
            suggestions.append("Find batchmates offering services")

        cities = _most_common([r.city for r in results], 3)
        if cities and not entities.location:
            suggestions.append(f"Show who are in {cities[0]}")

        return suggestions

    def _for_person(self, results: list[MemberResult]) -> list[str]:
        first = results[0]
        suggestions = []
        if first.graduation_year:
            suggestions.append(f"Find other {first.graduation_year} alumni")
        if first.organization:
            suggestions.append(f"Find others at {first.organization}")
        if first.designation:
            suggestions.append(f"Find other {first.designation}s")
        if first.city:
            suggestions.append(f"Find members in {first.city}")
        return suggestions

    def _generic(self, results: list[MemberResult]) -> list[str]:
        suggestions = []
        cities = _most_common([r.city for r in results], 1)
        if cities:
            suggestions.append(f"Show members in {cities[0]}")
        years = _most_common([r.graduation_year for r in results], 1)
        if years:
            suggestions.append(f"Find {years[0]} alumni")
        services = _most_common([r.services[0] for r in results if r.services], 1)
        if services:
            suggestions.append(f"Find {services[0]} providers")
        return suggestions

    def _for_empty(self, intent: Intent, entities: ExtractedEntities) -> list[str]:
        suggestions = []

        if entities.location:
            suggestions.append("Search without location filter")
        elif entities.graduation_years:
            suggestions.append("Search without year filter")
        elif entities.degree:
            suggestions.append("Search without degree filter")

        if entities.services:
            suggestions.append("Try related services")
        elif entities.skills:
            suggestions.append("Try related skills")
        else:
            suggestions.append("Try broader keywords")

        if intent == Intent.FIND_SERVICE:
            suggestions.append("Browse all service providers")
        else:
            suggestions.append("Browse all members")

        return suggestions

    @staticmethod
    def _pad(suggestions: list[str]) -> list[str]:
        unique = list(dict.fromkeys(suggestions))
        for filler in ("Search by graduation year", "Search by location", "Browse all members"):
            if len(unique) >= SUGGESTION_COUNT:
                break
            if filler not in unique:
                unique.append(filler)
        return unique[:SUGGESTION_COUNT]
