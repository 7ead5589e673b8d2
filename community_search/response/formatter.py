"""Intent-specific conversational text for search results."""

import logging

from community_search.query.models import ExtractedEntities, Intent
from community_search.response.models import MemberResult

logger = logging.getLogger(__name__)

MAX_LISTED = 10
MAX_LISTED_PEOPLE = 5


def _contact_line(member: MemberResult) -> str | None:
    contacts = []
    if member.phone:
        contacts.append(f"📞 {member.phone}")
    if member.email:
        contacts.append(f"✉️ {member.email}")
    return f"   {' | '.join(contacts)}" if contacts else None


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


class ResponseFormatter:
    """Renders results with templates chosen by intent."""

    def format(
        self,
        results: list[MemberResult],
        intent: Intent,
        entities: ExtractedEntities,
        total_results: int,
    ) -> str:
        """Format a page of results.

        Args:
            results: Results on the current page
            intent: Understood intent
            entities: Understood entities, used for headers
            total_results: Size of the full filtered result set

        Returns:
            Formatted text
        """
        if not results:
            return self._format_empty(entities)

        if intent == Intent.FIND_SERVICE:
            text = self._format_services(results, entities, total_results)
        elif intent == Intent.FIND_MEMBER and entities.name:
            text = self._format_person(results, entities, total_results)
        elif intent == Intent.FIND_MEMBER:
            text = self._format_peers(results, entities, total_results)
        else:
            text = self._format_generic(results, total_results)

        logger.debug(f"Formatted {len(results)} results (intent: {intent.value})")
        return text

    def _format_services(self, results: list[MemberResult], entities: ExtractedEntities, total: int) -> str:
        header = ["Found"]
        if entities.services:
            header.append(f"*{entities.services[0]}*")
        header.append("providers")
        if entities.location:
            header.append(f"in *{entities.location}*")
        header.append(f"({total} {_plural(total, 'result', 'results')}):")

        items = []
        for index, member in enumerate(results[:MAX_LISTED], start=1):
            lines = [f"{index}. *{member.organization or member.name}*"]
            if member.city:
                lines.append(f"   📍 {member.city}")
            offered = member.services or member.skills
            if offered:
                lines.append(f"   💼 {', '.join(offered)}")
            contact = _contact_line(member)
            if contact:
                lines.append(contact)
            if member.matched_fields:
                lines.append(f"   ✓ Matched: {', '.join(member.matched_fields)}")
            items.append("\n".join(lines))

        return "\n\n".join([" ".join(header), *items])

    def _format_peers(self, results: list[MemberResult], entities: ExtractedEntities, total: int) -> str:
        header = []
        if entities.graduation_years:
            header.append(f"*{entities.graduation_years[0]} batch*")
        if entities.degree:
            header.append(f"*{entities.degree}*")
        header.append("alumni")
        if len(header) == 1:
            header.insert(0, "Found")
        if entities.location:
            header.append(f"in *{entities.location}*")
        header.append(f"({total} {_plural(total, 'result', 'results')}):")

        items = []
        for index, member in enumerate(results[:MAX_LISTED], start=1):
            lines = [f"{index}. *{member.name}*"]
            alumni = []
            if member.graduation_year:
                alumni.append(f"'{str(member.graduation_year)[-2:]}")
            alumni.extend(v for v in (member.degree, member.branch) if v)
            if alumni:
                lines.append(f"   🎓 {' • '.join(alumni)}")
            if member.organization or member.designation:
                role = member.designation or "Working"
                at = f" at {member.organization}" if member.organization else ""
                lines.append(f"   💼 {role}{at}")
            if member.city:
                lines.append(f"   📍 {member.city}")
            contact = _contact_line(member)
            if contact:
                lines.append(contact)
            items.append("\n".join(lines))

        return "\n\n".join([" ".join(header), *items])

    def _format_person(self, results: list[MemberResult], entities: ExtractedEntities, total: int) -> str:
        header = f"Found matches for *{entities.name}*:"

        items = []
        for index, member in enumerate(results[:MAX_LISTED_PEOPLE], start=1):
            lines = [f"{index}. *{member.name}*"]
            role = [v for v in (member.designation, member.organization) if v]
            if role:
                lines.append(f"   💼 {' at '.join(role)}")
            alumni = []
            if member.graduation_year:
                alumni.append(f"Batch of {member.graduation_year}")
            alumni.extend(v for v in (member.degree, member.branch) if v)
            if alumni:
                lines.append(f"   🎓 {' • '.join(alumni)}")
            if member.city:
                lines.append(f"   📍 {member.city}")
            if member.skills:
                lines.append(f"   🛠️ Skills: {', '.join(member.skills)}")
            if member.services:
                lines.append(f"   💼 Services: {', '.join(member.services)}")
            if member.phone:
                lines.append(f"   📞 {member.phone}")
            if member.email:
                lines.append(f"   ✉️ {member.email}")
            items.append("\n".join(lines))

        if total > MAX_LISTED_PEOPLE:
            footer = f"_Showing top {MAX_LISTED_PEOPLE} of {total} matches_"
        else:
            footer = f"_Found {total} {_plural(total, 'match', 'matches')}_"
        return "\n\n".join([header, *items, footer])

    def _format_generic(self, results: list[MemberResult], total: int) -> str:
        lines = [f"Found {total} {_plural(total, 'member', 'members')}:"]
        for index, member in enumerate(results[:MAX_LISTED], start=1):
            parts = [member.name] + [v for v in (member.email, member.phone, member.city) if v]
            lines.append(f"{index}. {', '.join(parts)}")
        return "\n".join(lines)

    def _format_empty(self, entities: ExtractedEntities) -> str:
        criteria = []
        if entities.skills:
            criteria.append(f"skills: {', '.join(entities.skills)}")
        if entities.services:
            criteria.append(f"services: {', '.join(entities.services)}")
        if entities.location:
            criteria.append(f"location: {entities.location}")
        if entities.graduation_years:
            criteria.append(f"batch: {', '.join(str(y) for y in entities.graduation_years)}")
        if entities.degree:
            criteria.append(f"degree: {entities.degree}")

        if criteria:
            return f"No members found matching {'; '.join(criteria)}. Try removing a filter or using broader keywords."
        return "No members found for that search. Try different or broader keywords."
