"""Data models for hybrid relevance search."""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from community_search.embedding.models import MemberProfile
from community_search.query.vocabulary import normalize_location


class SearchFilters(BaseModel):
    """Structured post-filters. Filters only ever narrow a result set."""

    model_config = ConfigDict(frozen=True)

    location: str | None = None
    skills: list[str] | None = None
    graduation_years: list[int] | None = None
    degree: str | None = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def matches(self, profile: MemberProfile) -> bool:
        """Check whether a profile satisfies every active filter."""
        if self.location and not _location_matches(self.location, profile.city):
            return False
        if self.graduation_years and profile.graduation_year not in self.graduation_years:
            return False
        if self.degree and not _degree_matches(self.degree, profile):
            return False
        if self.skills and not _skills_match(self.skills, profile):
            return False
        return True


def _location_matches(location: str, city: str | None) -> bool:
    if not city:
        return False
    wanted = location.lower()
    return wanted in city.lower() or normalize_location(city).lower() == wanted


def _degree_matches(degree: str, profile: MemberProfile) -> bool:
    wanted = degree.lower()
    for value in (profile.degree, profile.branch):
        if value:
            have = value.lower()
            if wanted in have or have in wanted:
                return True
    return False


def _skills_match(skills: list[str], profile: MemberProfile) -> bool:
    offered = [s.lower() for s in profile.skills + profile.services]
    for skill in skills:
        wanted = skill.lower()
        if any(wanted in have or have in wanted for have in offered):
            return True
    return False


class Pagination(BaseModel):
    """Page request."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=50)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class ScoredCandidate:
    """One ranked member. Recomputed per query, never persisted.

    ``semantic_score`` / ``lexical_score`` are None when the candidate was not
    returned by that retrieval path.
    """

    membership_id: str
    semantic_score: float | None = None
    lexical_score: float | None = None
    exact_match_boost: float = 0.0
    combined_score: float = 0.0
    profile: MemberProfile | None = None
    matched_fields: list[str] = field(default_factory=list)

    @property
    def is_exact_match(self) -> bool:
        return self.exact_match_boost > 0


@dataclass
class RelevanceResult:
    """A page of ranked candidates plus the size of the full filtered set."""

    candidates: list[ScoredCandidate]
    total_count: int
    pagination: Pagination
    degraded_paths: list[str] = field(default_factory=list)

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_paths)
