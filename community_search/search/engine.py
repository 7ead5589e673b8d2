"""Hybrid relevance engine: semantic + lexical retrieval, exact-match boost, filters."""

import asyncio
import logging
import re

from community_search.config import SearchConfig
from community_search.embedding.gateway import EmbeddingGateway
from community_search.embedding.models import MemberProfile
from community_search.embedding.store import RelevanceStore, tokenize
from community_search.errors import GatewayError, InputError, SearchUnavailableError, StoreUnavailableError
from community_search.query.models import ExtractedEntities, UnderstandingResult, normalize_query
from community_search.search.models import Pagination, RelevanceResult, ScoredCandidate, SearchFilters

logger = logging.getLogger(__name__)

SEMANTIC_PATH = "semantic"
LEXICAL_PATH = "lexical"

_PHONE_PATTERN = re.compile(r"^\+?[\d\s().-]{7,}$")


def entities_to_filters(entities: ExtractedEntities) -> SearchFilters:
    """Structured filters implied by an understanding's entities."""
    return SearchFilters(
        location=entities.location,
        skills=entities.skills,
        graduation_years=entities.graduation_years,
        degree=entities.degree,
    )


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value)


def is_exact_match(query: str, profile: MemberProfile) -> bool:
    """Query equals the profile's name, email or phone (case-insensitive)."""
    normalized = normalize_query(query)
    if not normalized:
        return False
    if normalize_query(profile.name) == normalized:
        return True
    if profile.email and profile.email.strip().lower() == normalized:
        return True
    if profile.phone and _PHONE_PATTERN.match(normalized):
        query_digits, phone_digits = _digits(normalized), _digits(profile.phone)
        if query_digits == phone_digits:
            return True
        # Tolerate a country-code prefix on either side
        return len(query_digits) >= 10 and len(phone_digits) >= 10 and query_digits[-10:] == phone_digits[-10:]
    return False


def matched_fields(entities: ExtractedEntities, profile: MemberProfile) -> list[str]:
    """Entity fields the profile visibly satisfies, for explanations."""
    matched = []
    if entities.location and profile.city and entities.location.lower() in profile.city.lower():
        matched.append("location")
    if entities.graduation_years and profile.graduation_year in entities.graduation_years:
        matched.append("graduation_year")
    if entities.degree and any(
        v and (entities.degree.lower() in v.lower() or v.lower() in entities.degree.lower())
        for v in (profile.degree, profile.branch)
    ):
        matched.append("degree")
    offered = " | ".join(profile.skills + profile.services).lower()
    if entities.skills and any(s.lower() in offered for s in entities.skills):
        matched.append("skills")
    if entities.services and any(s.lower() in offered for s in entities.services):
        matched.append("services")
    if entities.name and entities.name.lower() in profile.name.lower():
        matched.append("name")
    if entities.organization and profile.organization and entities.organization.lower() in profile.organization.lower():
        matched.append("organization")
    return matched


class HybridRelevanceEngine:
    """Ranks member profiles for an understood query.

    Semantic and lexical retrieval run concurrently. Either path may fail on
    its own and the other's scores are used alone; only when both are down is
    the search itself reported as unavailable.
    """

    def __init__(
        self,
        store: RelevanceStore,
        embeddings: EmbeddingGateway | None = None,
        config: SearchConfig | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            store: Relevance Store with vector and lexical indexes
            embeddings: Query embedding gateway; without one search is lexical only
            config: Weights, boosts and candidate pool sizing
        """
        self.store = store
        self.embeddings = embeddings
        self.config = config or SearchConfig()

    async def search(
        self,
        understanding: UnderstandingResult,
        filters: SearchFilters | None = None,
        pagination: Pagination | None = None,
    ) -> RelevanceResult:
        """Run hybrid search for an understanding.

        Args:
            understanding: Canonical understanding of the query
            filters: Post-filters, derived from the understanding's entities if omitted
            pagination: Requested page

        Returns:
            RelevanceResult with the requested page and total filtered count

        Raises:
            SearchUnavailableError: If neither retrieval path could run
            StoreUnavailableError: If profiles could not be fetched
        """
        filters = filters if filters is not None else entities_to_filters(understanding.entities)
        pagination = pagination or Pagination(page_size=self.config.default_page_size)
        top_k = max(
            self.config.min_candidates,
            (pagination.offset + pagination.page_size) * self.config.candidate_multiplier,
        )
        query_text = understanding.normalized_query

        semantic, lexical = await asyncio.gather(
            self._bounded(SEMANTIC_PATH, self._semantic_scores(query_text, top_k)),
            self._bounded(LEXICAL_PATH, self._lexical_scores(query_text, top_k)),
        )

        degraded = [name for name, scores in ((SEMANTIC_PATH, semantic), (LEXICAL_PATH, lexical)) if scores is None]
        if len(degraded) == 2:
            raise SearchUnavailableError("Both semantic and lexical retrieval are unavailable")
        if degraded:
            logger.warning(f"Degraded search: {degraded[0]} path unavailable, using single-path scores")

        candidates = self._combine(semantic or {}, lexical or {})
        profiles = await self.store.fetch_profiles(sorted(candidates))

        ranked = []
        for membership_id, candidate in candidates.items():
            profile = profiles.get(membership_id)
            if profile is None:
                logger.debug(f"Dropping candidate {membership_id}: profile not found")
                continue
            if not filters.matches(profile):
                continue

            candidate.profile = profile
            candidate.matched_fields = matched_fields(understanding.entities, profile)
            if is_exact_match(query_text, profile):
                candidate.exact_match_boost = self.config.exact_match_boost
                candidate.combined_score += self.config.exact_match_boost
                candidate.matched_fields.insert(0, "exact_match")
            ranked.append(candidate)

        ranked.sort(key=lambda c: (not c.is_exact_match, -c.combined_score, c.membership_id))

        page = ranked[pagination.offset : pagination.offset + pagination.page_size]
        logger.info(
            f"Hybrid search: {len(candidates)} candidates, {len(ranked)} after filters, "
            f"returning {len(page)} (page {pagination.page})"
        )
        return RelevanceResult(
            candidates=page,
            total_count=len(ranked),
            pagination=pagination,
            degraded_paths=degraded,
        )

    async def _bounded(self, name: str, retrieval) -> dict[str, float] | None:
        try:
            return await asyncio.wait_for(retrieval, timeout=self.config.retrieval_deadline)
        except asyncio.TimeoutError:
            logger.warning(f"{name} retrieval exceeded its {self.config.retrieval_deadline:.2f}s budget")
            return None

    async def _semantic_scores(self, query_text: str, top_k: int) -> dict[str, float] | None:
        if self.embeddings is None:
            return None

        try:
            vector = await self.embeddings.embed(query_text)
        except (GatewayError, InputError) as e:
            logger.warning(f"Query embedding failed, falling back to lexical only: {e}")
            return None

        try:
            hits = await self.store.vector_search(vector, top_k)
        except StoreUnavailableError as e:
            logger.warning(f"Vector index unavailable: {e}")
            return None

        scores: dict[str, float] = {}
        stale = 0
        for hit in hits:
            # Vectors from different model families are not comparable
            if hit.embedding_model and not vector.is_comparable(hit.embedding_model):
                stale += 1
                continue
            scores[hit.membership_id] = min(1.0, max(0.0, 1.0 - hit.distance))

        if stale:
            logger.warning(f"Discarded {stale} hits embedded with a model other than {vector.model}")
        return scores

    async def _lexical_scores(self, query_text: str, top_k: int) -> dict[str, float] | None:
        tokens = tokenize(query_text)
        if not tokens:
            return {}

        try:
            hits = await self.store.lexical_search(tokens, top_k)
        except StoreUnavailableError as e:
            logger.warning(f"Lexical index unavailable, falling back to semantic only: {e}")
            return None

        max_rank = max((hit.rank for hit in hits), default=0.0)
        return {
            hit.membership_id: (hit.rank / max_rank if max_rank > 0 else 0.0)
            for hit in hits
        }

    def _combine(self, semantic: dict[str, float], lexical: dict[str, float]) -> dict[str, ScoredCandidate]:
        candidates = {}
        for membership_id in semantic.keys() | lexical.keys():
            s = semantic.get(membership_id)
            l = lexical.get(membership_id)
            if s is not None and l is not None:
                combined = self.config.semantic_weight * s + self.config.lexical_weight * l
            else:
                # Single-path candidates keep that path's score, not a zero-filled blend
                combined = s if s is not None else l
            candidates[membership_id] = ScoredCandidate(
                membership_id=membership_id,
                semantic_score=s,
                lexical_score=l,
                combined_score=combined,
            )
        return candidates
