"""Response payload models."""

import math
from dataclasses import dataclass, field
from typing import Any

from community_search.query.models import Intent
from community_search.search.models import ScoredCandidate


@dataclass
class MemberResult:
    """A ranked member as presented to the caller."""

    membership_id: str
    name: str
    relevance_score: float
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    graduation_year: int | None = None
    degree: str | None = None
    branch: str | None = None
    organization: str | None = None
    designation: str | None = None
    skills: list[str] = field(default_factory=list)
    services: list[str] = field(default_factory=list)
    matched_fields: list[str] = field(default_factory=list)

    @classmethod
    def from_candidate(cls, candidate: ScoredCandidate) -> "MemberResult":
        profile = candidate.profile
        return cls(
            membership_id=candidate.membership_id,
            name=profile.name if profile else candidate.membership_id,
            relevance_score=round(candidate.combined_score, 4),
            email=profile.email if profile else None,
            phone=profile.phone if profile else None,
            city=profile.city if profile else None,
            graduation_year=profile.graduation_year if profile else None,
            degree=profile.degree if profile else None,
            branch=profile.branch if profile else None,
            organization=profile.organization if profile else None,
            designation=profile.designation if profile else None,
            skills=list(profile.skills) if profile else [],
            services=list(profile.services) if profile else [],
            matched_fields=list(candidate.matched_fields),
        )


@dataclass
class PaginationInfo:
    """Pagination metadata computed from page size and total count."""

    page: int
    page_size: int
    total_results: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, page: int, page_size: int, total_results: int) -> "PaginationInfo":
        total_pages = math.ceil(total_results / page_size) if page_size > 0 else 0
        return cls(
            page=page,
            page_size=page_size,
            total_results=total_results,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


@dataclass
class ResponsePayload:
    """Final answer for one query."""

    query: str
    intent: Intent
    confidence: float
    results: list[MemberResult] = field(default_factory=list)
    pagination: PaginationInfo | None = None
    message: str | None = None
    suggestions: list[str] = field(default_factory=list)
    needs_clarification: bool = False
    source: str = "regex"
    degraded: bool = False
    degraded_reasons: list[str] = field(default_factory=list)
    processing_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "intent": self.intent.value,
            "confidence": self.confidence,
            "results": [vars(r).copy() for r in self.results],
            "pagination": vars(self.pagination).copy() if self.pagination else None,
            "message": self.message,
            "suggestions": list(self.suggestions),
            "needs_clarification": self.needs_clarification,
            "source": self.source,
            "degraded": self.degraded,
            "degraded_reasons": list(self.degraded_reasons),
            "processing_time": self.processing_time,
        }
