"""Data models for query understanding."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from community_search.errors import InputError

MAX_QUERY_LENGTH = 500


class Intent(str, Enum):
    """Coarse category of what the caller wants."""

    FIND_MEMBER = "find_member"
    FIND_SERVICE = "find_service"
    COMPARE = "compare"
    CLARIFY_NEEDED = "clarify_needed"
    OTHER = "other"


class QueryOptions(BaseModel):
    """Per-request options."""

    model_config = ConfigDict(frozen=True)

    max_results: int = Field(default=10, ge=1, le=50)
    page: int = Field(default=1, ge=1)
    include_response: bool = True
    include_suggestions: bool = True


class Query(BaseModel):
    """A search request as received from the caller. Immutable."""

    model_config = ConfigDict(frozen=True)

    text: str
    identity: str
    options: QueryOptions = Field(default_factory=QueryOptions)

    @classmethod
    def create(
        cls,
        text: str,
        identity: str,
        options: QueryOptions | None = None,
        max_length: int = MAX_QUERY_LENGTH,
    ) -> "Query":
        """Validate raw input and build a Query.

        Raises:
            InputError: If the text is empty, whitespace-only or too long
        """
        stripped = (text or "").strip()
        if not stripped:
            raise InputError("Query must not be empty")
        if len(stripped) > max_length:
            raise InputError(f"Query exceeds {max_length} characters")
        return cls(text=stripped, identity=identity, options=options or QueryOptions())


def _dedupe(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        value = value.strip()
        if value and value.lower() not in (s.lower() for s in seen):
            seen.append(value)
    return seen


class ExtractedEntities(BaseModel):
    """Structured fields recognized in a query.

    Unmatched fields are ``None``; empty strings and empty lists are
    normalised to ``None`` so an absent field never carries an empty value.
    """

    model_config = ConfigDict(frozen=True)

    graduation_years: list[int] | None = None
    location: str | None = None
    degree: str | None = None
    skills: list[str] | None = None
    services: list[str] | None = None
    name: str | None = None
    organization: str | None = None

    @field_validator("graduation_years", mode="before")
    @classmethod
    def _normalize_years(cls, value: Any) -> list[int] | None:
        if value is None:
            return None
        if isinstance(value, (int, str)):
            value = [value]
        years = sorted({int(v) for v in value})
        return years or None

    @field_validator("skills", "services", mode="before")
    @classmethod
    def _normalize_terms(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        terms = _dedupe([str(v) for v in value])
        return terms or None

    @field_validator("location", "degree", "name", "organization", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def categories(self) -> list[str]:
        """Names of the fields that carry a value."""
        return list(self.as_dict())

    def is_empty(self) -> bool:
        return not self.as_dict()

    def as_dict(self) -> dict[str, Any]:
        """Matched fields only; absent keys are omitted."""
        return self.model_dump(exclude_none=True)


class ExtractionResult(BaseModel):
    """Output of the deterministic extractor."""

    model_config = ConfigDict(frozen=True)

    entities: ExtractedEntities
    confidence: float
    matched_patterns: list[str]
    needs_deeper_understanding: bool
    fallback_reason: str | None = None


class UnderstandingResult(BaseModel):
    """Canonical understanding of one query. Never mutated."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
    confidence: float = Field(ge=0.0, le=1.0)
    normalized_query: str
    source: Literal["regex", "llm"]
    degraded: bool = False
    fallback_reason: str | None = None


class ConversationTurn(BaseModel):
    """One completed query in a conversation."""

    model_config = ConfigDict(frozen=True)

    query: str
    intent: Intent
    entities: ExtractedEntities
    result_count: int
    timestamp: datetime


def normalize_query(text: str) -> str:
    """Lowercase and collapse whitespace; used for cache keys and exact matching."""
    return " ".join(text.split()).lower()
